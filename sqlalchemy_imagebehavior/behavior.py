""":mod:`sqlalchemy_imagebehavior.behavior` --- Image behavior of records
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

This module provides :class:`ImageBehavior`, which manages image files
of records whose columns hold the stored filenames.  Imagine there's
a fictional entity named :class:`Product` that has :attr:`~Product.title`
and :attr:`~Product.image` columns::

    behavior = ImageBehavior({
        'image': {
            'based_on': 'title',
            'connector': {
                'class': 'fs',
                'path': '/var/www/images',
                'base_url': 'https://example.com/images/',
            },
            'placeholder': {'class': 'placebear'},
            'filters': {
                'resize': {'class': 'resize', 'dimension': (100, 200)},
            },
        },
    })

    @behavior.attach
    class Product(Base, ImageBehaviorMixin):

        id = Column(Integer, primary_key=True)
        title = Column(String(255), nullable=False)
        image = Column(String(255))

        __tablename__ = 'product'

Uploading an image stores it into the ``product`` folder as
``{slug of title}-image.{extension}`` and sets the column::

    if product.upload_image('image', FileSource(request.files['image'])):
        session.commit()

URLs are resolved with thumbnails made on demand, or the placeholder if
there's no image::

    product.image_url('image', '100x100')

The behavior also follows the record lifecycle: when :attr:`Product.title`
changes, the stored file is renamed as the new title before the row is
updated, and when the product is deleted its files are deleted as well.

"""
import collections.abc
import functools
import logging

from sqlalchemy.event import listen

from . import registry
from .descriptor import ImageDescriptor
from .exc import BackendError, ImageBehaviorError, TransformError
from .filter import apply_filters
from .record import RecordAccessor, SQLAlchemyRecordAccessor
from .source import UrlSource, ValidationError
from .util import (KeyedLock, camel_to_kebab, get_thumbnail_filename,
                   parse_dimension, slugify, split_extension)

__all__ = 'ImageBehavior', 'ImageBehaviorMixin', 'get_folder'


@functools.lru_cache(maxsize=None)
def get_folder(type_name):
    """Derives the connector folder from the record type name e.g.
    ``'blog-post'`` from ``'BlogPost'``.

    :param type_name: the class name of records
    :type type_name: :class:`str`
    :rtype: :class:`str`

    """
    return camel_to_kebab(type_name)


class ImageBehavior(object):
    """Manages image attributes of records.

    :param image_attributes: an attribute name, a sequence of attribute
                             names, or a mapping of attribute names to
                             :class:`~.descriptor.ImageDescriptor`
                             parameters
    :param skip_update_on_clean: if :const:`True` (default) only files
                                 whose ``based_on`` attribute changed are
                                 renamed on update.  if :const:`False`
                                 every file whose name differs from the
                                 one its record would get now is renamed
    :type skip_update_on_clean: :class:`bool`
    :param accessor_class: the :class:`~.record.RecordAccessor` type to
                           wrap records with.
                           :class:`~.record.SQLAlchemyRecordAccessor`
                           by default
    :type accessor_class: :class:`type`
    :param thumbnail_source: the image source type to fetch originals of
                             thumbnails.  it's called with the url and
                             ``timeout`` keyword.
                             :class:`~.source.UrlSource` by default
    :param thumbnail_filter: the filter configuration to make thumbnails.
                             it's made with ``dimension`` parameter.
                             ``'resize'`` by default
    :param timeout: an optional timeout in seconds of fetching originals
                    of thumbnails
    :type timeout: :class:`numbers.Real`
    :param defaults: descriptor parameters shared by every attribute
                     e.g. ``connector``.  parameters of each attribute
                     take precedence over them
    :type defaults: :class:`typing.Mapping`

    """

    logger = logging.getLogger(__name__ + '.ImageBehavior')

    def __init__(self, image_attributes, skip_update_on_clean=True,
                 accessor_class=SQLAlchemyRecordAccessor,
                 thumbnail_source=UrlSource, thumbnail_filter='resize',
                 timeout=None, defaults=None):
        if isinstance(image_attributes, str):
            image_attributes = [image_attributes]
        if isinstance(image_attributes, collections.abc.Mapping):
            items = list(image_attributes.items())
        elif isinstance(image_attributes, collections.abc.Iterable):
            items = [(name, {}) for name in image_attributes]
        else:
            raise TypeError('image_attributes must be a string, a sequence, '
                            'or a mapping, not ' + repr(image_attributes))
        if not (isinstance(accessor_class, type) and
                issubclass(accessor_class, RecordAccessor)):
            raise TypeError('accessor_class must be a subtype of '
                            'sqlalchemy_imagebehavior.record.RecordAccessor, '
                            'not ' + repr(accessor_class))
        self.descriptors = {}
        for attribute, params in items:
            if isinstance(params, ImageDescriptor):
                descriptor = params
            else:
                kwargs = dict(defaults or {})
                kwargs.update(params or {})
                descriptor = ImageDescriptor(attribute, **kwargs)
            self.descriptors[descriptor.attribute] = descriptor
        self.skip_update_on_clean = skip_update_on_clean
        self.accessor_class = accessor_class
        self.thumbnail_source = thumbnail_source
        self.thumbnail_filter = thumbnail_filter
        self.timeout = timeout
        self.thumbnail_locks = KeyedLock()
        self.record_locks = KeyedLock()

    def get_descriptor(self, attribute):
        """Finds the descriptor of ``attribute``.

        :param attribute: the image attribute name
        :type attribute: :class:`str`
        :rtype: :class:`~.descriptor.ImageDescriptor`
        :raise KeyError: when ``attribute`` is not an image attribute

        """
        try:
            return self.descriptors[attribute]
        except KeyError:
            raise KeyError('{0!r} is not an image attribute; choose one '
                           'of {1!r}'.format(attribute,
                                             sorted(self.descriptors)))

    def get_accessor(self, record):
        if isinstance(record, RecordAccessor):
            return record
        return self.accessor_class(record)

    def create_connector(self, record, descriptor):
        """Makes a connector of ``descriptor`` bound to the folder of
        the ``record`` type.

        :param record: the record or its accessor
        :param descriptor: the descriptor of the image attribute
        :type descriptor: :class:`~.descriptor.ImageDescriptor`
        :rtype: :class:`~.connector.Connector`

        """
        accessor = self.get_accessor(record)
        return descriptor.create_connector(get_folder(accessor.type_name))

    def lock(self, accessor, attribute):
        return self.record_locks((id(accessor.record), attribute))

    def get_filename(self, accessor, descriptor, extension, basename=None):
        """Makes the filename ``{basename}-{attribute}.{extension}``.
        If ``extension`` is empty the extension of the currently
        stored file is used.

        :rtype: :class:`str`

        """
        if not extension:
            previous = accessor.get_attribute(descriptor.attribute)
            extension = split_extension(previous)[1]
        basename = descriptor.compute_basename(accessor, basename)
        filename = '{0}-{1}'.format(basename, descriptor.attribute)
        if extension:
            return filename + '.' + extension
        return filename

    def url(self, record, attribute, dimension=None, tracking=True):
        """Gets the url of the image ``attribute`` of ``record``.  If
        ``dimension`` is given and the image exists, the url of its
        thumbnail is returned.  The thumbnail is made when it doesn't
        exist yet.

        If the image attribute has a placeholder, it's returned when
        there's no url, or when the image doesn't exist in the storage
        if the attribute is configured ``placehold_only_if_missing``.

        :param record: the record
        :param attribute: the image attribute name
        :type attribute: :class:`str`
        :param dimension: an optional thumbnail size.
                          see also :func:`~.util.parse_dimension()`
        :param tracking: whether to append the tracking query.
                         :const:`True` by default
        :type tracking: :class:`bool`
        :returns: the url.  it can be empty if there's neither an image
                  nor a placeholder
        :rtype: :class:`str`

        """
        descriptor = self.get_descriptor(attribute)
        accessor = self.get_accessor(record)
        connector = self.create_connector(accessor, descriptor)
        filename = accessor.get_attribute(attribute)
        if filename and dimension and connector.exists(filename):
            try:
                filename = self.create_thumbnail(connector, filename,
                                                 dimension)
            except ImageBehaviorError as e:
                self.logger.warning('failed to make the %r thumbnail of '
                                    '%s/%s: %s', dimension, connector.folder,
                                    filename, e)
        url = connector.url(filename, tracking)
        if descriptor.placeholder is not None:
            only_if_missing = descriptor.is_placeholder_only_when_missing()
            if not only_if_missing and not url:
                url = descriptor.get_placeholder_url(dimension)
            if only_if_missing and not connector.exists(filename):
                url = descriptor.get_placeholder_url(dimension)
        return url

    def create_thumbnail(self, connector, filename, dimension):
        """Makes the thumbnail of ``filename`` of the given ``dimension``
        unless it already exists.  Only one thumbnail of the same file
        and dimension is made at a time.

        :param connector: the connector which has the original image
        :type connector: :class:`~.connector.Connector`
        :param filename: the filename of the original image
        :type filename: :class:`str`
        :param dimension: the thumbnail size
        :returns: the thumbnail filename
        :rtype: :class:`str`
        :raise ValidationError: when the original cannot be fetched
        :raise TransformError: when the original cannot be resized
        :raise BackendError: when the thumbnail cannot be stored

        """
        try:
            size = parse_dimension(dimension)
        except (TypeError, ValueError) as e:
            raise TransformError(str(e))
        thumbnail = get_thumbnail_filename(filename, size)
        with self.thumbnail_locks((connector.folder, filename, size)):
            if connector.exists(thumbnail):
                return thumbnail
            source = self.thumbnail_source(connector.url(filename, False),
                                           timeout=self.timeout)
            mediator = source.create_mediator()
            registry.filters.create(self.thumbnail_filter,
                                    dimension=size).apply(mediator)
            if not connector.upload(mediator, thumbnail):
                raise BackendError(connector.last_error)
            self.logger.debug('made a thumbnail %s/%s',
                              connector.folder, thumbnail)
        return thumbnail

    def upload(self, record, attribute, source, options=None):
        """Uploads the image from ``source`` and sets the ``attribute``
        of ``record`` to its filename.  Filters of the attribute are
        applied in order before it's stored, and the previously stored
        file is deleted.

        The following ``options`` are supported:

        ``default_extension``
           The extension used when it cannot be determined from
           the filters, the previous file, or the image data.

        ``basename``
           The basename to use instead of the one made of
           ``based_on`` attribute.

        :param record: the record
        :param attribute: the image attribute name
        :type attribute: :class:`str`
        :param source: the image source
        :type source: :class:`~.source.ImageSource`
        :param options: upload options
        :type options: :class:`typing.Mapping`
        :returns: whether it succeeded.  the ``attribute`` doesn't
                  change if it failed, and the error of the storage
                  backend is added to the ``record``
        :rtype: :class:`bool`

        """
        descriptor = self.get_descriptor(attribute)
        if source is None or not source.validate():
            self.logger.debug('%r is not a valid source', source)
            return False
        options = dict(options or {})
        accessor = self.get_accessor(record)
        with self.lock(accessor, attribute):
            try:
                mediator = source.create_mediator()
                mediator.set_options(options)
                apply_filters(descriptor.get_filters(), mediator)
            except (ValidationError, TransformError) as e:
                self.logger.warning('failed to upload %r to %s: %s',
                                    source, attribute, e)
                return False
            connector = self.create_connector(accessor, descriptor)
            existing = accessor.get_attribute(attribute)
            extension = (
                mediator.extension or
                split_extension(existing)[1] or
                connector.detect_extension(mediator) or
                options.get('default_extension')
            )
            filename = self.get_filename(accessor, descriptor, extension,
                                         options.get('basename'))
            if existing:
                if not connector.drop(existing):
                    self.logger.warning('failed to delete %s/%s: %s',
                                        connector.folder, existing,
                                        connector.last_error)
                if descriptor.drop_thumbnails:
                    connector.drop_thumbnails(existing)
            if not connector.upload(mediator, filename):
                accessor.add_error(attribute, connector.last_error)
                return False
            accessor.set_attribute(attribute, filename)
        self.logger.debug('uploaded %s/%s', connector.folder, filename)
        return True

    def before_update(self, record):
        """Renames stored files whose ``based_on`` attribute changed.
        It has to be called before the ``record`` is persisted, so
        that the new filenames are persisted together.  Files that
        fail to be renamed keep their names.

        :param record: the record to be updated

        """
        accessor = self.get_accessor(record)
        for descriptor in self.descriptors.values():
            if not descriptor.based_on:
                continue
            elif self.skip_update_on_clean and \
                    not accessor.is_attribute_changed(descriptor.based_on):
                continue
            elif not slugify(accessor.get_attribute(descriptor.based_on)):
                continue
            attribute = descriptor.attribute
            with self.lock(accessor, attribute):
                source = accessor.get_attribute(attribute)
                if not source:
                    continue
                destination = self.get_filename(accessor, descriptor, None)
                if destination == source:
                    continue
                connector = self.create_connector(accessor, descriptor)
                if not connector.rename(source, destination):
                    self.logger.warning('failed to rename %s/%s to %s: %s',
                                        connector.folder, source,
                                        destination, connector.last_error)
                    continue
                accessor.set_attribute(attribute, destination)
                if descriptor.drop_thumbnails:
                    connector.drop_thumbnails(source)
                self.logger.debug('renamed %s/%s to %s',
                                  connector.folder, source, destination)

    def after_update(self, record):
        """Called after the ``record`` is persisted.  Nothing to do
        for now since files are renamed by :meth:`before_update()`.

        """

    def after_delete(self, record):
        """Deletes stored files of the deleted ``record``, and clears
        attributes of deleted files.  Every attribute is tried even if
        some of them fail.

        :param record: the deleted record

        """
        accessor = self.get_accessor(record)
        for descriptor in self.descriptors.values():
            attribute = descriptor.attribute
            with self.lock(accessor, attribute):
                filename = accessor.get_attribute(attribute)
                if not filename:
                    continue
                connector = self.create_connector(accessor, descriptor)
                if connector.drop(filename):
                    accessor.set_attribute(attribute, None)
                else:
                    self.logger.warning('failed to delete %s/%s: %s',
                                        connector.folder, filename,
                                        connector.last_error)
                if descriptor.drop_thumbnails:
                    connector.drop_thumbnails(filename)

    def _before_update(self, mapper, connection, target):
        self.before_update(target)

    def _after_update(self, mapper, connection, target):
        self.after_update(target)

    def _after_delete(self, mapper, connection, target):
        self.after_delete(target)

    def attach(self, cls):
        """Attaches the behavior to the mapped class ``cls`` and its
        subclasses: :meth:`before_update()`, :meth:`after_update()`,
        and :meth:`after_delete()` are called by the mapper events.
        It can be used as a class decorator.

        :param cls: the mapped class
        :type cls: :class:`type`
        :returns: the same ``cls``
        :rtype: :class:`type`

        """
        cls.__image_behavior__ = self
        listen(cls, 'before_update', self._before_update, propagate=True)
        listen(cls, 'after_update', self._after_update, propagate=True)
        listen(cls, 'after_delete', self._after_delete, propagate=True)
        return cls

    def __repr__(self):
        return '<{0.__module__}.{0.__name__} {1!r}>'.format(
            type(self), sorted(self.descriptors)
        )


class ImageBehaviorMixin(object):
    """Mixin of mapped classes which have an :class:`ImageBehavior`
    attached by :meth:`ImageBehavior.attach()`.

    """

    #: (:class:`ImageBehavior`) The attached behavior.
    __image_behavior__ = None

    @classmethod
    def get_image_behavior(cls):
        behavior = cls.__image_behavior__
        if behavior is None:
            raise TypeError('no ImageBehavior is attached to ' + repr(cls))
        return behavior

    def image_url(self, attribute, dimension=None, tracking=True):
        """The shorthand of :meth:`ImageBehavior.url()`."""
        return self.get_image_behavior().url(self, attribute, dimension,
                                             tracking)

    def upload_image(self, attribute, source, options=None):
        """The shorthand of :meth:`ImageBehavior.upload()`."""
        return self.get_image_behavior().upload(self, attribute, source,
                                                options)
