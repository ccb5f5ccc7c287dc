""":mod:`sqlalchemy_imagebehavior.descriptor` --- Image attribute settings
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

"""
import collections.abc
import uuid

from . import registry
from .record import RecordAccessor
from .util import parse_dimension, slugify

__all__ = 'ImageDescriptor',


class ImageDescriptor(object):
    """The settings of an image attribute.  Filters and the placeholder
    are made once when the descriptor is made, and the descriptor
    can't be changed afterward.  Connectors are bound to the folder of
    a record type, so :meth:`create_connector()` makes a new one from
    the ``connector`` configuration every time.

    :param attribute: the record attribute which holds the stored
                      filename
    :type attribute: :class:`str`
    :param based_on: the record attribute whose value the filename
                     is made of.  the stored file is renamed when it
                     changes
    :type based_on: :class:`str`
    :param connector: the connector configuration.
                      see also :data:`.registry.connectors`
    :param filters: filter configurations applied in order to uploaded
                    images.  a mapping of names to configurations or
                    a sequence of configurations.
                    see also :data:`.registry.filters`
    :param placeholder: an optional placeholder configuration.
                        see also :data:`.registry.placeholders`
    :param placehold_only_if_missing: if :const:`True` the placeholder
                                      is used when the stored file doesn't
                                      exist in the storage.  if
                                      :const:`False` (default) it's used
                                      when there's no url
    :type placehold_only_if_missing: :class:`bool`
    :param drop_thumbnails: whether to delete thumbnails when their
                            original is replaced or deleted.
                            :const:`True` by default
    :type drop_thumbnails: :class:`bool`

    """

    def __init__(self, attribute, based_on=None, connector=None, filters=None,
                 placeholder=None, placehold_only_if_missing=False,
                 drop_thumbnails=True):
        if not attribute or not isinstance(attribute, str):
            raise TypeError('attribute must be a non-empty string, not ' +
                            repr(attribute))
        elif connector is None:
            raise TypeError('connector of {0!r} is not configured'.format(
                attribute
            ))
        elif isinstance(connector, registry.connectors.base):
            raise TypeError('connector must be a configuration, not an '
                            'instance, since it has to be bound to the '
                            'folder of each record type')
        if isinstance(connector, str):
            registry.connectors.resolve(connector)
        elif isinstance(connector, collections.abc.Mapping) and \
                isinstance(connector.get('class'), str):
            registry.connectors.resolve(connector['class'])
        if filters is None:
            filters = ()
        elif isinstance(filters, collections.abc.Mapping):
            filters = list(filters.items())
        else:
            filters = [(str(i), f) for i, f in enumerate(filters)]
        set_ = super(ImageDescriptor, self).__setattr__
        set_('attribute', attribute)
        set_('based_on', based_on)
        set_('connector', connector)
        set_('filters', tuple(
            (name, registry.filters.create(config))
            for name, config in filters
        ))
        set_('placeholder', None if placeholder is None
             else registry.placeholders.create(placeholder))
        set_('placehold_only_if_missing', bool(placehold_only_if_missing))
        set_('drop_thumbnails', bool(drop_thumbnails))

    def __setattr__(self, name, value):
        raise AttributeError('{0.__module__}.{0.__name__} is '
                             'immutable'.format(type(self)))

    def __delattr__(self, name):
        raise AttributeError('{0.__module__}.{0.__name__} is '
                             'immutable'.format(type(self)))

    def is_placeholder_only_when_missing(self):
        """Whether the placeholder replaces only missing files.

        :rtype: :class:`bool`

        """
        return self.placehold_only_if_missing

    def get_placeholder_url(self, dimension=None):
        """Gets the url of the placeholder of the given ``dimension``.

        :param dimension: the size of the placeholder.
                          see also :func:`~.util.parse_dimension()`
        :returns: the placeholder url, or :const:`None` if there's
                  no placeholder
        :rtype: :class:`str`

        """
        if self.placeholder is None:
            return None
        if isinstance(self.placeholder, registry.placeholders.base):
            return self.placeholder.locate(dimension)
        return self.placeholder.generate_url(*parse_dimension(dimension))

    def compute_basename(self, record, basename=None):
        """Computes the basename of stored files, which is the slug of
        the :attr:`based_on` attribute.  A random basename is made when
        there's no :attr:`based_on` attribute or its slug is empty.

        :param record: the record or its accessor
        :type record: :class:`object`, :class:`~.record.RecordAccessor`
        :param basename: an optional basename to use instead.
                         it's slugified as well
        :type basename: :class:`str`
        :returns: the basename
        :rtype: :class:`str`

        """
        slug = ''
        if basename:
            slug = slugify(basename)
        elif self.based_on:
            if isinstance(record, RecordAccessor):
                value = record.get_attribute(self.based_on)
            else:
                value = getattr(record, self.based_on)
            slug = slugify(value)
        return slug or uuid.uuid4().hex

    def create_connector(self, folder):
        """Makes a new connector bound to the ``folder``.

        :param folder: the namespace of files e.g. ``'blog-post'``
        :type folder: :class:`str`
        :rtype: :class:`~.connector.Connector`

        """
        return registry.connectors.create(self.connector, folder=folder)

    def get_filters(self):
        """The list of filters in order."""
        return [filter_ for _, filter_ in self.filters]

    def __repr__(self):
        return '<{0.__module__}.{0.__name__} {1!r} based on {2!r}>'.format(
            type(self), self.attribute, self.based_on
        )
