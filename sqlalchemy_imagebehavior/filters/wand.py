""":mod:`sqlalchemy_imagebehavior.filters.wand` --- Wand-backed filters
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Filters that transform images using Wand_, the ImageMagick binding.
They are registered as ``'resize'`` and ``'format'`` in
:data:`sqlalchemy_imagebehavior.registry.filters`::

    'filters': {
        'resize': {'class': 'resize', 'dimension': (100, 200)},
        'png': {'class': 'format', 'format': 'png'},
    }

.. _Wand: https://docs.wand-py.org/

"""
import contextlib
import logging

from wand.exceptions import WandException
from wand.image import Image as WandImage

from ..filter import Filter, TransformError
from ..util import parse_dimension

__all__ = 'VECTOR_TYPES', 'FormatFilter', 'ResizeFilter', 'WandFilter'


#: (:class:`typing.AbstractSet`\\ [:class:`str`]) The set of vector
#: image types.  They are rasterized to PNG when transformed.
VECTOR_TYPES = frozenset(['image/svg+xml', 'application/pdf'])

#: Extensions that differ from ImageMagick format names.
FORMAT_EXTENSIONS = {'jpeg': 'jpg', 'tiff': 'tif'}


class WandFilter(Filter):
    """Abstract filter which loads the image into Wand, lets
    :meth:`transform()` change it, and encodes it back into the
    mediator.

    """

    logger = logging.getLogger(__name__ + '.WandFilter')

    def transform(self, image):
        """Transforms the loaded ``image`` in place.

        :param image: the single-frame image to transform
        :type image: :class:`wand.image.Image`

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

        """
        raise NotImplementedError('transform() has to be implemented')

    def apply(self, mediator):
        try:
            with WandImage(blob=mediator.blob) as img:
                if img.mimetype in VECTOR_TYPES:
                    img.format = 'png'
                if len(img.sequence) > 1:
                    img_ctx = img.sequence[0].clone()
                else:
                    img_ctx = contextlib.nullcontext(img)
                with img_ctx as single_img:
                    self.transform(single_img)
                    single_img.strip()
                    fmt = single_img.format.lower()
                    mediator.blob = single_img.make_blob()
        except (WandException, ValueError) as e:
            self.logger.debug('%r failed: %s', self, e)
            raise TransformError('{0!r} failed: {1}'.format(self, e))
        mediator.extension = FORMAT_EXTENSIONS.get(fmt, fmt)


class ResizeFilter(WandFilter):
    """Resizes images.

    :param dimension: the target size.  see also
                      :func:`~sqlalchemy_imagebehavior.util.parse_dimension()`
    :param keep_ratio: if :const:`True` the image is scaled to fit
                       in ``dimension`` keeping its aspect ratio.
                       :const:`False` by default, which means the
                       image is resized to exactly ``dimension``
    :type keep_ratio: :class:`bool`
    :param filter: a filter type to use for resizing.  choose one in
                   :const:`wand.image.FILTER_TYPES`.  default is
                   ``'undefined'`` which means ImageMagick will try
                   to guess best one to use
    :type filter: :class:`str`
    :raise TransformError: when ``dimension`` is invalid

    """

    def __init__(self, dimension, keep_ratio=False, filter='undefined'):
        try:
            self.width, self.height = parse_dimension(dimension)
        except (TypeError, ValueError) as e:
            raise TransformError(str(e))
        self.keep_ratio = keep_ratio
        self.filter = filter

    @property
    def dimension(self):
        """(:class:`tuple`) The pair of target width and height."""
        return self.width, self.height

    def get_size(self, original_size):
        if not self.keep_ratio:
            return self.width, self.height
        original_width, original_height = original_size
        ratio = min(self.width / original_width,
                    self.height / original_height)
        return (max(1, int(original_width * ratio)),
                max(1, int(original_height * ratio)))

    def transform(self, image):
        width, height = self.get_size(image.size)
        image.resize(width, height, filter=self.filter)

    def __repr__(self):
        return '{0.__module__}.{0.__name__}(({1}, {2}))'.format(
            type(self), self.width, self.height
        )


class FormatFilter(WandFilter):
    """Re-encodes images into another ``format`` e.g. ``'png'``.

    :param format: ImageMagick format name
    :type format: :class:`str`

    """

    def __init__(self, format):
        if not format:
            raise TransformError('format is required')
        self.format = format.lower()

    def transform(self, image):
        image.format = self.format

    def __repr__(self):
        return '{0.__module__}.{0.__name__}({1!r})'.format(
            type(self), self.format
        )
