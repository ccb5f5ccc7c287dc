""":mod:`sqlalchemy_imagebehavior.placeholder` --- Placeholder images
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Placeholders generate URLs of images shown instead of missing ones.
Any object having ``generate_url(width, height)`` can be a placeholder,
but subclassing :class:`Placeholder` is the easiest way::

    Placeholder('https://dummyimage.com/{width}x{height}/eee/aaa')
    Placeholder(lambda width, height: '/static/missing.png')

"""
from .util import parse_dimension

__all__ = 'PlaceBear', 'Placeholder', 'StaticPlaceholder'


class Placeholder(object):
    """Generates placeholder URLs using the ``value``.

    :param value: a callable which takes width and height and returns
                  a url, or a format string with ``{width}`` and
                  ``{height}`` fields
    :type value: :class:`typing.Callable`\\ [[:class:`int`, :class:`int`],
                                             :class:`str`], :class:`str`

    """

    def __init__(self, value=None):
        if not (value is None or callable(value) or isinstance(value, str)):
            raise TypeError('value must be callable or a format string, '
                            'not ' + repr(value))
        self.value = value

    def generate_url(self, width, height):
        """Generates the url of the placeholder image of the given size.

        :param width: the width of the placeholder
        :type width: :class:`numbers.Integral`
        :param height: the height of the placeholder
        :type height: :class:`numbers.Integral`
        :returns: the url of the placeholder
        :rtype: :class:`str`

        """
        if self.value is None:
            raise NotImplementedError('value is not set; generate_url() '
                                      'has to be implemented')
        elif callable(self.value):
            return self.value(width, height)
        return self.value.format(width=width, height=height)

    def locate(self, dimension=None):
        """The shorthand of :meth:`generate_url()` that takes
        a dimension.

        :param dimension: the size of the placeholder.  see also
                          :func:`~sqlalchemy_imagebehavior.util.
                          parse_dimension()`
        :returns: the url of the placeholder
        :rtype: :class:`str`

        """
        width, height = parse_dimension(dimension)
        return self.generate_url(width, height)


class PlaceBear(Placeholder):
    """Placeholder using the placebear.com service.

    :param gray: whether to use grayscale images
    :type gray: :class:`bool`

    """

    URL_FORMAT = 'http://placebear.com/{0}/{1}'

    GRAY_URL_FORMAT = 'http://placebear.com/g/{0}/{1}'

    def __init__(self, gray=False):
        super(PlaceBear, self).__init__()
        self.gray = gray

    def generate_url(self, width, height):
        fmt = self.GRAY_URL_FORMAT if self.gray else self.URL_FORMAT
        return fmt.format(int(width), int(height))

    def __repr__(self):
        return '{0.__module__}.{0.__name__}(gray={1!r})'.format(
            type(self), self.gray
        )


class StaticPlaceholder(Placeholder):
    """Placeholder which always returns the same ``url`` e.g. a default
    image served by the application.

    :param url: the url of the placeholder image
    :type url: :class:`str`

    """

    def __init__(self, url):
        super(StaticPlaceholder, self).__init__()
        self.url = url

    def generate_url(self, width, height):
        return self.url
