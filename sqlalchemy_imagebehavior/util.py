""":mod:`sqlalchemy_imagebehavior.util` --- Utilities
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

This module provides small helpers shared by the other modules:
deriving folder names and filenames, parsing thumbnail dimensions,
lazily importing configured classes, and per-key locking.

"""
import contextlib
import importlib
import numbers
import re
import threading
import unicodedata

__all__ = ('DEFAULT_IMAGE_DIMENSION', 'KeyedLock', 'camel_to_kebab',
           'get_thumbnail_filename', 'import_string', 'parse_dimension',
           'slugify', 'split_extension')


#: (:class:`numbers.Integral`) The width and height used when a dimension
#: is required but none was given e.g. for placeholders.
DEFAULT_IMAGE_DIMENSION = 320

_camel_boundary_re = re.compile(r'(?<=[a-z0-9])(?=[A-Z])|'
                                r'(?<=[A-Z])(?=[A-Z][a-z])')
_slug_separator_re = re.compile(r'[^a-z0-9]+')
_dimension_re = re.compile(r'^\s*(\d+)\s*(?:[xX*]\s*(\d+))?\s*$')


def camel_to_kebab(name):
    """Converts a class name to its hyphenated identifier::

        >>> camel_to_kebab('BlogPost')
        'blog-post'
        >>> camel_to_kebab('HTTPResponse')
        'http-response'

    :param name: a ``CamelCase`` name
    :type name: :class:`str`
    :returns: the ``kebab-case`` name
    :rtype: :class:`str`

    """
    return _camel_boundary_re.sub('-', name).replace('_', '-').lower()


def slugify(value):
    """Makes a lowercased ASCII slug of the given ``value``.
    Every run of characters other than letters and digits becomes
    a single hyphen::

        >>> slugify('Hello, World!')
        'hello-world'

    :param value: the value to slugify.  non-string values are
                  converted using :class:`str`
    :returns: the slug, which can be empty
    :rtype: :class:`str`

    """
    if value is None:
        return ''
    value = unicodedata.normalize('NFKD', str(value))
    value = value.encode('ascii', 'ignore').decode('ascii').lower()
    return _slug_separator_re.sub('-', value).strip('-')


def split_extension(filename):
    """Splits the ``filename`` into its stem and extension.
    The extension is lowercased and has no leading dot.

    :param filename: the filename to split
    :type filename: :class:`str`
    :returns: the pair of stem and extension.  the extension is
              :const:`None` if there's no extension
    :rtype: :class:`tuple`

    """
    if not filename:
        return '', None
    stem, dot, extension = filename.rpartition('.')
    if not dot or not stem or '/' in extension:
        return filename, None
    return stem, extension.lower() or None


def parse_dimension(dimension):
    """Normalizes a thumbnail dimension to the pair of width and height.
    It takes any of:

    - :const:`None`, which means :const:`DEFAULT_IMAGE_DIMENSION` square
    - an integer, which means a square
    - a string like ``'100x200'`` or ``'100'``
    - a pair of integers like ``(100, 200)``

    :param dimension: the dimension to parse
    :returns: the pair of width and height
    :rtype: :class:`tuple`
    :raise TypeError: when ``dimension`` is none of the above
    :raise ValueError: when the width or height is not a natural number

    """
    if dimension is None:
        width = height = DEFAULT_IMAGE_DIMENSION
    elif isinstance(dimension, bool):
        raise TypeError('dimension must be an integer, a string, or '
                        'a pair of integers, not ' + repr(dimension))
    elif isinstance(dimension, numbers.Integral):
        width = height = int(dimension)
    elif isinstance(dimension, str):
        match = _dimension_re.match(dimension)
        if not match:
            raise ValueError('invalid dimension: ' + repr(dimension))
        width = int(match.group(1))
        height = int(match.group(2) or width)
    elif isinstance(dimension, (tuple, list)) and len(dimension) == 2:
        width, height = dimension
        if not (isinstance(width, numbers.Integral) and
                isinstance(height, numbers.Integral)):
            raise TypeError('dimension must consist of integers, not ' +
                            repr(dimension))
        width, height = int(width), int(height)
    else:
        raise TypeError('dimension must be an integer, a string, or '
                        'a pair of integers, not ' + repr(dimension))
    if width < 1 or height < 1:
        raise ValueError('dimension must consist of natural numbers, not ' +
                         repr(dimension))
    return width, height


def get_thumbnail_filename(filename, dimension):
    """Derives the filename of the thumbnail of ``filename``::

        >>> get_thumbnail_filename('photo.png', '100x200')
        'photo-100x200.png'

    :param filename: the filename of the original image
    :type filename: :class:`str`
    :param dimension: the thumbnail dimension.
                      see also :func:`parse_dimension()`
    :returns: the thumbnail filename
    :rtype: :class:`str`

    """
    width, height = parse_dimension(dimension)
    stem, extension = split_extension(filename)
    thumbnail = '{0}-{1}x{2}'.format(stem, width, height)
    if extension:
        return thumbnail + '.' + extension
    return thumbnail


def import_string(path):
    """Imports an object from its dotted ``path``.  Both
    ``'package.module:Name'`` and ``'package.module.Name'`` forms
    are allowed.

    :param path: the dotted path of the object to import
    :type path: :class:`str`
    :returns: the imported object
    :raise ImportError: when the module or the object cannot be found

    """
    if ':' in path:
        module_name, _, attr = path.partition(':')
    else:
        module_name, _, attr = path.rpartition('.')
    if not module_name or not attr:
        raise ImportError('invalid import path: ' + repr(path))
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ImportError('{0!r} has no {1!r}'.format(module_name, attr))


class KeyedLock(object):
    """Re-entrant locks looked up by hashable keys.  Locks are created
    on demand and thrown away when nobody holds or waits for them::

        locks = KeyedLock()
        with locks(('user', 'photo.jpg')):
            ...

    """

    def __init__(self):
        self._mutex = threading.Lock()
        self._locks = {}

    @contextlib.contextmanager
    def __call__(self, key):
        with self._mutex:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._mutex:
                entry[1] -= 1
                if not entry[1]:
                    del self._locks[key]

    def __len__(self):
        with self._mutex:
            return len(self._locks)
