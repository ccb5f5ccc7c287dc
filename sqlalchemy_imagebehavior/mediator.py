""":mod:`sqlalchemy_imagebehavior.mediator` --- In-flight image data
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

A :class:`Mediator` carries the bytes of an image from its
:class:`~.source.ImageSource` through the filter chain to a
:class:`~.connector.Connector`.  Filters mutate it in place; the
connector consumes it once.

"""
import io
import mimetypes

__all__ = 'Mediator', 'guess_extension', 'sniff_extension'


#: Leading bytes of the image formats :func:`sniff_extension()` knows.
MAGIC_BYTES = (
    (b'\x89PNG\r\n\x1a\n', 'png'),
    (b'\xff\xd8\xff', 'jpg'),
    (b'GIF87a', 'gif'),
    (b'GIF89a', 'gif'),
    (b'RIFF', 'webp'),
    (b'BM', 'bmp'),
    (b'II*\x00', 'tif'),
    (b'MM\x00*', 'tif'),
    (b'<svg', 'svg'),
    (b'<?xml', 'svg'),
)


def guess_extension(mimetype):
    """Finds the filename extension (e.g. ``'png'``) for the given
    ``mimetype`` (e.g. :mimetype:`image/png`).

    :param mimetype: mimetype string e.g. ``'image/jpeg'``.
                     parameters like ``; charset=...`` are ignored
    :type mimetype: :class:`str`
    :returns: filename extension without leading dot, or :const:`None`
              if it's unknown
    :rtype: :class:`str`

    """
    if not mimetype:
        return None
    mimetype = mimetype.split(';', 1)[0].strip().lower()
    if mimetype.startswith('image/x-'):
        mimetype = 'image/' + mimetype[8:]
    if mimetype in ('image/jpeg', 'image/pjpeg'):
        # mimetypes.guess_extension() has returned '.jpe' and '.jpeg'
        # depending on the Python version.
        return 'jpg'
    suffix = mimetypes.guess_extension(mimetype)
    if suffix:
        return suffix.lstrip('.')
    return None


def sniff_extension(blob):
    """Detects the filename extension from the leading bytes of
    the image ``blob``.

    :param blob: the image data
    :type blob: :class:`bytes`
    :returns: filename extension without leading dot, or :const:`None`
              if the format is unknown
    :rtype: :class:`str`

    """
    head = blob[:16].lstrip() if blob[:1].isspace() else blob[:16]
    for magic, extension in MAGIC_BYTES:
        if head.startswith(magic):
            if magic == b'RIFF' and head[8:12] != b'WEBP':
                continue
            return extension
    return None


class Mediator(object):
    """The in-memory image which is passed through filters.

    :param blob: the image data
    :type blob: :class:`bytes`
    :param extension: an optional filename extension without leading dot.
                      filters may set it later
    :type extension: :class:`str`
    :param options: upload-time hints e.g. ``default_extension``
    :type options: :class:`typing.Mapping`\\ [:class:`str`, :class:`object`]

    """

    def __init__(self, blob, extension=None, options=None):
        if not isinstance(blob, bytes):
            raise TypeError('blob must be bytes, not ' + repr(blob))
        self.blob = blob
        self.extension = extension.lstrip('.').lower() if extension else None
        self.options = dict(options or {})

    def set_options(self, options):
        """Replaces the upload-time :attr:`options`."""
        self.options = dict(options or {})

    @property
    def mimetype(self):
        """(:class:`str`) The mimetype guessed from :attr:`extension`.
        :const:`None` if there's no extension or it's unknown.

        """
        if not self.extension:
            return None
        mimetype, _ = mimetypes.guess_type('image.' + self.extension)
        return mimetype

    def detect_extension(self):
        """Detects the extension from the image data itself.

        :returns: filename extension without leading dot, or :const:`None`
        :rtype: :class:`str`

        """
        return sniff_extension(self.blob)

    def open(self):
        """Opens a new readable file-like object of the image data."""
        return io.BytesIO(self.blob)

    def __len__(self):
        return len(self.blob)

    def __repr__(self):
        return '<{0.__module__}.{0.__name__} {1} bytes {2!r}>'.format(
            type(self), len(self.blob), self.extension
        )
