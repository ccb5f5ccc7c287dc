""":mod:`sqlalchemy_imagebehavior.source` --- Image sources
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Image sources produce :class:`~.mediator.Mediator` objects from some
origin: a byte string, an uploaded file, or a remote URL.  Every source
can tell whether it's usable through :meth:`ImageSource.validate()`
before anything is read.

"""
import io
import logging
import os.path
import shutil
import urllib.error
import urllib.parse
import urllib.request

from .exc import ValidationError
from .mediator import Mediator, guess_extension
from .util import split_extension

__all__ = ('BlobSource', 'FileSource', 'ImageSource', 'UrlSource',
           'ValidationError')


class ImageSource(object):
    """The interface of image sources."""

    def validate(self):
        """Tells whether the source is usable.

        :returns: :const:`True` if :meth:`create_mediator()` can be called
        :rtype: :class:`bool`

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

        """
        raise NotImplementedError('validate() has to be implemented')

    def read(self):
        """Reads the image data and its extension.

        :returns: the pair of image data and filename extension.
                  the extension can be :const:`None`
        :rtype: :class:`tuple`
        :raise ValidationError: when the data cannot be read

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

           It's not for consumers but implementations, so consumers
           should use :meth:`create_mediator()` method instead of this.

        """
        raise NotImplementedError('read() has to be implemented')

    def create_mediator(self):
        """Creates a new mediator of the image data.

        :returns: the mediator holding the image data
        :rtype: :class:`~.mediator.Mediator`
        :raise ValidationError: when the source is not valid or
                                its data cannot be read

        """
        if not self.validate():
            raise ValidationError('{0!r} is not a valid image '
                                  'source'.format(self))
        blob, extension = self.read()
        if not blob:
            raise ValidationError('{0!r} is empty'.format(self))
        return Mediator(blob, extension)


class BlobSource(ImageSource):
    """The image source of a byte string.

    :param blob: the image data
    :type blob: :class:`bytes`
    :param filename: an optional original filename to take
                     the extension from
    :type filename: :class:`str`

    """

    def __init__(self, blob, filename=None):
        self.blob = blob
        self.filename = filename

    def validate(self):
        return isinstance(self.blob, bytes) and bool(self.blob)

    def read(self):
        return self.blob, split_extension(self.filename)[1]

    def __repr__(self):
        return '{0.__module__}.{0.__name__}(<{1} bytes>, {2!r})'.format(
            type(self),
            len(self.blob) if isinstance(self.blob, bytes) else None,
            self.filename
        )


class FileSource(ImageSource):
    """The image source of a readable file-like object e.g. an uploaded
    file of a web request.  The file is copied into memory when it's
    read, so it doesn't have to be seekable::

        source = FileSource(request.files['image'])
        behavior.upload(product, 'image', source)

    :param file: the readable file of the image
    :type file: file-like object, :class:`file`
    :param filename: an optional original filename to take the
                     extension from.  it falls back to the ``filename``
                     or ``name`` attribute of ``file``
    :type filename: :class:`str`

    """

    def __init__(self, file, filename=None):
        self.file = file
        if filename is None:
            filename = (getattr(file, 'filename', None) or
                        getattr(file, 'name', None))
            if not isinstance(filename, str):
                filename = None
        self.filename = filename

    def validate(self):
        return callable(getattr(self.file, 'read', None))

    def read(self):
        data = io.BytesIO()
        try:
            shutil.copyfileobj(self.file, data)
        except (IOError, OSError) as e:
            raise ValidationError('failed to read {0!r}: {1}'.format(self, e))
        filename = self.filename and os.path.basename(self.filename)
        return data.getvalue(), split_extension(filename)[1]

    def __repr__(self):
        return '{0.__module__}.{0.__name__}({1!r}, {2!r})'.format(
            type(self), self.file, self.filename
        )


class UrlSource(ImageSource):
    """The image source of a URL.  It's used to fetch originals for
    thumbnails, but also works for uploading images from the web.
    ``http``, ``https``, and ``file`` URLs are supported.

    :param url: the url of the image
    :type url: :class:`str`
    :param timeout: an optional timeout in seconds of fetching
    :type timeout: :class:`numbers.Real`

    """

    logger = logging.getLogger(__name__ + '.UrlSource')

    #: (:class:`typing.AbstractSet`\\ [:class:`str`]) URL schemes
    #: that can be fetched.
    SCHEMES = frozenset(['http', 'https', 'file'])

    def __init__(self, url, timeout=None):
        self.url = url
        self.timeout = timeout

    def validate(self):
        if not isinstance(self.url, str) or not self.url:
            return False
        return urllib.parse.urlparse(self.url).scheme in self.SCHEMES

    def urlopen(self, url):
        if self.timeout is None:
            return urllib.request.urlopen(url)
        return urllib.request.urlopen(url, timeout=self.timeout)

    def read(self):
        self.logger.debug('fetching %s', self.url)
        try:
            response = self.urlopen(self.url)
            try:
                blob = response.read()
                content_type = response.headers.get('Content-Type')
            finally:
                response.close()
        except (urllib.error.URLError, IOError, OSError) as e:
            raise ValidationError('failed to fetch {0}: {1}'.format(
                self.url, e
            ))
        path = urllib.parse.urlparse(self.url).path
        extension = split_extension(os.path.basename(path))[1]
        if extension is None and content_type and \
           content_type.lower().startswith('image/'):
            extension = guess_extension(content_type)
        return blob, extension

    def __repr__(self):
        return '{0.__module__}.{0.__name__}({1!r})'.format(
            type(self), self.url
        )
