""":mod:`sqlalchemy_imagebehavior.connector` --- Storage connector interface
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

This module declares a common interface for physically agnostic storage
backends.  A connector stores files by name inside its :attr:`~Connector.
folder`, which :class:`~.behavior.ImageBehavior` derives from the record
type e.g. ``'blog-post'`` for :class:`BlogPost`.

Implementations override the lower-level methods (:meth:`~Connector.
file_exists()`, :meth:`~Connector.get_url()`, :meth:`~Connector.
put_file()`, :meth:`~Connector.rename_file()`, and :meth:`~Connector.
delete_file()`) and raise :exc:`~.exc.BackendError` (or :exc:`IOError`)
when the backend fails.  Consumers use the higher-level methods
(:meth:`~Connector.exists()`, :meth:`~Connector.url()`, :meth:`~Connector.
upload()`, :meth:`~Connector.rename()`, and :meth:`~Connector.drop()`)
which never raise backend errors but return false values and leave the
error message in :attr:`~Connector.last_error`.

Backends which talk to the network have to bound every request with
:attr:`~Connector.timeout`, so that a stalled backend fails the call
instead of blocking it.

Modules inside :mod:`sqlalchemy_imagebehavior.connectors` package might
help to implement a new storage backend.

"""
import logging
import re

from .exc import BackendError
from .mediator import Mediator
from .util import split_extension

__all__ = 'BackendError', 'Connector'


class Connector(object):
    """The interface of storage connectors.  Every storage backend
    implementation has to implement this.

    :param folder: the namespace of files e.g. ``'blog-post'``
    :type folder: :class:`str`
    :param timeout: seconds each backend call may block.  it's kept as
                    :attr:`timeout` for network-bound implementations to
                    bound their requests with.  :const:`None` means no limit
    :type timeout: :class:`numbers.Real`

    """

    logger = logging.getLogger(__name__ + '.Connector')

    #: (:class:`str`) The message of the last failed operation.
    #: :const:`None` if no operation has failed yet.
    last_error = None

    def __init__(self, folder='', timeout=None):
        if timeout is not None and timeout <= 0:
            raise ValueError('timeout must be positive, not ' + repr(timeout))
        self.folder = folder.strip('/') if folder else ''
        self.timeout = timeout

    def file_exists(self, filename):
        """Tells whether the file of ``filename`` exists.

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

           It's not for consumers but implementations, so consumers
           should use :meth:`exists()` method instead of this.

        """
        raise NotImplementedError('file_exists() has to be implemented')

    def get_url(self, filename):
        """Gets the public url of the file of ``filename``.

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

           It's not for consumers but implementations, so consumers
           should use :meth:`url()` method instead of this.

        """
        raise NotImplementedError('get_url() has to be implemented')

    def put_file(self, file, filename, mimetype):
        """Writes the ``file`` as ``filename``, overwriting the existing
        file if any.

        :param file: the image file to put
        :type file: file-like object, :class:`file`
        :param filename: the filename to store as
        :type filename: :class:`str`
        :param mimetype: the mimetype of the image if it's known
        :type mimetype: :class:`str`

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

           It's not for consumers but implementations, so consumers
           should use :meth:`upload()` method instead of this.

        """
        raise NotImplementedError('put_file() has to be implemented')

    def rename_file(self, old_filename, new_filename):
        """Renames the file of ``old_filename`` to ``new_filename``.

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

           It's not for consumers but implementations, so consumers
           should use :meth:`rename()` method instead of this.

        """
        raise NotImplementedError('rename_file() has to be implemented')

    def delete_file(self, filename):
        """Deletes the file of ``filename``.  It has to raise
        :exc:`~.exc.BackendError` or :exc:`IOError` if the file
        couldn't be deleted.

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

           It's not for consumers but implementations, so consumers
           should use :meth:`drop()` method instead of this.

        """
        raise NotImplementedError('delete_file() has to be implemented')

    def get_timestamp(self, filename):
        """Gets the last modified time of the file.  It's used for
        the tracking query of :meth:`url()`.  The default implementation
        returns :const:`None` which means no tracking query.

        :rtype: :class:`datetime.datetime`

        """
        return None

    def list_files(self):
        """Lists filenames in the :attr:`folder`.  It's used for
        finding thumbnails to drop.  The default implementation
        returns an empty list, which means thumbnails are left.

        :rtype: :class:`typing.Iterable`\\ [:class:`str`]

        """
        return []

    def fail(self, operation, filename, error):
        self.last_error = str(error) or error.__class__.__name__
        self.logger.debug('%s(%r) failed in %r: %s',
                          operation, filename, self, self.last_error)

    def exists(self, filename):
        """Tells whether the file of ``filename`` exists.
        Empty filenames never exist.

        :param filename: the filename to check
        :type filename: :class:`str`
        :rtype: :class:`bool`

        """
        if not filename:
            return False
        try:
            return bool(self.file_exists(filename))
        except (BackendError, IOError, OSError) as e:
            self.fail('exists', filename, e)
            return False

    def url(self, filename, tracking=True):
        """Gets the URL of the file of ``filename``.

        :param filename: the filename to locate
        :type filename: :class:`str`
        :param tracking: whether to append the ``_ts`` query which
                         changes when the file is replaced.
                         :const:`True` by default
        :type tracking: :class:`bool`
        :returns: the url of the file.  an empty string if ``filename``
                  is empty or the backend failed
        :rtype: :class:`str`

        """
        if not filename:
            return ''
        try:
            url = self.get_url(filename)
            timestamp = self.get_timestamp(filename) if tracking else None
        except (BackendError, IOError, OSError) as e:
            self.fail('url', filename, e)
            return ''
        if not url or timestamp is None:
            return url or ''
        if '?' in url:
            fmt = '{0}&_ts={1}'
        else:
            fmt = '{0}?_ts={1}'
        return fmt.format(url, timestamp.strftime('%Y%m%d%H%M%S%f'))

    def upload(self, mediator, filename):
        """Stores the image data of ``mediator`` as ``filename``.

        :param mediator: the image to store
        :type mediator: :class:`~.mediator.Mediator`
        :param filename: the filename to store as
        :type filename: :class:`str`
        :returns: whether it succeeded.  :attr:`last_error` is set
                  if it failed
        :rtype: :class:`bool`

        """
        if not isinstance(mediator, Mediator):
            raise TypeError('mediator must be an instance of '
                            'sqlalchemy_imagebehavior.mediator.Mediator, '
                            'not ' + repr(mediator))
        elif not filename:
            raise ValueError('filename must not be empty')
        try:
            self.put_file(mediator.open(), filename, mediator.mimetype)
        except (BackendError, IOError, OSError) as e:
            self.fail('upload', filename, e)
            return False
        return True

    def rename(self, old_filename, new_filename):
        """Renames the file of ``old_filename`` to ``new_filename``.

        :returns: whether it succeeded.  :attr:`last_error` is set
                  if it failed
        :rtype: :class:`bool`

        """
        if not old_filename or not new_filename:
            raise ValueError('filenames must not be empty')
        elif old_filename == new_filename:
            return True
        try:
            self.rename_file(old_filename, new_filename)
        except (BackendError, IOError, OSError) as e:
            self.fail('rename', old_filename, e)
            return False
        return True

    def drop(self, filename):
        """Deletes the file of ``filename``.

        :returns: whether the file was deleted.  :attr:`last_error`
                  is set if it failed.  empty filenames are never deleted
        :rtype: :class:`bool`

        """
        if not filename:
            return False
        try:
            self.delete_file(filename)
        except (BackendError, IOError, OSError) as e:
            self.fail('drop', filename, e)
            return False
        return True

    def find_thumbnails(self, filename):
        """Finds thumbnails derived from the file of ``filename``.

        :returns: the list of thumbnail filenames
        :rtype: :class:`typing.Sequence`\\ [:class:`str`]

        """
        if not filename:
            return []
        stem, extension = split_extension(filename)
        pattern = re.compile(
            '^' + re.escape(stem) + r'-\d+x\d+' +
            (r'\.' + re.escape(extension) if extension else '') + '$',
            re.IGNORECASE
        )
        try:
            return sorted(f for f in self.list_files() if pattern.match(f))
        except (BackendError, IOError, OSError) as e:
            self.fail('find_thumbnails', filename, e)
            return []

    def drop_thumbnails(self, filename):
        """Deletes thumbnails derived from the file of ``filename``.

        :returns: the number of deleted thumbnails
        :rtype: :class:`int`

        """
        return sum(1 for thumbnail in self.find_thumbnails(filename)
                   if self.drop(thumbnail))

    def detect_extension(self, mediator):
        """Detects the extension of the image data when it isn't known
        otherwise.  The default implementation sniffs its magic bytes.

        :rtype: :class:`str`

        """
        return mediator.detect_extension()

    def __repr__(self):
        return '<{0.__module__}.{0.__name__} {1!r}>'.format(
            type(self), self.folder
        )
