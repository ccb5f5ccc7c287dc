""":mod:`sqlalchemy_imagebehavior.connectors.fs` --- Filesystem connectors
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

It provides two filesystem-backed connector implementations:

:class:`FileSystemConnector`
   It stores image files into the filesystem of the specified path,
   but :meth:`~.connector.Connector.url()` method returns URLs
   of the hard-coded base URL.

:class:`HttpExposedFileSystemConnector`
   The mostly same to :class:`FileSystemConnector` except it provides
   WSGI middleware (:meth:`~HttpExposedFileSystemConnector.
   wsgi_middleware()`) which actually serves image files and its
   :meth:`~.connector.Connector.url()` method returns URLs
   based on the actual requested URL.

Files are stored as ``{path}/{folder}/{filename}``.

"""
import datetime
import mimetypes
import os
import os.path
import shutil

from ..connector import BackendError, Connector

__all__ = ('BaseFileSystemConnector', 'FileSystemConnector',
           'HttpExposedFileSystemConnector', 'StaticServerMiddleware')


class BaseFileSystemConnector(Connector):
    """Abstract base class of :class:`FileSystemConnector` and
    :class:`HttpExposedFileSystemConnector`.

    """

    def __init__(self, path, folder=''):
        super(BaseFileSystemConnector, self).__init__(folder)
        self.path = path

    def get_path(self, filename):
        if not filename or filename in ('.', '..') or \
           '/' in filename or os.sep in filename:
            raise BackendError('invalid filename: ' + repr(filename))
        if self.folder:
            return os.path.join(self.path, self.folder, filename)
        return os.path.join(self.path, filename)

    def file_exists(self, filename):
        return os.path.isfile(self.get_path(filename))

    def put_file(self, file, filename, mimetype):
        path = self.get_path(filename)
        directory = os.path.dirname(path)
        if not os.path.isdir(directory):
            os.makedirs(directory)
        with open(path, 'wb') as dst:
            shutil.copyfileobj(file, dst)

    def rename_file(self, old_filename, new_filename):
        old_path = self.get_path(old_filename)
        if not os.path.isfile(old_path):
            raise BackendError('no such file: ' + repr(old_filename))
        os.replace(old_path, self.get_path(new_filename))

    def delete_file(self, filename):
        os.remove(self.get_path(filename))

    def get_timestamp(self, filename):
        try:
            mtime = os.path.getmtime(self.get_path(filename))
        except (IOError, OSError):
            return None
        return datetime.datetime.fromtimestamp(mtime, datetime.timezone.utc)

    def list_files(self):
        directory = os.path.join(self.path, self.folder)
        if not os.path.isdir(directory):
            return []
        return [name for name in os.listdir(directory)
                if os.path.isfile(os.path.join(directory, name))]

    def get_url(self, filename):
        try:
            base_url = self.base_url
        except AttributeError:
            raise NotImplementedError('base_url attribute/property is not '
                                      'implemented')
        self.get_path(filename)
        if self.folder:
            return '{0}{1}/{2}'.format(base_url, self.folder, filename)
        return base_url + filename


class FileSystemConnector(BaseFileSystemConnector):
    """Filesystem-backed connector with hard-coded URL routing.

    :param path: file system path of the directory to store image files
    :type path: :class:`str`
    :param base_url: the url the directory is served at
    :type base_url: :class:`str`
    :param folder: the namespace of files.  usually set by
                   :class:`~.behavior.ImageBehavior`
    :type folder: :class:`str`

    """

    def __init__(self, path, base_url, folder=''):
        super(FileSystemConnector, self).__init__(path, folder)
        if not base_url.endswith('/'):
            base_url += '/'
        self.base_url = base_url

    def __repr__(self):
        return '{0.__module__}.{0.__name__}({1!r}, {2!r}, {3!r})'.format(
            type(self), self.path, self.base_url, self.folder
        )


class HttpExposedFileSystemConnector(BaseFileSystemConnector):
    """Filesystem-backed connector with WSGI middleware which serves
    actual image files.
    ::

        from flask import Flask
        from sqlalchemy_imagebehavior.connectors.fs import \\
            HttpExposedFileSystemConnector

        app = Flask(__name__)
        connector = HttpExposedFileSystemConnector('userimages', 'images/')
        app.wsgi_app = connector.wsgi_middleware(app.wsgi_app)

    Since :class:`~.behavior.ImageBehavior` makes a new connector for
    every operation, the host url detected by the middleware is shared
    by every connector of the same ``path`` and ``prefix``.

    When its host url is not determined the connector fails to
    locate images, and :attr:`~.connector.Connector.last_error` tells
    how to workaround it.  For such case (e.g. Celery tasks which aren't
    executed by HTTP requests), you can optionally set ``host_url_getter``
    option.  It takes a callable which takes no arguments and returns
    a host url string like ``'http://servername/'``.  ::

        connector = HttpExposedFileSystemConnector(
            'userimages', 'images/',
            host_url_getter=lambda:
                'https://{0}/'.format(app.config['SERVER_NAME'])
        )

    :param path: file system path of the directory to store image files
    :type path: :class:`str`
    :param prefix: the prepended path of the url.
                   ``'__images__'`` by default
    :type prefix: :class:`str`
    :param host_url_getter: optional parameter to manually determine host
                            url.  it has to be a callable that takes nothing
                            and returns a host url string
    :type host_url_getter: :class:`~typing.Callable`\\ [[], :class:`str`]
    :param cors: whether or not to allow the `Cross-Origin Resource
                 Sharing`_ for any origin
    :type cors: :class:`bool`
    :param folder: the namespace of files.  usually set by
                   :class:`~.behavior.ImageBehavior`
    :type folder: :class:`str`

    .. _Cross-Origin Resource Sharing: https://developer.mozilla.org/en-US/\
docs/Web/HTTP/Access_control_CORS

    """

    #: (:class:`typing.MutableMapping`) Host urls detected by middlewares,
    #: keyed by the pair of ``path`` and ``prefix``.
    host_urls = {}

    def __init__(self, path, prefix='__images__', host_url_getter=None,
                 cors=False, folder=''):
        if not (callable(host_url_getter) or host_url_getter is None):
            raise TypeError('host_url_getter must be callable')
        super(HttpExposedFileSystemConnector, self).__init__(path, folder)
        self.prefix = prefix.strip('/')
        self.host_url_getter = host_url_getter
        self.cors = cors

    @property
    def host_url(self):
        return self.host_urls.get((self.path, self.prefix))

    @property
    def base_url(self):
        if self.host_url_getter is not None:
            host_url = self.host_url_getter()
            if host_url.endswith('/'):
                return '{0}{1}/'.format(host_url, self.prefix)
            return '{0}/{1}/'.format(host_url, self.prefix)
        elif self.host_url:
            return self.host_url + self.prefix + '/'
        raise BackendError(
            'could not determine image url. '
            'there are two ways to workaround this:\n'
            '- set host_url_getter parameter to {0.__module__}.{0.__name__}\n'
            '- use {0.__module__}.{0.__name__}.wsgi_middleware\n'
            'see docs of {0.__module__}.{0.__name__} for more details'.format(
                type(self)
            )
        )

    def wsgi_middleware(self, app):
        """WSGI middlewares that wraps the given ``app`` and serves
        actual image files. ::

            connector = HttpExposedFileSystemConnector('userimages')
            app = connector.wsgi_middleware(app)

        :param app: the wsgi app to wrap
        :type app: :class:`~typing.Callable`\\ [[],
            :class:`~typing.Iterable`\\ [:class:`bytes`]]
        :returns: the another wsgi app that wraps ``app``
        :rtype: :class:`~typing.Callable`

        """
        _app = StaticServerMiddleware(app, '/' + self.prefix, self.path,
                                      cors=self.cors)
        key = self.path, self.prefix

        def app(environ, start_response):
            if key not in self.host_urls:
                self.host_urls[key] = (environ['wsgi.url_scheme'] + '://' +
                                       environ['HTTP_HOST'] + '/')
            return _app(environ, start_response)
        return app

    def __repr__(self):
        return '{0.__module__}.{0.__name__}({1!r}, {2!r}, {3!r})'.format(
            type(self), self.path, self.prefix, self.folder
        )


class StaticServerMiddleware(object):
    """Simple static server WSGI middleware.  Requests for paths
    escaping ``dir_path`` are answered with :http:statuscode:`404`.

    :param app: the fallback app when the path is not scoped in
                ``url_path``
    :type app: :class:`~typing.Callable`\\ [[],
        :class:`~typing.Iterable`\\ [:class:`bytes`]]
    :param url_path: the exposed path to url
    :type url_path: :class:`str`
    :param dir_path: the filesystem directory path to serve
    :type dir_path: :class:`str`
    :param block_size: the block size in bytes
    :type block_size: :class:`numbers.Integral`
    :param cors: whether or not to allow the `Cross-Origin Resource
                 Sharing`_ for any origin
    :type cors: :class:`bool`

    """

    def __init__(self, app, url_path, dir_path, block_size=8192, cors=False):
        self.app = app
        self.url_path = '/' + url_path.strip('/') + '/'
        self.dir_path = os.path.abspath(dir_path or '.')
        self.block_size = int(block_size)
        self.cors_enabled = cors

    def file_stream(self, path):
        with open(path, 'rb') as f:
            while True:
                buf = f.read(self.block_size)
                if not buf:
                    break
                yield buf

    def resolve(self, path):
        file_path = os.path.abspath(
            os.path.join(self.dir_path, path[len(self.url_path):])
        )
        if os.path.commonpath([self.dir_path, file_path]) != self.dir_path:
            return None
        return file_path

    def not_found(self, start_response):
        start_response('404 Not Found', [('Content-Type', 'text/plain')])
        return [b'404 Not Found']

    def __call__(self, environ, start_response):
        path = environ.get('PATH_INFO', '/')
        if not path.startswith(self.url_path):
            return self.app(environ, start_response)
        file_path = self.resolve(path)
        if file_path is None or not os.path.isfile(file_path):
            return self.not_found(start_response)
        mimetype, _ = mimetypes.guess_type(file_path)
        headers = [
            ('Content-Type', mimetype or 'application/octet-stream'),
            ('Content-Length', str(os.path.getsize(file_path)))
        ]
        if self.cors_enabled:
            headers.append(('Access-Control-Allow-Origin', '*'))
        start_response('200 OK', headers)
        file_wrapper = environ.get('wsgi.file_wrapper')
        if callable(file_wrapper):
            return file_wrapper(open(file_path, 'rb'), self.block_size)
        return self.file_stream(file_path)
