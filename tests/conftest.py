import os

from pytest import fixture
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from sqlalchemy_imagebehavior.connector import BackendError, Connector
from sqlalchemy_imagebehavior.filter import Filter
from sqlalchemy_imagebehavior.source import BlobSource, ValidationError
from sqlalchemy_imagebehavior.util import parse_dimension


DEFAULT_DATABASE_URL = 'sqlite://'

cmd_options_intiailized = False


def pytest_addoption(parser):
    global cmd_options_intiailized
    if cmd_options_intiailized:
        return
    env = os.environ.get
    parser.addoption('--database-url',
                     default=env('IMAGEBEHAVIOR_TEST_DATABASE_URL',
                                 DEFAULT_DATABASE_URL),
                     help='Database URL for testing. [default: %(default)s]')
    parser.addoption('--echo-sql', action='store_true', default=False,
                     help='Print all executed queries for failed tests')
    cmd_options_intiailized = True


Base = declarative_base()
Session = sessionmaker()


@fixture
def fx_session(request):
    try:
        database_url = request.config.getoption('--database-url')
    except ValueError:
        database_url = DEFAULT_DATABASE_URL
    try:
        echo_sql = request.config.getoption('--echo-sql')
    except ValueError:
        echo_sql = False
    connect_args = {}
    options = {'connect_args': connect_args, 'poolclass': NullPool}
    if database_url == DEFAULT_DATABASE_URL:
        # SQLite :memory: database has to be shared across threads
        connect_args['check_same_thread'] = False
        options['poolclass'] = StaticPool
    engine = create_engine(database_url, echo=echo_sql, **options)
    metadata = Base.metadata
    metadata.drop_all(bind=engine)
    metadata.create_all(bind=engine)
    session = Session(bind=engine)

    @request.addfinalizer
    def finalize_session():
        session.rollback()
        session.close()
        metadata.drop_all(bind=engine)
        engine.dispose()
    return session


class MemoryStorage(object):
    """In-memory storage shared by :class:`MemoryConnector` objects.
    Every backend call is recorded in :attr:`calls`, and calls listed
    in :attr:`failures` raise :exc:`BackendError`.

    """

    def __init__(self, base_url='http://mock/img/'):
        self.base_url = base_url
        self.files = {}
        self.calls = []
        self.failures = set()

    def connect(self, folder=''):
        return MemoryConnector(self, folder)

    def source(self, url, timeout=None):
        """Thumbnail source which reads originals back from the storage."""
        if not url.startswith(self.base_url):
            raise ValidationError('unknown url: ' + url)
        folder, _, filename = url[len(self.base_url):].rpartition('/')
        try:
            blob = self.files[folder, filename]
        except KeyError:
            raise ValidationError('no such file: ' + url)
        return BlobSource(blob, filename)

    def clear(self):
        self.files.clear()
        del self.calls[:]
        self.failures.clear()


class MemoryConnector(Connector):

    def __init__(self, storage, folder='', timeout=None):
        super(MemoryConnector, self).__init__(folder, timeout)
        self.storage = storage

    def call(self, operation, *args):
        self.storage.calls.append((operation, self.folder) + args)
        if (operation, args[0]) in self.storage.failures:
            raise BackendError('{0} {1} failed'.format(operation, args[0]))

    def file_exists(self, filename):
        return (self.folder, filename) in self.storage.files

    def get_url(self, filename):
        return '{0}{1}/{2}'.format(self.storage.base_url, self.folder,
                                   filename)

    def put_file(self, file, filename, mimetype):
        self.call('put', filename)
        self.storage.files[self.folder, filename] = file.read()

    def rename_file(self, old_filename, new_filename):
        self.call('rename', old_filename, new_filename)
        try:
            blob = self.storage.files.pop((self.folder, old_filename))
        except KeyError:
            raise BackendError('no such file: ' + old_filename)
        self.storage.files[self.folder, new_filename] = blob

    def delete_file(self, filename):
        self.call('delete', filename)
        try:
            del self.storage.files[self.folder, filename]
        except KeyError:
            raise BackendError('no such file: ' + filename)

    def list_files(self):
        return [filename for folder, filename in self.storage.files
                if folder == self.folder]


class FakeResizeFilter(Filter):
    """Filter which replaces the image data with its dimension."""

    def __init__(self, dimension):
        self.width, self.height = parse_dimension(dimension)

    def apply(self, mediator):
        mediator.blob = 'resized:{0}x{1}:'.format(
            self.width, self.height
        ).encode('ascii') + mediator.blob
