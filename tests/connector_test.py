import datetime
import io

from pytest import mark, raises

from sqlalchemy_imagebehavior.connector import BackendError, Connector
from sqlalchemy_imagebehavior.mediator import Mediator
from .conftest import MemoryConnector, MemoryStorage


PNG_BLOB = b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR'


class EmptyConnector(Connector):
    """Connector subclass that doesn't implement abstract methods."""


class TimestampConnector(MemoryConnector):

    def __init__(self, storage, folder='', url_suffix=''):
        super(TimestampConnector, self).__init__(storage, folder)
        self.url_suffix = url_suffix

    def get_url(self, filename):
        return super(TimestampConnector, self).get_url(filename) + \
            self.url_suffix

    def get_timestamp(self, filename):
        return datetime.datetime(2014, 5, 6, 7, 8, 9, 123456)


@mark.parametrize('connector_cls', [EmptyConnector, Connector])
def test_abstract_methods(connector_cls):
    connector = connector_cls()
    with raises(NotImplementedError):
        connector.file_exists('a.png')
    with raises(NotImplementedError):
        connector.get_url('a.png')
    with raises(NotImplementedError):
        connector.put_file(io.BytesIO(PNG_BLOB), 'a.png', 'image/png')
    with raises(NotImplementedError):
        connector.rename_file('a.png', 'b.png')
    with raises(NotImplementedError):
        connector.delete_file('a.png')
    with raises(NotImplementedError):
        connector.upload(Mediator(PNG_BLOB), 'a.png')
    assert connector.get_timestamp('a.png') is None
    assert connector.list_files() == []
    assert connector.find_thumbnails('a.png') == []


def test_folder():
    assert Connector().folder == ''
    assert Connector(None).folder == ''
    assert Connector('/blog-post/').folder == 'blog-post'


def test_timeout():
    assert Connector().timeout is None
    assert Connector('product', 2.5).timeout == 2.5
    connector = MemoryConnector(MemoryStorage(), 'product', timeout=3)
    assert connector.timeout == 3
    with raises(ValueError):
        Connector(timeout=0)
    with raises(ValueError):
        Connector(timeout=-1)


def test_upload_and_exists():
    storage = MemoryStorage()
    connector = storage.connect('product')
    assert not connector.exists('a-image.png')
    assert connector.upload(Mediator(PNG_BLOB, 'png'), 'a-image.png')
    assert connector.exists('a-image.png')
    assert storage.files == {('product', 'a-image.png'): PNG_BLOB}
    assert storage.calls == [('put', 'product', 'a-image.png')]
    assert connector.last_error is None


def test_upload_invalid():
    connector = MemoryStorage().connect('product')
    with raises(TypeError):
        connector.upload(PNG_BLOB, 'a-image.png')
    with raises(ValueError):
        connector.upload(Mediator(PNG_BLOB), '')


def test_upload_failure():
    storage = MemoryStorage()
    storage.failures.add(('put', 'a-image.png'))
    connector = storage.connect('product')
    assert not connector.upload(Mediator(PNG_BLOB), 'a-image.png')
    assert connector.last_error == 'put a-image.png failed'
    assert not connector.exists('a-image.png')


def test_empty_filenames():
    storage = MemoryStorage()
    connector = storage.connect('product')
    assert not connector.exists('')
    assert not connector.exists(None)
    assert connector.url('') == ''
    assert connector.url(None) == ''
    assert not connector.drop('')
    assert not connector.drop(None)
    assert storage.calls == []


def test_url():
    connector = MemoryStorage().connect('product')
    assert connector.url('a-image.png') == \
        'http://mock/img/product/a-image.png'
    assert connector.url('a-image.png', tracking=False) == \
        'http://mock/img/product/a-image.png'


def test_url_tracking():
    connector = TimestampConnector(MemoryStorage(), 'product')
    assert connector.url('a.png') == \
        'http://mock/img/product/a.png?_ts=20140506070809123456'
    assert connector.url('a.png', tracking=False) == \
        'http://mock/img/product/a.png'
    connector = TimestampConnector(MemoryStorage(), 'product', '?v=1')
    assert connector.url('a.png') == \
        'http://mock/img/product/a.png?v=1&_ts=20140506070809123456'


def test_url_failure():
    class BrokenConnector(MemoryConnector):
        def get_url(self, filename):
            raise BackendError('no host')
    connector = BrokenConnector(MemoryStorage(), 'product')
    assert connector.url('a.png') == ''
    assert connector.last_error == 'no host'


def test_rename():
    storage = MemoryStorage()
    connector = storage.connect('product')
    connector.upload(Mediator(PNG_BLOB), 'a-image.jpg')
    assert connector.rename('a-image.jpg', 'b-image.jpg')
    assert not connector.exists('a-image.jpg')
    assert connector.exists('b-image.jpg')
    assert connector.rename('b-image.jpg', 'b-image.jpg')
    assert storage.calls[-1] == ('rename', 'product',
                                 'a-image.jpg', 'b-image.jpg')
    assert not connector.rename('missing.jpg', 'other.jpg')
    assert connector.last_error == 'no such file: missing.jpg'
    with raises(ValueError):
        connector.rename('', 'b-image.jpg')


def test_drop():
    storage = MemoryStorage()
    connector = storage.connect('product')
    connector.upload(Mediator(PNG_BLOB), 'a-image.jpg')
    assert connector.drop('a-image.jpg')
    assert not connector.exists('a-image.jpg')
    assert not connector.drop('a-image.jpg')
    assert connector.last_error == 'no such file: a-image.jpg'


def test_drop_thumbnails():
    storage = MemoryStorage()
    connector = storage.connect('product')
    for filename in ['a-image.jpg', 'a-image-100x100.jpg',
                     'a-image-20x30.jpg', 'a-image-20x30.png',
                     'a-image-big.jpg', 'a-image-extra-10x10.jpg',
                     'b-image-100x100.jpg']:
        connector.upload(Mediator(PNG_BLOB), filename)
    storage.connect('other').upload(Mediator(PNG_BLOB), 'a-image-1x1.jpg')
    assert connector.find_thumbnails('a-image.jpg') == [
        'a-image-100x100.jpg', 'a-image-20x30.jpg'
    ]
    assert connector.drop_thumbnails('a-image.jpg') == 2
    assert sorted(connector.list_files()) == [
        'a-image-20x30.png', 'a-image-big.jpg', 'a-image-extra-10x10.jpg',
        'a-image.jpg', 'b-image-100x100.jpg'
    ]
    assert ('other', 'a-image-1x1.jpg') in storage.files
    assert connector.drop_thumbnails('') == 0


def test_detect_extension():
    connector = MemoryStorage().connect()
    assert connector.detect_extension(Mediator(PNG_BLOB)) == 'png'
    assert connector.detect_extension(Mediator(b'unknown')) is None
