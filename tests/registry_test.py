from pytest import raises

from sqlalchemy_imagebehavior import registry
from sqlalchemy_imagebehavior.connector import Connector
from sqlalchemy_imagebehavior.connectors.fs import FileSystemConnector
from sqlalchemy_imagebehavior.placeholder import PlaceBear, StaticPlaceholder
from sqlalchemy_imagebehavior.registry import Registry


class Widget(object):

    def __init__(self, size=1, folder=None):
        self.size = size
        self.folder = folder


class DuckPlaceholder(object):

    def generate_url(self, width, height):
        return '/duck/{0}/{1}'.format(width, height)


def test_register_and_create():
    widgets = Registry('widget', Widget)
    assert 'widget' not in widgets
    assert widgets.register('widget', Widget) is Widget
    assert 'widget' in widgets
    widget = widgets.create({'class': 'widget', 'size': 3}, folder='blog')
    assert isinstance(widget, Widget)
    assert widget.size == 3
    assert widget.folder == 'blog'
    widget = widgets.create({'class': 'widget', 'folder': 'own'},
                            folder='blog')
    assert widget.folder == 'own'
    assert widgets.create('widget').size == 1
    assert widgets.create(Widget, size=5).size == 5
    same = Widget()
    assert widgets.create(same) is same


def test_register_decorator():
    widgets = Registry('widget', Widget)

    @widgets.register('sub')
    class SubWidget(Widget):
        pass
    assert widgets.resolve('sub') is SubWidget
    assert isinstance(widgets.create('sub'), SubWidget)


def test_register_invalid():
    widgets = Registry('widget', Widget)
    with raises(TypeError):
        widgets.register('bad', 1234)


def test_resolve_import_path():
    widgets = Registry('widget', Widget)
    assert widgets.resolve(__name__ + ':Widget') is Widget
    assert widgets.resolve(__name__ + '.Widget') is Widget
    with raises(LookupError):
        widgets.resolve('unknown')
    with raises(LookupError):
        widgets.resolve(__name__ + ':NoSuchWidget')


def test_create_invalid():
    widgets = Registry('widget', Widget)
    with raises(TypeError):
        widgets.create({'size': 1})
    with raises(TypeError):
        widgets.create(1234)
    with raises(TypeError):
        widgets.create(lambda: object())
    with raises(LookupError):
        widgets.create({'class': 'unknown'})


def test_builtin_connectors(tmpdir):
    assert 'fs' in registry.connectors
    assert 'http-fs' in registry.connectors
    connector = registry.connectors.create({
        'class': 'fs',
        'path': tmpdir.strpath,
        'base_url': 'http://mock/img'
    }, folder='blog-post')
    assert isinstance(connector, FileSystemConnector)
    assert isinstance(connector, Connector)
    assert connector.folder == 'blog-post'
    assert connector.base_url == 'http://mock/img/'


def test_builtin_filters():
    assert 'resize' in registry.filters
    assert 'format' in registry.filters


def test_builtin_placeholders():
    assert isinstance(registry.placeholders.create('placebear'), PlaceBear)
    static = registry.placeholders.create({'class': 'static',
                                           'url': '/missing.png'})
    assert isinstance(static, StaticPlaceholder)
    template = registry.placeholders.create({'class': 'template',
                                             'value': '/{width}/{height}'})
    assert template.locate('1x2') == '/1/2'
    duck = DuckPlaceholder()
    assert registry.placeholders.create(duck) is duck
    assert isinstance(registry.placeholders.create(DuckPlaceholder),
                      DuckPlaceholder)
