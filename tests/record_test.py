from pytest import raises
from sqlalchemy.schema import Column
from sqlalchemy.types import Integer, String

from sqlalchemy_imagebehavior.record import (RecordAccessor,
                                             SQLAlchemyRecordAccessor,
                                             get_errors)
from .conftest import Base


class Gallery(Base):

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    cover = Column(String(255))

    __tablename__ = 'gallery'


class ValidatedGallery(Base):

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    cover = Column(String(255))

    __tablename__ = 'validated_gallery'

    def add_error(self, name, message):
        self.__dict__.setdefault('messages', []).append((name, message))


class FormGallery(object):

    def __init__(self):
        self.errors = []

    def add_error(self, name, message):
        self.errors.append((name, message))


class FormGalleryAccessor(RecordAccessor):

    def add_error(self, name, message):
        self.record.add_error(name, message)


def test_abstract_methods():
    accessor = RecordAccessor(object())
    assert accessor.type_name == 'object'
    with raises(NotImplementedError):
        accessor.get_attribute('name')
    with raises(NotImplementedError):
        accessor.set_attribute('name', 'value')
    with raises(NotImplementedError):
        accessor.is_attribute_changed('name')
    with raises(NotImplementedError):
        accessor.add_error('name', 'message')


def test_sqlalchemy_accessor(fx_session):
    gallery = Gallery(name='Summer')
    accessor = SQLAlchemyRecordAccessor(gallery)
    assert accessor.record is gallery
    assert accessor.type_name == 'Gallery'
    assert accessor.get_attribute('name') == 'Summer'
    assert accessor.get_attribute('cover') is None
    fx_session.add(gallery)
    fx_session.commit()
    assert not accessor.is_attribute_changed('name')
    accessor.set_attribute('cover', 'summer-cover.jpg')
    assert gallery.cover == 'summer-cover.jpg'
    assert accessor.is_attribute_changed('cover')
    assert not accessor.is_attribute_changed('name')
    gallery.name = 'Winter'
    assert accessor.is_attribute_changed('name')
    fx_session.commit()
    assert not accessor.is_attribute_changed('name')
    assert not accessor.is_attribute_changed('cover')
    with raises(KeyError):
        accessor.is_attribute_changed('no_such_attribute')


def test_sqlalchemy_accessor_errors():
    gallery = Gallery(name='Summer')
    accessor = SQLAlchemyRecordAccessor(gallery)
    assert get_errors(gallery) == {}
    accessor.add_error('cover', 'disk full')
    accessor.add_error('cover', 'timed out')
    assert get_errors(gallery) == {'cover': ['disk full', 'timed out']}


def test_sqlalchemy_accessor_own_add_error():
    gallery = ValidatedGallery(name='Summer')
    SQLAlchemyRecordAccessor(gallery).add_error('cover', 'disk full')
    assert gallery.messages == [('cover', 'disk full')]
    assert get_errors(gallery) == {}


def test_sqlalchemy_accessor_unmapped():
    with raises(TypeError):
        SQLAlchemyRecordAccessor(FormGallery())
    with raises(TypeError):
        SQLAlchemyRecordAccessor(Gallery)


def test_custom_accessor():
    gallery = FormGallery()
    accessor = FormGalleryAccessor(gallery)
    assert accessor.type_name == 'FormGallery'
    accessor.add_error('cover', 'invalid image')
    assert gallery.errors == [('cover', 'invalid image')]
