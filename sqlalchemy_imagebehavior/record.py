""":mod:`sqlalchemy_imagebehavior.record` --- Record accessors
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

:class:`~.behavior.ImageBehavior` reads and writes records only through
the narrow :class:`RecordAccessor` interface.
:class:`SQLAlchemyRecordAccessor` adapts object-relationally mapped
entities, and is used by default.

Upload failures are reported with :meth:`RecordAccessor.add_error()`.
If the entity has its own ``add_error(attribute, message)`` method (as
form-backed models often do) it's called, otherwise messages are kept
in memory and can be read with :func:`get_errors()`::

    if not behavior.upload(product, 'image', source):
        flash(get_errors(product)['image'])

"""
from sqlalchemy.inspection import inspect
from sqlalchemy.orm.attributes import set_attribute
from sqlalchemy.orm.state import InstanceState

__all__ = 'RecordAccessor', 'SQLAlchemyRecordAccessor', 'get_errors'


#: The instance attribute that keeps error messages of a record.
ERRORS_ATTRIBUTE = '_image_behavior_errors'


def get_errors(record):
    """Gets the error messages added to ``record`` by
    :class:`SQLAlchemyRecordAccessor`.

    :param record: the entity
    :returns: the mapping of attribute names to the list of messages
    :rtype: :class:`typing.MutableMapping`\\ [:class:`str`, :class:`list`]

    """
    return record.__dict__.setdefault(ERRORS_ATTRIBUTE, {})


class RecordAccessor(object):
    """The interface of record accessors.

    :param record: the record to access
    :type record: :class:`object`

    """

    def __init__(self, record):
        self.record = record

    @property
    def type_name(self):
        """(:class:`str`) The class name of the record e.g.
        ``'BlogPost'``.

        """
        return type(self.record).__name__

    def get_attribute(self, name):
        """Gets the current value of the attribute ``name``.

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

        """
        raise NotImplementedError('get_attribute() has to be implemented')

    def set_attribute(self, name, value):
        """Sets the attribute ``name`` to ``value``.

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

        """
        raise NotImplementedError('set_attribute() has to be implemented')

    def is_attribute_changed(self, name):
        """Tells whether the attribute ``name`` has a pending change.

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

        """
        raise NotImplementedError('is_attribute_changed() has to be '
                                  'implemented')

    def add_error(self, name, message):
        """Reports the error ``message`` of the attribute ``name``.

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

        """
        raise NotImplementedError('add_error() has to be implemented')

    def __repr__(self):
        return '{0.__module__}.{0.__name__}({1!r})'.format(
            type(self), self.record
        )


class SQLAlchemyRecordAccessor(RecordAccessor):
    """Accessor of object-relationally mapped entities.  Changes are
    detected through the attribute history of the entity's
    :class:`~sqlalchemy.orm.state.InstanceState`, so they are visible
    until the session flushes.

    """

    def __init__(self, record):
        state = inspect(record, raiseerr=False)
        if not isinstance(state, InstanceState):
            raise TypeError('record must be a mapped entity, not ' +
                            repr(record))
        super(SQLAlchemyRecordAccessor, self).__init__(record)
        self.state = state

    def get_attribute(self, name):
        return getattr(self.record, name)

    def set_attribute(self, name, value):
        set_attribute(self.record, name, value)

    def is_attribute_changed(self, name):
        try:
            attr = self.state.attrs[name]
        except KeyError:
            raise KeyError('{0!r} has no mapped attribute {1!r}'.format(
                self.record, name
            ))
        return attr.history.has_changes()

    def add_error(self, name, message):
        add_error = getattr(self.record, 'add_error', None)
        if callable(add_error):
            add_error(name, message)
            return
        get_errors(self.record).setdefault(name, []).append(message)
