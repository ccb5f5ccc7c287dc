""":mod:`sqlalchemy_imagebehavior.filter` --- Image filter interface
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Filters transform a :class:`~.mediator.Mediator` in place before it's
uploaded.  Filters of an attribute are applied in the order they are
configured, and the first failing filter aborts the rest of the chain.

Implementations built on Wand_ live in :mod:`sqlalchemy_imagebehavior.
filters.wand`.

.. _Wand: https://docs.wand-py.org/

"""
from .exc import TransformError

__all__ = 'Filter', 'TransformError', 'apply_filters'


class Filter(object):
    """The interface of image filters."""

    def apply(self, mediator):
        """Transforms the image data of ``mediator`` in place.
        It may change :attr:`~.mediator.Mediator.extension` as well.

        :param mediator: the image to transform
        :type mediator: :class:`~.mediator.Mediator`
        :raise TransformError: when the image cannot be transformed

        .. note::

           This is an abstract method which has to be implemented
           (overridden) by subclasses.

        """
        raise NotImplementedError('apply() has to be implemented')


def apply_filters(filters, mediator):
    """Applies the ``filters`` to the ``mediator`` in order.

    :param filters: filters to apply
    :type filters: :class:`typing.Iterable`\\ [:class:`Filter`]
    :param mediator: the image to transform
    :type mediator: :class:`~.mediator.Mediator`
    :returns: the same ``mediator``
    :rtype: :class:`~.mediator.Mediator`
    :raise TransformError: when any of ``filters`` fails.  the rest of
                           ``filters`` are not applied

    """
    for filter_ in filters:
        if not isinstance(filter_, Filter):
            raise TypeError('filter must be an instance of '
                            'sqlalchemy_imagebehavior.filter.Filter, not ' +
                            repr(filter_))
        filter_.apply(mediator)
    return mediator
