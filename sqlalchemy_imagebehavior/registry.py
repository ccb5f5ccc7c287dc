""":mod:`sqlalchemy_imagebehavior.registry` --- Configurable components
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Connectors, filters, and placeholders of image attributes are usually
written as plain configuration: a mapping whose ``'class'`` key names
the component and whose other keys are its constructor parameters::

    {'class': 'fs', 'path': '/var/images', 'base_url': '/images/'}
    {'class': 'resize', 'dimension': (100, 200)}
    {'class': 'myapp.images:WatermarkFilter', 'text': 'Sample'}

The name is either a tag registered in one of the registries
(:data:`connectors`, :data:`filters`, :data:`placeholders`) or
a dotted import path.  A class or an already made instance
can be used in place of the configuration as well.

Tags are registered with dotted paths so that optional backends
(e.g. Wand for :mod:`~sqlalchemy_imagebehavior.filters.wand`) are
imported only when they are configured.

"""
import collections.abc
import functools
import logging

from .connector import Connector
from .filter import Filter
from .placeholder import Placeholder
from .util import import_string

__all__ = 'Registry', 'connectors', 'filters', 'placeholders'


class Registry(object):
    """The mapping of tags to constructors of the ``base`` type.

    :param kind: the human readable name of the components
                 e.g. ``'connector'``
    :type kind: :class:`str`
    :param base: the type every component has to be
    :type base: :class:`type`
    :param duck: an optional method name.  objects having the method
                 are accepted as components even if they aren't
                 instances of ``base``
    :type duck: :class:`str`

    """

    logger = logging.getLogger(__name__ + '.Registry')

    def __init__(self, kind, base, duck=None):
        self.kind = kind
        self.base = base
        self.duck = duck
        self.targets = {}

    def is_component(self, obj):
        if isinstance(obj, self.base):
            return True
        elif self.duck is None or isinstance(obj, type):
            return False
        return callable(getattr(obj, self.duck, None))

    def register(self, name, target=None):
        """Registers the ``target`` constructor under the tag ``name``.
        The ``target`` can be a class, a factory function, or a dotted
        import path of them.  It can be used as a class decorator as
        well::

            @connectors.register('memory')
            class MemoryConnector(Connector):
                ...

        :param name: the tag
        :type name: :class:`str`
        :param target: the constructor or its import path
        :returns: the ``target``

        """
        if target is None:
            return functools.partial(self.register, name)
        if not (callable(target) or isinstance(target, str)):
            raise TypeError('target must be callable or an import path, '
                            'not ' + repr(target))
        self.targets[name] = target
        self.logger.debug('registered %s %r: %r', self.kind, name, target)
        return target

    def resolve(self, name):
        """Finds the constructor of ``name``, which is a registered tag
        or a dotted import path.

        :param name: the tag or import path
        :type name: :class:`str`
        :returns: the constructor
        :raise LookupError: when there's no such constructor

        """
        target = self.targets.get(name, name)
        if isinstance(target, str):
            if '.' not in target and ':' not in target:
                raise LookupError('no such {0}: {1!r}'.format(self.kind, name))
            try:
                target = import_string(target)
            except ImportError as e:
                raise LookupError('failed to import {0} {1!r}: {2}'.format(
                    self.kind, name, e
                ))
        return target

    def create(self, config, **defaults):
        """Makes a component from the ``config``.

        :param config: an instance of :attr:`base` (returned as it is),
                       a constructor, a tag or import path string, or
                       a mapping of ``'class'`` and constructor parameters
        :param \\*\\*defaults: constructor parameters used when ``config``
                             doesn't have them
        :returns: the component
        :raise LookupError: when the constructor cannot be found
        :raise TypeError: when ``config`` or the made component is invalid

        """
        if self.is_component(config):
            return config
        elif isinstance(config, collections.abc.Mapping):
            params = dict(config)
            try:
                target = params.pop('class')
            except KeyError:
                raise TypeError('{0} config must have the class key: '
                                '{1!r}'.format(self.kind, config))
        else:
            target = config
            params = {}
        if isinstance(target, str):
            target = self.resolve(target)
        if not callable(target):
            raise TypeError('{0} config must be a mapping, a string, or '
                            'callable, not {1!r}'.format(self.kind, config))
        for key, value in defaults.items():
            params.setdefault(key, value)
        component = target(**params)
        if not self.is_component(component):
            raise TypeError('{0} must be an instance of {1.__module__}.'
                            '{1.__name__}, not {2!r}'.format(
                                self.kind, self.base, component
                            ))
        return component

    def __contains__(self, name):
        return name in self.targets

    def __repr__(self):
        return '<{0.__module__}.{0.__name__} {1!r} {2!r}>'.format(
            type(self), self.kind, sorted(self.targets)
        )


#: (:class:`Registry`) The registry of :class:`~.connector.Connector` types.
connectors = Registry('connector', Connector)
connectors.register('fs', __package__ + '.connectors.fs:FileSystemConnector')
connectors.register(
    'http-fs',
    __package__ + '.connectors.fs:HttpExposedFileSystemConnector'
)

#: (:class:`Registry`) The registry of :class:`~.filter.Filter` types.
filters = Registry('filter', Filter)
filters.register('resize', __package__ + '.filters.wand:ResizeFilter')
filters.register('format', __package__ + '.filters.wand:FormatFilter')

#: (:class:`Registry`) The registry of :class:`~.placeholder.Placeholder`
#: types.
placeholders = Registry('placeholder', Placeholder, duck='generate_url')
placeholders.register('placebear', __package__ + '.placeholder:PlaceBear')
placeholders.register('static',
                      __package__ + '.placeholder:StaticPlaceholder')
placeholders.register('template', __package__ + '.placeholder:Placeholder')
