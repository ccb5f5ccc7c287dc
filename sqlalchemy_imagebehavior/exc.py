""":mod:`sqlalchemy_imagebehavior.exc` --- Exceptions
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

"""

__all__ = ('BackendError', 'ImageBehaviorError', 'TransformError',
           'ValidationError')


class ImageBehaviorError(Exception):
    """The base exception of all errors this package raises on purpose."""


class ValidationError(ImageBehaviorError):
    """Raised when an :class:`~.source.ImageSource` is absent or cannot
    be used.  An upload fails with it before any side effect.

    """


class TransformError(ImageBehaviorError):
    """Raised by a :class:`~.filter.Filter` on malformed input,
    an unsupported dimension, or a failing image backend.  It aborts
    the rest of the filter chain.

    """


class BackendError(ImageBehaviorError):
    """Raised by :class:`~.connector.Connector` implementations when
    the storage backend fails.  Consumer methods of the connector turn
    it into a false return and :attr:`~.connector.Connector.last_error`.

    """
