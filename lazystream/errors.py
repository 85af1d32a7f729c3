"""Error types raised by lazystream."""


class LazyStreamError(Exception):
    """Base class for every error raised by this library."""
    pass


class InvalidArgumentError(LazyStreamError, ValueError):
    """Raised when an argument is outside its allowed range."""
    pass


class IllegalStateError(LazyStreamError, RuntimeError):
    """Raised when an operation is not valid in the current state."""
    pass


class WrappedProducerError(LazyStreamError, RuntimeError):
    """Raised by ``unchecked`` callbacks; the original error is ``__cause__``."""
    pass
