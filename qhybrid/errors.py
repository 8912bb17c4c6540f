# qhybrid/errors.py

"""
Exception classes shared across the qhybrid package.
"""

# ==============================================================================
#  Custom Exception Classes
# ==============================================================================

class QHybridError(Exception):
    """Base class for all errors raised by qhybrid."""
    pass

class ConfigurationError(QHybridError, ValueError):
    """Raised for unknown optimizer names, malformed options or arity mismatches."""
    pass

class ExecutorFailure(QHybridError, RuntimeError):
    """Raised when the external kernel executor fails. Never retried."""
    pass

class CacheIntegrityError(QHybridError, RuntimeError):
    """Raised when a parameter vector is inserted into the cache twice."""
    pass

class RunCancelled(QHybridError):
    """Raised inside a run that was cancelled through its ExecutionHandle."""
    pass

class DriverStateError(QHybridError, RuntimeError):
    """Raised when a run is started while another one is still in flight."""
    pass

class ResultConsumedError(QHybridError, RuntimeError):
    """Raised when the result of an ExecutionHandle is requested a second time."""
    pass
