"""Exceptions raised by the erosion engine.

The engine does no I/O, so apart from parameter validation every error here
is a broken usage contract or a failed backend run.
"""


class ErosionError(RuntimeError):
    """Base class for erosion engine errors."""


class NotBoundError(ErosionError):
    """Operation needs grid buffers but no heightmap source is bound."""


class AlreadyBoundError(ErosionError):
    """bind() called on a controller that still holds buffers."""


class AlreadyRunningError(ErosionError):
    """Operation not allowed while an erosion run is active."""


class BackendUnavailableError(ErosionError):
    """Requested backend has no buffers (e.g. GPU without device mirrors)."""


class ErosionBackendError(ErosionError):
    """A pipeline failed part way through a run."""


class DegenerateScoreError(ErosionError, ValueError):
    """Roughness score is undefined because the mean slope is zero."""
