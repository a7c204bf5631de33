"""Error taxonomy shared by the service layer and the HTTP surface.

Callers get one of three classes of failure:

- the request may not see the scene (``AccessDenied``, ``AuthenticationFailed``),
- the input was invalid (``ValidationError``, ``UsernameTaken``, ``NotFound``,
  ``RangeNotSatisfiable``),
- a downstream store failed (``StorageError``, ``PersistenceError``,
  ``QueueError``). Only this last class is retryable.
"""

from typing import Optional, Tuple


class NerfServeError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(NerfServeError):
    """Uploaded file or request parameters are invalid."""

    status_code = 400


class AuthenticationFailed(NerfServeError):
    status_code = 401


class AccessDenied(NerfServeError):
    """User is not authorized for the requested scene."""

    status_code = 403


class NotFound(NerfServeError):
    """Unknown scene, user, output type or iteration."""

    status_code = 404


class UsernameTaken(NerfServeError):
    status_code = 409


class RangeNotSatisfiable(NerfServeError):
    status_code = 416

    def __init__(self, message: str = "", size: int = 0):
        super().__init__(message)
        self.size = size


class DownstreamError(NerfServeError):
    """A filesystem, database or broker call failed.

    The submission pipeline commits each step to a different store without
    compensation. When one of these errors escapes it, ``scene_id`` and
    ``committed_steps`` record what was left behind.
    """

    status_code = 503
    retryable = True

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.scene_id: Optional[str] = None
        self.committed_steps: Tuple[str, ...] = ()


class StorageError(DownstreamError):
    pass


class PersistenceError(DownstreamError):
    pass


class QueueError(DownstreamError):
    pass
