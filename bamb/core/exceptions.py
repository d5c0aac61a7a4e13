"""Error taxonomy for the BAMB backend.

Every error carries a stable ``message_code`` that clients branch on,
independent of the HTTP status. Domain errors are raised at the point of
detection and travel up unchanged; anything else is wrapped into
``UnexpectedError`` at a service boundary.
"""

from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional

from bamb.core.logger import get_logger

logger = get_logger(__name__)

UNEXPECTED_ERROR = "unexpectedError"
MISSING_PRIVILEGES = "missingPrivileges"
FORBIDDEN_ACTION = "forbiddenAction"
MISSING_TOKEN = "missingToken"
INVALID_TOKEN = "invalidToken"
PEER_NOT_FOUND = "peerNotFound"
PEER_METHOD_NOT_FOUND = "peerMethodNotFound"
DEADLINE_EXCEEDED = "deadlineExceeded"
INVALID_REQUEST = "invalidRequest"


class BambError(Exception):
    """Base class for errors that reach the caller with a message code."""

    status_code = 520

    def __init__(
        self,
        message: str,
        message_code: str,
        message_data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.message_code = message_code
        self.message_data = message_data
        self.thrown_on = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "messageCode": self.message_code,
            "messageData": self.message_data,
            "thrownOn": self.thrown_on.isoformat(),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message_code!r}, {self.message!r})"


class BadRequestError(BambError):
    status_code = 400


class AuthenticationError(BambError):
    status_code = 401


class PermissionDeniedError(BambError):
    """Resolved attribute set is empty, or a query touches a forbidden field."""

    status_code = 403


class NotFoundError(BambError):
    status_code = 404


class ConflictError(BambError):
    """Uniqueness or state-precondition violation.

    ``precondition=True`` reports a failed precondition (412) instead of a
    plain conflict (409).
    """

    status_code = 409

    def __init__(self, message: str, message_code: str, message_data=None, *, precondition: bool = False):
        super().__init__(message, message_code, message_data)
        if precondition:
            self.status_code = 412


class PeerNotFoundError(BambError):
    """A declared peer module or peer method could not be resolved.

    This is a configuration error; it is raised at startup validation and,
    failing that, at the first call.
    """

    status_code = 500

    def __init__(self, peer: str, method: Optional[str] = None):
        if method is None:
            super().__init__(
                f"Peer '{peer}' is not registered",
                PEER_NOT_FOUND,
                {"peer": peer},
            )
        else:
            super().__init__(
                f"Peer '{peer}' does not expose '{method}'",
                PEER_METHOD_NOT_FOUND,
                {"peer": peer, "method": method},
            )
        self.peer = peer
        self.method = method


class DeadlineExceededError(BambError):
    status_code = 504

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"{operation} did not complete within {timeout}s",
            DEADLINE_EXCEEDED,
            {"operation": operation, "timeout": timeout},
        )


class ServiceUnavailableError(BambError):
    """Raised while modules are still starting and the registry is closed."""

    status_code = 503

    def __init__(self, message: str = "Service is starting", message_code: str = "serviceNotReady"):
        super().__init__(message, message_code)


class UnexpectedError(BambError):
    """Generic internal error; never carries the original exception text."""

    status_code = 500

    def __init__(self, message: str = "Unexpected error", message_code: str = UNEXPECTED_ERROR):
        super().__init__(message, message_code)


def service_boundary(message: str, message_code: str) -> Callable:
    """Decorator for async service operations.

    ``BambError`` subclasses pass through untouched. Any other exception is
    logged with its traceback and replaced by ``UnexpectedError`` carrying
    ``message`` and ``message_code``.

    Usage:
        @service_boundary("Cannot list inventory elements", "cannotListInventoryElements")
        async def list_elements(self, caller, project_id, ...):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except BambError:
                raise
            except Exception as exc:
                logger.exception("%s failed: %s", func.__qualname__, exc)
                raise UnexpectedError(message, message_code) from exc

        return wrapper
    return decorator
