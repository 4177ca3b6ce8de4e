"""Error taxonomy shared by services and routes. Callers switch on `kind`."""
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    GATEWAY_FAILURE = "gateway_failure"


HTTP_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INSUFFICIENT_CREDITS: 402,
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.GATEWAY_FAILURE: 502,
}


class ServiceError(Exception):
    kind = None
    default_message = "Request failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self):
        return HTTP_STATUS.get(self.kind, 500)

    def to_dict(self):
        return {"error": self.message, "kind": self.kind.value}


class NotFound(ServiceError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class Unauthenticated(ServiceError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Not authorized to access this route"


class Forbidden(ServiceError):
    kind = ErrorKind.FORBIDDEN
    default_message = "You do not have permission to access this project"


class InsufficientCredits(ServiceError):
    kind = ErrorKind.INSUFFICIENT_CREDITS
    default_message = "Insufficient credits"


class InvalidArgument(ServiceError):
    kind = ErrorKind.INVALID_ARGUMENT
    default_message = "Invalid argument"


class InvalidState(ServiceError):
    kind = ErrorKind.INVALID_STATE
    default_message = "Invalid state"


class Conflict(ServiceError):
    kind = ErrorKind.CONFLICT
    default_message = "Conflict"


class GatewayFailure(ServiceError):
    """Generation call failed; `cause` keeps the underlying exception if any."""

    kind = ErrorKind.GATEWAY_FAILURE
    default_message = "AI generation failed"

    def __init__(self, message=None, cause=None):
        super().__init__(message)
        self.cause = cause
