from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, TypeVar, Union

_T = TypeVar("_T")


class ServerErrorCode(str, Enum):
    """Error codes FCM documents for the v1 `messages:send` endpoint."""

    UNSPECIFIED = "UNSPECIFIED_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNREGISTERED = "UNREGISTERED"
    SENDER_ID_MISMATCH = "SENDER_ID_MISMATCH"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    UNAVAILABLE = "UNAVAILABLE"
    INTERNAL = "INTERNAL"
    THIRD_PARTY_AUTH_ERROR = "THIRD_PARTY_AUTH_ERROR"

    @property
    def label(self) -> str:
        return _LABELS[self]


# Rendered as "<label>: <detail>". The trailing space in "Internal " is part of
# the established output format ("Internal : <detail>").
_LABELS: dict[ServerErrorCode, str] = {
    ServerErrorCode.UNSPECIFIED: "UnspecifiedError",
    ServerErrorCode.INVALID_ARGUMENT: "Invalid Argument",
    ServerErrorCode.UNREGISTERED: "Unregistered",
    ServerErrorCode.SENDER_ID_MISMATCH: "Sender Id Mismatch",
    ServerErrorCode.QUOTA_EXCEEDED: "Quota Exceeded",
    ServerErrorCode.UNAVAILABLE: "Unavailable",
    ServerErrorCode.INTERNAL: "Internal ",
    ServerErrorCode.THIRD_PARTY_AUTH_ERROR: "Third Party Auth Error",
}

_STATUS_CODES: dict[int, ServerErrorCode] = {
    400: ServerErrorCode.INVALID_ARGUMENT,
    401: ServerErrorCode.THIRD_PARTY_AUTH_ERROR,
    403: ServerErrorCode.SENDER_ID_MISMATCH,
    404: ServerErrorCode.UNREGISTERED,
    429: ServerErrorCode.QUOTA_EXCEEDED,
    500: ServerErrorCode.INTERNAL,
    503: ServerErrorCode.UNAVAILABLE,
}

_RETRYABLE_CODES = frozenset({ServerErrorCode.QUOTA_EXCEEDED, ServerErrorCode.UNAVAILABLE})


@dataclass(frozen=True, slots=True)
class ServerErrorKind:
    """A failure reported by FCM: the classified code plus the server's detail text."""

    code: ServerErrorCode
    detail: str

    @property
    def retryable(self) -> bool:
        # FCM asks senders to back off and retry these; nothing here retries.
        return self.code in _RETRYABLE_CODES

    def __str__(self) -> str:
        return f"{self.code.label}: {self.detail}"


def classify(status_code: int, detail: str) -> ServerErrorKind:
    """
    Map an HTTP status code from FCM onto a `ServerErrorKind`.

    Lookup is exact-match only. Codes outside the table classify as
    `UNSPECIFIED`, so this never fails.
    """
    code = _STATUS_CODES.get(status_code, ServerErrorCode.UNSPECIFIED)
    return ServerErrorKind(code=code, detail=detail)


class ClientError(Exception):
    """
    Base class for every failure raised by the FCM client.

    Only the subclasses are raised; each one defines the text it renders as.
    """

    message: ClassVar[str]

    def __new__(cls, *args: object, **kwargs: object) -> ClientError:
        if cls is ClientError:
            raise TypeError("ClientError cannot be instantiated; raise one of its subclasses")
        return super().__new__(cls, *args, **kwargs)

    def __str__(self) -> str:
        return self.message

    def _identity(self) -> tuple[object, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClientError):
            return NotImplemented
        return type(self) is type(other) and self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash((type(self), self._identity()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class AuthError(ClientError):
    """An OAuth2 access token could not be obtained."""

    message = "authentication error"


class ConfigError(ClientError):
    """The client could not be configured (e.g. TLS backend initialization failed)."""

    message = "configuration error"


class DeserializationError(ClientError):
    """FCM answered with a body that does not have the expected shape."""

    message = "deserialization error"


class RequestTimeoutError(ClientError):
    """
    No response from FCM within the configured timeout.

    FCM expects senders to apply exponential back-off before retrying.
    """

    message = "timeout"


class ServerError(ClientError):
    """FCM rejected the request. `kind` carries the classified reason."""

    def __init__(
        self,
        kind: ServerErrorKind,
        *,
        status_code: int | None = None,
        fcm_error_code: str | None = None,
    ) -> None:
        super().__init__(kind)
        self.kind = kind
        # Informational only; equality is decided by `kind`.
        self.status_code = status_code
        self.fcm_error_code = fcm_error_code

    def __str__(self) -> str:
        return f"firebase error: {self.kind}"

    def _identity(self) -> tuple[object, ...]:
        return (self.kind,)

    def __repr__(self) -> str:
        return f"ServerError({self.kind!r})"


# Outcome of one fallible operation when reported as a value instead of raised.
Result = Union[_T, ClientError]


def render(error: ClientError | ServerErrorKind) -> str:
    return str(error)
