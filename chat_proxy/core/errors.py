"""Fehler-Taxonomie des Proxys. Erwartete Ablehnungen (Validierung, Rate-Limit,
CORS, Upstream) sind Werte vom Typ Rejection, keine Exceptions."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from fastapi.responses import JSONResponse


class RejectionKind(str, Enum):
    MALFORMED_BODY = "MalformedBody"
    MISSING_INPUT = "MissingInput"
    EMPTY_INPUT = "EmptyInput"
    INPUT_TOO_LONG = "InputTooLong"
    SUSPICIOUS_MARKUP = "SuspiciousMarkup"
    CODE_INJECTION_SUSPECTED = "CodeInjectionSuspected"
    INVALID_CHAT_ID = "InvalidChatId"
    RATE_LIMITED = "RateLimited"
    CORS_DENIED = "CorsDenied"
    PAYLOAD_TOO_LARGE = "PayloadTooLarge"
    UPSTREAM_REJECTED = "UpstreamRejected"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    UPSTREAM_UNREACHABLE = "UpstreamUnreachable"
    ROUTE_NOT_FOUND = "RouteNotFound"
    UNEXPECTED_ERROR = "UnexpectedError"


# Familie "ValidationError": Fehler des Clients, immer HTTP 400.
VALIDATION_KINDS = frozenset({
    RejectionKind.MALFORMED_BODY,
    RejectionKind.MISSING_INPUT,
    RejectionKind.EMPTY_INPUT,
    RejectionKind.INPUT_TOO_LONG,
    RejectionKind.SUSPICIOUS_MARKUP,
    RejectionKind.CODE_INJECTION_SUSPECTED,
    RejectionKind.INVALID_CHAT_ID,
})

GENERIC_UNAVAILABLE = "Service temporarily unavailable. Please try again later."


@dataclass(frozen=True)
class Rejection:
    """Begründete Ablehnung einer Anfrage inkl. HTTP-Status und Client-Meldung."""

    kind: RejectionKind
    status_code: int
    message: str
    retry_after: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_validation_error(self) -> bool:
        return self.kind in VALIDATION_KINDS

    def to_response(self) -> JSONResponse:
        content = {"error": self.message}
        headers = dict(self.headers)
        if self.retry_after is not None:
            content["retryAfter"] = self.retry_after
            headers["Retry-After"] = str(self.retry_after)
        return JSONResponse(status_code=self.status_code, content=content, headers=headers)


def validation_error(kind: RejectionKind, message: str) -> Rejection:
    return Rejection(kind=kind, status_code=400, message=message)


def rate_limited(message: str, retry_after: int, headers: Optional[Dict[str, str]] = None) -> Rejection:
    return Rejection(
        kind=RejectionKind.RATE_LIMITED,
        status_code=429,
        message=message,
        retry_after=retry_after,
        headers=headers or {},
    )


CORS_DENIED = Rejection(RejectionKind.CORS_DENIED, 403, "Not allowed by CORS")
PAYLOAD_TOO_LARGE = Rejection(RejectionKind.PAYLOAD_TOO_LARGE, 413, "Request body too large")
UPSTREAM_REJECTED = Rejection(RejectionKind.UPSTREAM_REJECTED, 400, "Unable to process request. Please try again.")
UPSTREAM_UNAVAILABLE = Rejection(RejectionKind.UPSTREAM_UNAVAILABLE, 503, GENERIC_UNAVAILABLE)
UPSTREAM_UNREACHABLE = Rejection(RejectionKind.UPSTREAM_UNREACHABLE, 500, GENERIC_UNAVAILABLE)
ROUTE_NOT_FOUND = Rejection(RejectionKind.ROUTE_NOT_FOUND, 404, "Endpoint not found")
UNEXPECTED_ERROR = Rejection(RejectionKind.UNEXPECTED_ERROR, 500, "Internal server error")
