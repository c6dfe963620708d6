"""
maui_care.client.errors

Structured errors raised by `CareApiClient`.

Responsibilities:
- Classify remote failures into a small set of kinds from HTTP status and the
  service's `code` field.
- Map each kind to the message shown to end users.
"""

from __future__ import annotations

import enum

import httpx


class ErrorKind(enum.StrEnum):
    unauthorized = "unauthorized"
    not_found = "not_found"
    conflict = "conflict"
    inactive_resident = "inactive_resident"
    invalid = "invalid"
    timeout = "timeout"
    unavailable = "unavailable"
    unknown = "unknown"


class CareApiError(Exception):
    def __init__(
        self, kind: ErrorKind, message: str, *, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"CareApiError(kind={self.kind.value!r}, message={self.message!r})"


_STATUS_KINDS: dict[int, ErrorKind] = {
    401: ErrorKind.unauthorized,
    403: ErrorKind.unauthorized,
    404: ErrorKind.not_found,
    409: ErrorKind.conflict,
    422: ErrorKind.invalid,
    502: ErrorKind.unavailable,
    503: ErrorKind.unavailable,
    504: ErrorKind.timeout,
}


def from_response(response: httpx.Response) -> CareApiError:
    message = response.reason_phrase or f"HTTP {response.status_code}"
    code: str | None = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code") if isinstance(body.get("code"), str) else None
        detail = body.get("detail")
        if isinstance(detail, str):
            message = detail
        elif detail is not None:
            message = str(detail)

    # The service's code is authoritative; status is the fallback for foreign errors.
    kind = None
    if code is not None:
        try:
            kind = ErrorKind(code)
        except ValueError:
            kind = None
    if kind is None:
        kind = _STATUS_KINDS.get(response.status_code, ErrorKind.unknown)
    return CareApiError(kind, message, status_code=response.status_code)


def from_transport(exc: httpx.HTTPError) -> CareApiError:
    if isinstance(exc, httpx.TimeoutException):
        return CareApiError(ErrorKind.timeout, f"Request timed out: {exc}")
    return CareApiError(ErrorKind.unavailable, f"Care service unreachable: {exc}")


_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.unauthorized: (
        "You do not have permission to perform this action on this resident. "
        "Only the resident owner or administrators can make changes."
    ),
    ErrorKind.not_found: "The requested resident or record was not found.",
    ErrorKind.inactive_resident: "Cannot add records to an inactive resident.",
    ErrorKind.conflict: "A record with this identifier already exists.",
    ErrorKind.timeout: "The request timed out. Please check your connection and try again.",
    ErrorKind.unavailable: "Backend connection is not available. Please try again.",
}


def user_message(error: BaseException | None) -> str:
    """
    Human-readable text for an error, as shown by the presentation layer.
    Unclassified errors fall back to their own message.
    """

    if error is None:
        return "An unknown error occurred"
    if isinstance(error, CareApiError):
        return _USER_MESSAGES.get(error.kind, error.message)
    return str(error) or "An unknown error occurred"
