from __future__ import annotations

import copy
import enum
import time
import traceback
import typing as t
import uuid
from datetime import datetime, timezone

import httpx
import pydantic

JSON = t.Dict[str, t.Any]


class ErrorCode(enum.IntEnum):
    # Client errors
    VALIDATION_ERROR = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    RATE_LIMITED = 429

    # Server errors
    INTERNAL_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    TIMEOUT = 504

    # Routing engine errors
    REMOTE_ENGINE_ERROR = 520
    REMOTE_ENGINE_TIMEOUT = 521
    REMOTE_ENGINE_INVALID_RESPONSE = 522


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StandardError(Exception):
    """A classified failure with a stable code.

    Instances are not mutated after construction; `with_request_id` returns a
    copy. `to_response()` produces the payload shown to MCP clients.
    """

    default_code = ErrorCode.INTERNAL_ERROR
    default_message = "An unexpected error occurred"

    def __init__(
        self,
        message: t.Optional[str] = None,
        code: t.Optional[ErrorCode] = None,
        details: t.Any = None,
        request_id: t.Optional[str] = None,
        *,
        timestamp: t.Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = ErrorCode(code if code is not None else self.default_code)
        self.details = details
        self.request_id = request_id
        self.timestamp = timestamp or _now_iso()

    @property
    def kind(self) -> str:
        return type(self).__name__

    def with_request_id(self, request_id: t.Optional[str]) -> "StandardError":
        if request_id is None or self.request_id is not None:
            return self
        clone = copy.copy(self)
        clone.request_id = request_id
        return clone

    def to_response(self) -> JSON:
        return {
            "error": self.kind,
            "code": int(self.code),
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
            "request_id": self.request_id,
        }


class ValidationError(StandardError):
    default_code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid input data"


class RateLimitError(StandardError):
    default_code = ErrorCode.RATE_LIMITED
    default_message = "Rate limit exceeded"


class RemoteEngineError(StandardError):
    default_code = ErrorCode.REMOTE_ENGINE_ERROR
    default_message = "Routing engine error"


class RemoteEngineTimeoutError(StandardError):
    default_code = ErrorCode.REMOTE_ENGINE_TIMEOUT
    default_message = "Routing engine timeout"


class RemoteEngineInvalidResponseError(StandardError):
    default_code = ErrorCode.REMOTE_ENGINE_INVALID_RESPONSE
    default_message = "Routing engine returned an invalid response"


def _request_details(exc: httpx.HTTPError) -> JSON:
    try:
        request = exc.request
    except RuntimeError:
        # request is only attached once the client has sent it
        return {}
    return {"url": str(request.url), "method": request.method}


def _response_data(response: httpx.Response) -> t.Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _validation_issues(exc: pydantic.ValidationError) -> t.List[JSON]:
    return [
        {
            "path": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
            "code": err.get("type", ""),
        }
        for err in exc.errors()
    ]


def classify(cause: BaseException, request_id: t.Optional[str] = None) -> StandardError:
    """Map any failure onto the error taxonomy."""
    if isinstance(cause, StandardError):
        return cause.with_request_id(request_id)

    if isinstance(cause, httpx.TimeoutException):
        return RemoteEngineTimeoutError(details=_request_details(cause), request_id=request_id)

    if isinstance(cause, httpx.HTTPStatusError):
        response = cause.response
        details = {
            "status": response.status_code,
            "status_text": response.reason_phrase,
            "data": _response_data(response),
            **_request_details(cause),
        }
        if response.status_code >= 500:
            message = f"Routing engine service error: {response.reason_phrase or 'Unknown error'}"
        else:
            message = f"Routing engine API error: {cause}"
        return RemoteEngineError(message, details=details, request_id=request_id)

    if isinstance(cause, httpx.HTTPError):
        return RemoteEngineError(
            f"Routing engine API error: {cause}",
            details=_request_details(cause) or None,
            request_id=request_id,
        )

    if isinstance(cause, pydantic.ValidationError):
        return ValidationError(details=_validation_issues(cause), request_id=request_id)

    return StandardError(
        str(cause) or None,
        ErrorCode.INTERNAL_ERROR,
        details={
            "original_error": type(cause).__name__,
            "stack": "".join(traceback.format_exception(type(cause), cause, cause.__traceback__)),
        },
        request_id=request_id,
    )


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"
