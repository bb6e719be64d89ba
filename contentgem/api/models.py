"""Result shapes returned by the ContentGem API client."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    NONE = "NONE"
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
    REQUEST_FAILED = "REQUEST_FAILED"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    REMOTE_ERROR = "REMOTE_ERROR"  # valid JSON, but the service reported failure


@dataclass
class RequestResult:
    """Normalized outcome of one call to the generation service.

    `body` keeps the decoded response object untouched (plus `status_code`),
    so remote fields the client does not know about are still reachable.
    """

    success: bool
    status_code: int = 500
    error_kind: ErrorKind = ErrorKind.NONE
    message: str = ""
    data: Any = None
    body: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.success and self.error_kind is ErrorKind.NONE:
            self.error_kind = ErrorKind.REMOTE_ERROR

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, status_code: int = 500) -> "RequestResult":
        return cls(success=False, status_code=status_code, error_kind=kind, message=message)

    @classmethod
    def from_payload(cls, payload: Any, status_code: int) -> "RequestResult":
        """Wrap a decoded JSON payload without interpreting remote semantics."""
        if not isinstance(payload, dict):
            # Bare arrays/scalars carry no success flag; trust the HTTP status
            return cls(
                success=200 <= status_code < 300,
                status_code=status_code,
                data=payload,
                body={"data": payload, "status_code": status_code},
            )

        body = {**payload, "status_code": status_code}
        success = payload.get("success") is True
        message = payload.get("message") or payload.get("error") or ""
        return cls(
            success=success,
            status_code=status_code,
            message=str(message),
            data=payload.get("data"),
            body=body,
        )

    def to_dict(self) -> dict:
        """Envelope form handed back to the host."""
        out = dict(self.body)
        out.update({
            "success": self.success,
            "status_code": self.status_code,
        })
        if not self.success:
            # Remote error codes win over the local classification
            out.setdefault("error", self.error_kind.value)
            out["message"] = self.message
        if self.data is not None:
            out["data"] = self.data
        return out
