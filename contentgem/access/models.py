"""Access decision and enforcement result models."""

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class AccessDecision:
    can_use: bool
    plan_name: str = ""
    error: str = ""
    status_code: int = 200

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AccessDecision":
        return cls(
            can_use=bool(data.get("can_use", False)),
            plan_name=str(data.get("plan_name", "")),
            error=str(data.get("error", "")),
            status_code=int(data.get("status_code", 500)),
        )


@dataclass(frozen=True)
class EnforcementResult:
    """Outcome of require_access; the host decides how to abort on denial."""

    allowed: bool
    status_code: int = 200
    denial: dict = field(default_factory=dict)


def denial_status(decision_status: int) -> int:
    """HTTP status used to abort a denied action: 401 when not logged in, else 403."""
    return 401 if decision_status == 401 else 403


class AccessDeniedError(Exception):
    """Aborts an action; the app renders `payload` as the response body."""

    def __init__(self, status_code: int, payload: dict):
        super().__init__(payload.get("message", "Access denied"))
        self.status_code = status_code
        self.payload = payload
