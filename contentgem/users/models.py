"""Host-side identity models."""

from dataclasses import dataclass, field


@dataclass
class UserRecord:
    user_id: str
    session_token: str
    capabilities: list[str] = field(default_factory=list)
    status: str = "active"  # "active" | "disabled"


@dataclass(frozen=True)
class CallerIdentity:
    """Who is calling, as far as the host knows."""

    user_id: str = ""
    authenticated: bool = False
    capabilities: frozenset[str] = frozenset()

    def can(self, capability: str) -> bool:
        return self.authenticated and capability in self.capabilities

    @classmethod
    def anonymous(cls) -> "CallerIdentity":
        return cls()

    @classmethod
    def from_record(cls, record: UserRecord) -> "CallerIdentity":
        return cls(
            user_id=record.user_id,
            authenticated=True,
            capabilities=frozenset(record.capabilities),
        )


@dataclass(frozen=True)
class RequestContext:
    """Inbound request metadata used to classify plugin-originated traffic."""

    user_agent: str = ""
    referer: str = ""
    is_async: bool = False  # background/AJAX request
    is_api: bool = False  # REST-style API request
