"""Session lookup against a JSON users file."""

import hmac
import json
import os

from contentgem.users.models import UserRecord


class JSONUserStore:
    """File-backed user store. Reloads on mtime change."""

    def __init__(self, path: str):
        self._path = path
        self._users: list[UserRecord] = []
        self._last_mtime: float = 0.0
        self._load()

    def _load(self) -> None:
        try:
            mtime = os.path.getmtime(self._path)
        except OSError:
            self._users = []
            return

        if mtime == self._last_mtime and self._users:
            return

        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)

        self._users = [UserRecord(**entry) for entry in data.get("users", [])]
        self._last_mtime = mtime

    async def get_by_session_token(self, token: str) -> UserRecord | None:
        """Constant-time token lookup across all users."""
        self._load()

        match: UserRecord | None = None
        candidate = token.encode("utf-8")
        for user in self._users:
            if hmac.compare_digest(candidate, user.session_token.encode("utf-8")):
                match = user
        return match


_store: JSONUserStore | None = None


def get_user_store() -> JSONUserStore:
    global _store
    if _store is None:
        from contentgem.config.settings import get_settings
        _store = JSONUserStore(get_settings().users_config_path)
    return _store
