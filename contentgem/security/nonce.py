"""Anti-forgery tokens scoped to a user and an action.

A nonce is an HMAC over (action, user_id, tick), where the tick advances
every half lifetime. Tokens from the current or the previous tick verify,
so a token stays valid for between half and one full lifetime.
"""

import hashlib
import hmac
import time

from contentgem.config.settings import get_settings

ACTION_SCOPE = "contentgem_wp_nonce"
NONCE_LENGTH = 20


def _tick(now: float | None = None) -> int:
    lifetime = get_settings().nonce_lifetime
    now = time.time() if now is None else now
    return int(now // (lifetime / 2))


def _sign(user_id: str, action: str, tick: int) -> str:
    secret = get_settings().nonce_secret.encode("utf-8")
    message = f"{action}|{user_id}|{tick}".encode("utf-8")
    return hmac.new(secret, message, hashlib.sha256).hexdigest()[:NONCE_LENGTH]


def create_nonce(user_id: str, action: str = ACTION_SCOPE, now: float | None = None) -> str:
    return _sign(user_id, action, _tick(now))


def verify_nonce(
    token: str | None, user_id: str, action: str = ACTION_SCOPE, now: float | None = None
) -> bool:
    if not token:
        return False
    tick = _tick(now)
    candidate = token.encode("utf-8")
    for t in (tick, tick - 1):
        if hmac.compare_digest(candidate, _sign(user_id, action, t).encode("utf-8")):
            return True
    return False
