"""Host session and anti-forgery checks for inbound actions.

Resolves the X-Session-Token header into a CallerIdentity. A missing or
unknown token is not an error here: it yields an anonymous caller, and the
subscription gate reports "must be logged in".
"""

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from contentgem.security.nonce import ACTION_SCOPE, verify_nonce
from contentgem.users.models import CallerIdentity, RequestContext
from contentgem.users.store import get_user_store

API_PATH_PREFIX = "/api/"

session_header = APIKeyHeader(name="X-Session-Token", auto_error=False)
nonce_header = APIKeyHeader(name="X-WP-Nonce", auto_error=False)


async def resolve_caller(token: str | None = Security(session_header)) -> CallerIdentity:
    if not token:
        return CallerIdentity.anonymous()

    user = await get_user_store().get_by_session_token(token)
    if user is None or user.status != "active":
        return CallerIdentity.anonymous()
    return CallerIdentity.from_record(user)


async def verify_action_nonce(
    nonce: str | None = Security(nonce_header),
    caller: CallerIdentity = Depends(resolve_caller),
) -> CallerIdentity:
    """Reject forged actions before any subscription work happens."""
    if not verify_nonce(nonce, caller.user_id, ACTION_SCOPE):
        raise HTTPException(status_code=403, detail="Invalid or expired security token")
    return caller


def request_context(request: Request) -> RequestContext:
    return RequestContext(
        user_agent=request.headers.get("user-agent", ""),
        referer=request.headers.get("referer", ""),
        is_async=request.headers.get("x-requested-with", "").lower() == "xmlhttprequest",
        is_api=request.url.path.startswith(API_PATH_PREFIX),
    )
