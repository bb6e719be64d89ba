"""Subscription gate for the ContentGem plugin.

Decides per caller whether the remote generation service may be used.
Checks run in a fixed order and stop at the first failure:

1. the caller is logged in on the host (401 otherwise)
2. an API key is configured (400 otherwise)
3. a cached decision for the caller exists (returned verbatim)
4. the remote subscription is active and on an allowed plan (403 otherwise)

Only decisions from step 4 are cached; the first two reflect local state
that can change between calls.
"""

from contentgem.access.models import AccessDecision, EnforcementResult, denial_status
from contentgem.access.trust import is_plugin_originated_request
from contentgem.api.client import ContentGemClient, RequestGuard
from contentgem.api.models import ErrorKind, RequestResult
from contentgem.cache.store import CacheStore
from contentgem.config.settings import Settings, get_settings
from contentgem.logging.audit import get_audit_logger
from contentgem.users.models import CallerIdentity, RequestContext

CACHE_KEY_PREFIX = "subscription_"
SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"


def cache_key(caller_id: str) -> str:
    return f"{CACHE_KEY_PREFIX}{caller_id}"


def _text_field(subscription: dict, key: str) -> str:
    # Plan ids may arrive as numbers; compare and display them as text
    value = subscription.get(key)
    return "" if value is None else str(value)


class AccessGate:
    """Subscription-based access control with a per-caller decision cache."""

    def __init__(
        self,
        client: ContentGemClient,
        store: CacheStore,
        settings: Settings | None = None,
    ):
        # `client` must be ungated: the gate uses it to look up the subscription
        self._client = client
        self._store = store
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings if self._settings is not None else get_settings()

    @property
    def upgrade_url(self) -> str:
        return self.settings.upgrade_url

    async def check_access(self, caller: CallerIdentity) -> AccessDecision:
        """Decide whether `caller` may use the generation service. Never raises."""
        if not caller.authenticated:
            return AccessDecision(
                can_use=False,
                error="You must be logged in to use ContentGem AI plugin.",
                status_code=401,
            )

        if not self.settings.contentgem_api_key:
            return AccessDecision(
                can_use=False,
                error="ContentGem API key not configured. Please contact your administrator.",
                status_code=400,
            )

        key = cache_key(caller.user_id)
        cached = await self._read_cache(key)
        if cached is not None:
            self._log_decision(caller, cached, cache_hit=True)
            return cached

        decision = await self._evaluate_subscription()
        await self._write_cache(key, decision)
        self._log_decision(caller, decision, cache_hit=False)
        return decision

    async def _evaluate_subscription(self) -> AccessDecision:
        try:
            response = await self._client.get_subscription_status()

            if not response.success:
                return AccessDecision(
                    can_use=False,
                    error="Could not reach ContentGem: failed to verify subscription status.",
                    status_code=response.status_code or 500,
                )

            data = response.data if isinstance(response.data, dict) else {}
            subscription = data.get("subscription")
            if not isinstance(subscription, dict):
                subscription = {}
            status = _text_field(subscription, "status")
            plan_slug = _text_field(subscription, "planSlug")
            plan_name = _text_field(subscription, "planName")

            if status != "active":
                return AccessDecision(
                    can_use=False,
                    plan_name=plan_name,
                    error="ContentGem subscription not active.",
                    status_code=403,
                )

            allowed = self.settings.allowed_plans_list
            if plan_slug.lower() not in allowed:
                tiers = "/".join(p.capitalize() for p in allowed)
                return AccessDecision(
                    can_use=False,
                    plan_name=plan_name,
                    error=f"ContentGem AI plugin requires {tiers}, current plan: {plan_name}",
                    status_code=403,
                )

            return AccessDecision(can_use=True, plan_name=plan_name, status_code=200)

        except Exception as e:
            get_audit_logger().exception("Subscription evaluation failed")
            return AccessDecision(
                can_use=False,
                error=f"ContentGem error checking subscription: {e}",
                status_code=500,
            )

    async def _read_cache(self, key: str) -> AccessDecision | None:
        try:
            entry = await self._store.get(key)
        except Exception:
            # An unavailable cache degrades to a remote lookup
            get_audit_logger().warning("Decision cache read failed", exc_info=True)
            return None
        if entry is None:
            return None
        return AccessDecision.from_dict(entry)

    async def _write_cache(self, key: str, decision: AccessDecision) -> None:
        try:
            await self._store.set(key, decision.to_dict(), self.settings.subscription_cache_ttl)
        except Exception:
            get_audit_logger().warning("Decision cache write failed", exc_info=True)

    async def clear_cache(self, caller_id: str) -> None:
        """Drop the cached decision so the next check asks the remote service."""
        await self._store.delete(cache_key(caller_id))
        get_audit_logger().info(
            "Subscription cache cleared",
            extra={"audit_data": {"caller_id": caller_id}},
        )

    async def require_access(
        self, caller: CallerIdentity, capability: str = "edit_posts"
    ) -> EnforcementResult:
        """Enforcement boundary: both the local capability and the subscription are required."""
        if not caller.can(capability):
            decision = await self.check_access(caller)
            if decision.can_use:
                message = "You do not have sufficient permissions to perform this action."
                status_code = 403
            else:
                message = decision.error
                status_code = denial_status(decision.status_code)
            return self._deny(caller, message, status_code)

        decision = await self.check_access(caller)
        if not decision.can_use:
            return self._deny(caller, decision.error, denial_status(decision.status_code))

        return EnforcementResult(allowed=True)

    def denial_payload(self, message: str) -> dict:
        return {
            "success": False,
            "error": SUBSCRIPTION_REQUIRED,
            "message": message,
            "upgrade_url": self.upgrade_url,
        }

    def _deny(self, caller: CallerIdentity, message: str, status_code: int) -> EnforcementResult:
        get_audit_logger().warning(
            "Access denied",
            extra={"audit_data": {
                "caller_id": caller.user_id,
                "status_code": status_code,
                "reason": message,
            }},
        )
        return EnforcementResult(
            allowed=False,
            status_code=status_code,
            denial=self.denial_payload(message),
        )

    async def get_subscription_info(self, caller: CallerIdentity) -> dict:
        """Display projection of check_access."""
        decision = await self.check_access(caller)
        if not decision.can_use:
            return {
                "status": "error",
                "plan_name": decision.plan_name,
                "message": decision.error,
                "upgrade_url": self.upgrade_url,
            }
        return {
            "status": "success",
            "plan_name": decision.plan_name,
            "message": f"You have access to ContentGem AI plugin with {decision.plan_name} plan.",
            "upgrade_url": self.upgrade_url,
        }

    def guard_for(self, caller: CallerIdentity, context: RequestContext) -> RequestGuard:
        """Build a client guard that gates plugin-originated requests only."""
        site_url = self.settings.site_url

        async def guard() -> RequestResult | None:
            if not is_plugin_originated_request(context, site_url):
                return None
            decision = await self.check_access(caller)
            if decision.can_use:
                return None
            return RequestResult(
                success=False,
                status_code=decision.status_code,
                error_kind=ErrorKind.SUBSCRIPTION_REQUIRED,
                message=decision.error,
                body=self.denial_payload(decision.error),
            )

        return guard

    def _log_decision(self, caller: CallerIdentity, decision: AccessDecision, cache_hit: bool) -> None:
        get_audit_logger().info(
            "Subscription decision",
            extra={"audit_data": {
                "caller_id": caller.user_id,
                "can_use": decision.can_use,
                "status_code": decision.status_code,
                "plan_name": decision.plan_name,
                "cache_hit": cache_hit,
            }},
        )
