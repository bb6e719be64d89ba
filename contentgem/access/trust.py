"""Classifies inbound requests that come from the host's own surfaces.

Only plugin-originated traffic is gated; other outbound calls bypass the
subscription check entirely.
"""

from contentgem.users.models import RequestContext

HOST_USER_AGENT_MARKER = "WordPress"


def is_plugin_originated_request(context: RequestContext, site_url: str = "") -> bool:
    """True if ANY host signal matches."""
    if HOST_USER_AGENT_MARKER in context.user_agent:
        return True

    if site_url and context.referer and context.referer.startswith(site_url):
        return True

    if context.is_async:
        return True

    if context.is_api:
        return True

    return False
