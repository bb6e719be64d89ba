"""HTTP client for the ContentGem generation service.

Every public operation returns a RequestResult; transport, JSON and file
errors are folded into the result instead of raised. The client performs
no retries.
"""

import copy
import json
import mimetypes
import os
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

import httpx

from contentgem.api.models import ErrorKind, RequestResult
from contentgem.config.settings import Settings, get_settings
from contentgem.logging.audit import RequestTimer, get_audit_logger

# Consulted before each outbound call; returns a denial result or None to proceed
RequestGuard = Callable[[], Awaitable[RequestResult | None]]


def path_segment(value: str) -> str:
    """Encode an identifier as exactly one URL path segment.

    Slashes are escaped and bare dot segments are percent-encoded, so an id
    can never resolve to a sibling endpoint.
    """
    segment = quote(str(value), safe="")
    if segment in (".", ".."):
        segment = segment.replace(".", "%2E")
    return segment


class ContentGemClient:
    """Talks to the remote generation service with the configured API key."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        if settings is None:
            settings = get_settings()
        # Configuration snapshot; later settings changes need a new client
        self._api_key = settings.contentgem_api_key
        self._base_url = settings.contentgem_base_url
        self._timeout = settings.request_timeout
        self._user_agent = settings.user_agent
        self._plugin_version = settings.plugin_version
        self._host_version = settings.host_version
        self._site_url = settings.site_url

        self._client = http_client
        self._guard: RequestGuard | None = None
        self._parent: ContentGemClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def with_guard(self, guard: RequestGuard) -> "ContentGemClient":
        """Return a view of this client that consults `guard` before sending.

        The view shares the underlying connection pool with this client.
        """
        gated = copy.copy(self)
        gated._guard = guard
        gated._parent = self
        return gated

    async def _get_client(self) -> httpx.AsyncClient:
        if self._parent is not None:
            return await self._parent._get_client()
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    def _build_url(self, endpoint: str) -> str:
        return f"{self._base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def _build_headers(self, json_body: bool = True) -> dict:
        headers = {
            "X-API-Key": self._api_key,
            "User-Agent": self._user_agent,
            "X-Plugin-Version": self._plugin_version,
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        if self._host_version:
            headers["X-WordPress-Version"] = self._host_version
        if self._site_url:
            headers["X-Site-URL"] = self._site_url
        return headers

    async def request(
        self, endpoint: str, data: dict | None = None, method: str = "GET"
    ) -> RequestResult:
        """Send one JSON request, gated when this client carries a guard."""
        if self._guard is not None:
            denial = await self._guard()
            if denial is not None:
                return denial
        return await self._send(endpoint, data, method)

    async def _send(self, endpoint: str, data: dict | None, method: str) -> RequestResult:
        method = method.upper()
        url = self._build_url(endpoint)
        kwargs: dict[str, Any] = {"headers": self._build_headers()}
        if data:
            if method == "GET":
                kwargs["params"] = data
            else:
                kwargs["content"] = json.dumps(data)

        client = await self._get_client()
        with RequestTimer() as timer:
            try:
                response = await client.request(method, url, **kwargs)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                result = RequestResult.failure(
                    ErrorKind.REQUEST_FAILED, str(e) or type(e).__name__, 500
                )
            else:
                result = self._decode(response)

        self._log_call(endpoint, method, result, timer.elapsed_ms)
        return result

    @staticmethod
    def _decode(response: httpx.Response) -> RequestResult:
        try:
            payload = response.json()
        except ValueError:
            return RequestResult.failure(
                ErrorKind.INVALID_RESPONSE,
                "Invalid JSON response from API",
                response.status_code,
            )
        return RequestResult.from_payload(payload, response.status_code)

    def _log_call(self, endpoint: str, method: str, result: RequestResult, latency_ms: float) -> None:
        logger = get_audit_logger()
        audit = {
            "endpoint": endpoint,
            "method": method,
            "upstream_status": result.status_code,
            "latency_ms": latency_ms,
            "success": result.success,
        }
        if result.success:
            logger.info("Remote call", extra={"audit_data": audit})
        else:
            audit["error_kind"] = result.error_kind.value
            audit["error_message"] = result.message
            logger.warning("Remote call failed", extra={"audit_data": audit})

    # --- Subscription & health ---

    async def get_subscription_status(self) -> RequestResult:
        return await self.request("subscription/status")

    async def test_connection(self) -> RequestResult:
        """Probe /health, then attach the subscription payload when available."""
        result = await self.request("health")
        if not result.success:
            return result

        subscription = await self.get_subscription_status()
        if subscription.success:
            sub_data = subscription.data if isinstance(subscription.data, dict) else {}
            result.body["subscription"] = sub_data.get("subscription", {})
        return result

    # --- Generation ---

    async def generate_content(
        self,
        prompt: str,
        company_info: dict | None = None,
        keywords: list[str] | None = None,
    ) -> RequestResult:
        data: dict[str, Any] = {"prompt": prompt}
        if company_info:
            data["company_info"] = company_info
        if keywords:
            data["keywords"] = keywords
        return await self.request("publications/generate", data, "POST")

    async def check_generation_status(self, session_id: str) -> RequestResult:
        return await self.request(f"publications/generation-status/{path_segment(session_id)}")

    async def bulk_generate(
        self,
        prompts: list,
        company_info: dict | None = None,
        common_settings: dict | None = None,
    ) -> RequestResult:
        data: dict[str, Any] = {"prompts": prompts}
        if company_info:
            data["company_info"] = company_info
        if common_settings:
            data["common_settings"] = common_settings
        return await self.request("publications/bulk-generate", data, "POST")

    async def check_bulk_status(self, bulk_session_id: str) -> RequestResult:
        # The bulk session id travels in the body, hence POST
        return await self.request(
            "publications/bulk-status", {"bulk_session_id": bulk_session_id}, "POST"
        )

    # --- Company profile ---

    async def get_company_info(self) -> RequestResult:
        return await self.request("company")

    async def update_company_info(self, company_data: dict) -> RequestResult:
        return await self.request("company", company_data, "PUT")

    async def parse_company_website(self, website_url: str) -> RequestResult:
        return await self.request("company/parse", {"website_url": website_url}, "POST")

    async def get_company_parsing_status(self) -> RequestResult:
        return await self.request("company/parsing-status")

    # --- Publications ---

    async def get_publications(self, page: int = 1, limit: int = 10) -> RequestResult:
        return await self.request("publications", {"page": page, "limit": limit})

    async def get_publication(self, publication_id: str) -> RequestResult:
        return await self.request(f"publications/{path_segment(publication_id)}")

    # --- Images ---

    async def upload_image(self, file_path: str, publication_id: str = "") -> RequestResult:
        """Upload an image as multipart/form-data.

        A missing or unreadable file is reported before any network traffic,
        including the guard's own subscription lookup.
        """
        if not os.path.isfile(file_path) or not os.access(file_path, os.R_OK):
            result = RequestResult.failure(
                ErrorKind.FILE_NOT_FOUND, f"File not found: {file_path}", 400
            )
            self._log_call("images/upload", "POST", result, 0.0)
            return result

        if self._guard is not None:
            denial = await self._guard()
            if denial is not None:
                return denial

        url = self._build_url("images/upload")
        form = {"publication_id": publication_id} if publication_id else None
        mime_type = mimetypes.guess_type(file_path)[0] or "application/octet-stream"

        client = await self._get_client()
        with RequestTimer() as timer:
            try:
                with open(file_path, "rb") as fh:
                    response = await client.post(
                        url,
                        headers=self._build_headers(json_body=False),
                        files={"image": (os.path.basename(file_path), fh, mime_type)},
                        data=form,
                    )
            except (httpx.HTTPError, OSError) as e:
                result = RequestResult.failure(
                    ErrorKind.UPLOAD_FAILED, str(e) or type(e).__name__, 500
                )
            else:
                result = self._decode(response)

        self._log_call("images/upload", "POST", result, timer.elapsed_ms)
        return result

    async def close(self) -> None:
        if self._parent is not None:
            return
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
