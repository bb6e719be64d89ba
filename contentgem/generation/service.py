"""Content generator: turns client results into payloads or raised errors.

A guard denial surfaces as AccessDeniedError carrying the subscription
payload; every other failure becomes GenerationError.
"""

from typing import Any

from contentgem.access.models import AccessDeniedError, denial_status
from contentgem.api.client import ContentGemClient
from contentgem.api.models import ErrorKind, RequestResult
from contentgem.config.settings import get_settings


class GenerationError(Exception):
    """Raised when the generation service reports a failure."""

    def __init__(self, message: str, status_code: int = 500, error: str = ""):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error = error


def _unwrap(result: RequestResult) -> Any:
    if result.error_kind is ErrorKind.SUBSCRIPTION_REQUIRED:
        payload = {
            "success": False,
            "error": ErrorKind.SUBSCRIPTION_REQUIRED.value,
            "message": result.message,
            "upgrade_url": result.body.get("upgrade_url") or get_settings().upgrade_url,
        }
        raise AccessDeniedError(denial_status(result.status_code), payload)
    if not result.success:
        raise GenerationError(
            result.message or "Request to ContentGem failed",
            status_code=result.status_code,
            error=result.error_kind.value,
        )
    return result.data if result.data is not None else result.body


class ContentGenerator:
    """Generation workflows exposed to editorial users."""

    def __init__(self, client: ContentGemClient):
        self._client = client

    async def generate_content(
        self, prompt: str, company_info: dict | None = None, keywords: list[str] | None = None
    ) -> Any:
        return _unwrap(await self._client.generate_content(prompt, company_info, keywords))

    async def check_status(self, session_id: str) -> Any:
        return _unwrap(await self._client.check_generation_status(session_id))

    async def bulk_generate_content(
        self, prompts: list, company_info: dict | None = None, common_settings: dict | None = None
    ) -> Any:
        return _unwrap(await self._client.bulk_generate(prompts, company_info, common_settings))

    async def check_bulk_status(self, bulk_session_id: str) -> Any:
        return _unwrap(await self._client.check_bulk_status(bulk_session_id))

    async def get_company_info(self) -> Any:
        return _unwrap(await self._client.get_company_info())

    async def update_company_info(self, company_data: dict) -> Any:
        return _unwrap(await self._client.update_company_info(company_data))

    async def parse_company_website(self, website_url: str) -> Any:
        return _unwrap(await self._client.parse_company_website(website_url))
