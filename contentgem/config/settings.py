"""Plugin settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Remote generation service
    contentgem_api_key: str = ""
    contentgem_base_url: str = "https://your-domain.com/api/v1"
    request_timeout: float = 30.0  # seconds, shared by JSON and upload calls
    plugin_version: str = "1.0.0"

    # Host identity attached to outbound requests (best-effort)
    host_version: str = ""
    site_url: str = ""

    # Subscription gate
    subscription_cache_ttl: int = 300
    allowed_plans: str = "business,pro,enterprise"
    pricing_path: str = "/pricing"
    api_path_segment: str = "/api/v1"

    # Decision cache
    cache_backend: str = "memory"  # "memory" | "dynamodb"
    dynamodb_table_name: str = "contentgem-subscription-cache"
    aws_region: str = "us-east-1"

    # Host sessions and anti-forgery tokens
    users_config_path: str = "users.json"
    nonce_secret: str = "change-me"
    nonce_lifetime: int = 86400

    # Host-owned settings, not read by the gate or the client
    auto_generate: bool = False
    default_category_id: int = 1

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def allowed_plans_list(self) -> list[str]:
        """Parse comma-separated plan slugs, lower-cased."""
        return [p.strip().lower() for p in self.allowed_plans.split(",") if p.strip()]

    @property
    def upgrade_url(self) -> str:
        """Pricing page on the remote service's public site."""
        site = self.contentgem_base_url.replace(self.api_path_segment, "")
        return site.rstrip("/") + self.pricing_path

    @property
    def user_agent(self) -> str:
        return f"ContentGem-WordPress-Plugin/{self.plugin_version}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
