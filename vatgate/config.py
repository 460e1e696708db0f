"""Application configuration via pydantic-settings.

All secrets are loaded from environment variables (.env file).
Settings are organized into logical groups and composed into a single Settings
object that is built once at startup and passed explicitly to the components
that need it. There are no hard-coded credential defaults.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class UnavailablePolicy(str, Enum):
    """What to answer when no VAT provider produced a verdict in time."""

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


class ShopifySettings(BaseSettings):
    """Shopify Admin API credentials and timeouts."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    shopify_shop_domain: str = Field(default="", description="Shop domain, e.g. my-shop.myshopify.com")
    shopify_access_token: str = Field(default="", description="Admin API access token")
    shopify_api_version: str = Field(default="2023-10", description="Admin REST API version")
    shopify_timeout: float = Field(default=15.0, description="Timeout for customer creation in seconds")
    shopify_lookup_timeout: float = Field(
        default=5.0,
        description="Timeout for the email-existence lookup in seconds",
    )

    @property
    def base_url(self) -> str:
        """Admin REST base URL for the configured shop."""
        domain = self.shopify_shop_domain.removeprefix("https://").rstrip("/")
        return f"https://{domain}/admin/api/{self.shopify_api_version}"

    @property
    def is_configured(self) -> bool:
        return bool(self.shopify_shop_domain and self.shopify_access_token)


class ViesSettings(BaseSettings):
    """EU VIES (primary registry) endpoints."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    vies_wsdl_url: str = Field(
        default="https://ec.europa.eu/taxation_customs/vies/checkVatService.wsdl",
        description="VIES service description (WSDL) URL",
    )
    vies_request_timeout: float = Field(
        default=10.0,
        description="Transport-level timeout per VIES HTTP request in seconds",
    )


class VatlayerSettings(BaseSettings):
    """apilayer VAT API (secondary provider) endpoints and key."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    vatlayer_api_key: str = Field(default="", description="apilayer key; empty disables the secondary provider")
    vatlayer_current_url: str = Field(
        default="https://api.apilayer.com/vat_verification/validate",
        description="Current endpoint, authenticated with the apikey header",
    )
    vatlayer_legacy_url: str = Field(
        default="https://apilayer.net/api/validate",
        description="Legacy endpoint, authenticated with the access_key query parameter",
    )
    vatlayer_request_timeout: float = Field(
        default=8.0,
        description="Transport-level timeout per apilayer HTTP request in seconds",
    )


class VerificationSettings(BaseSettings):
    """Time budget and fallback policy for VAT verification (seconds)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    vat_total_budget: float = Field(default=20.0, gt=0, description="Deadline for one validation request")
    vat_primary_cap: float = Field(default=8.0, gt=0, description="Cap for the first VIES attempt")
    vat_retry_cap: float = Field(default=6.0, gt=0, description="Cap for the VIES retry")
    vat_secondary_cap: float = Field(default=8.0, gt=0, description="Cap for the apilayer attempt")
    vat_unavailable_policy: UnavailablePolicy = Field(
        default=UnavailablePolicy.FAIL_OPEN,
        description="fail_open returns valid=true, fail_closed answers 503",
    )


class Settings(BaseSettings):
    """Root settings composing all sub-settings.

    Usage:
        settings = get_settings()
        settings.shopify.base_url
        settings.verification.vat_total_budget
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    # Environment
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    port: int = Field(default=3001)
    cors_origins: str = Field(default="*", description="Comma-separated allowed origins")
    registration_enabled: bool = Field(default=True, description="Expose /register and /check-email")

    # Composed settings (loaded from same .env)
    shopify: ShopifySettings = Field(default_factory=ShopifySettings)
    vies: ViesSettings = Field(default_factory=ViesSettings)
    vatlayer: VatlayerSettings = Field(default_factory=VatlayerSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            msg = f"Invalid log level: {v}. Must be one of {valid}"
            raise ValueError(msg)
        return upper

    @model_validator(mode="after")
    def require_shop_credentials(self) -> Settings:
        """Registration cannot run without a shop domain and an access token."""
        if self.registration_enabled and not self.shopify.is_configured:
            msg = (
                "SHOPIFY_SHOP_DOMAIN and SHOPIFY_ACCESS_TOKEN must be set "
                "(or set REGISTRATION_ENABLED=false)"
            )
            raise ValueError(msg)
        return self

    @property
    def allowed_origins(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Load settings from the environment. Called once by the app factory."""
    return Settings()
