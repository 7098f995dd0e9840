"""
Configuration management for the livebridge server.

Non-secret configuration loaded from YAML file, secrets from environment variables.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, RedisDsn, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from livebridge.errors import ConfigurationError

CONFIG_PATH = "/etc/livebridge/config.yaml"


def yaml_config_settings_source() -> dict[str, Any]:
    """Load configuration from YAML file."""
    config_path = Path(CONFIG_PATH)
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


# --- Auth Source Configuration ---


class AuthSourceConfig(BaseModel):
    """Credentials of one registered OAuth2 client at the identity provider."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str = Field(description="OAuth2 client ID")
    secret: str = Field(description="OAuth2 client secret")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "AuthSourceConfig":
        """Build from a raw source mapping.

        Raises ConfigurationError naming the first missing setting, so a
        misconfigured source can never be constructed.
        """
        for required in ("key", "secret"):
            if required not in config:
                raise ConfigurationError(
                    f"LiveID authentication source is not properly configured: "
                    f"missing [{required}]"
                )
        try:
            return cls.model_validate(dict(config))
        except ValidationError as e:
            raise ConfigurationError(
                f"LiveID authentication source is not properly configured: {e}"
            ) from e


# --- Provider Configuration ---


class ProviderConfig(BaseModel):
    """Microsoft identity platform and Graph endpoints."""

    authorize_url: str = Field(
        default="https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
    )
    token_url: str = Field(default="https://login.microsoftonline.com/common/oauth2/v2.0/token")
    profile_url: str = Field(default="https://graph.microsoft.com/v1.0/me")
    authorize_scope: str = Field(
        default="openid https://graph.microsoft.com/user.read",
        description="Scope requested on the authorization redirect",
    )
    token_scope: str = Field(
        default="https://graph.microsoft.com/user.read",
        description="Scope requested on the code exchange",
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="Transport timeout for token and profile calls",
    )
    id_origin: str = Field(
        default="https://graph.microsoft.com",
        description="Origin prefixed to the user id in the targeted ID attribute",
    )
    id_attribute: str = Field(default="windowslive_targetedID")
    attribute_prefix: str = Field(default="windowslive")


class AuthConfig(BaseModel):
    """Host-side authentication settings."""

    module_base_url: str = Field(
        default="http://localhost:8000/auth",
        description="Externally-reachable base URL of the auth routes. "
        "The provider-registered redirect URI is <module_base_url>/linkback.",
    )
    state_ttl_seconds: int = Field(
        default=3600,
        description="How long an in-flight login survives the redirect round-trip",
    )
    trusted_return_prefixes: list[str] = Field(
        default_factory=list,
        description="URL prefixes a completed login may redirect back to. "
        "A return_to outside these is rejected.",
    )
    sources: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Auth sources: mappings with name, key and secret. "
        "Validated when the source is constructed, not here.",
    )


# --- Main Settings ---


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="LIVEBRIDGE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="livebridge")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True, description="JSON logging in production")

    # Redis
    redis_url: RedisDsn = Field(
        default="redis://localhost:6379",
        description="Redis connection URL (flow state store)",
    )

    auth: AuthConfig = Field(default_factory=AuthConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings sources: env vars override YAML config."""
        return (
            init_settings,
            env_settings,
            yaml_config_settings_source,
            dotenv_settings,
            file_secret_settings,
        )


# Global settings instance
settings = Settings()


def callback_url() -> str:
    """The provider-registered redirect URI.

    Must be identical on the authorization redirect and the code exchange.
    """
    return settings.auth.module_base_url.rstrip("/") + "/linkback"
