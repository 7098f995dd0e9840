"""Auth source registry.

Manages initialized auth sources, keyed by auth_id (the configured name).
"""

import os
from typing import Any

from livebridge.auth.source import AuthSource
from livebridge.config import settings
from livebridge.errors import ConfigurationError
from livebridge.logging_config import get_logger

logger = get_logger(__name__)

# Registry of initialized sources
_sources: dict[str, AuthSource] = {}

# Environment variable overrides for client secrets.
# Keyed by source name (uppercase), e.g. LIVEBRIDGE_CONTOSO_SECRET.
_SECRET_ENV_PREFIX = "LIVEBRIDGE_"
_SECRET_ENV_SUFFIX = "_SECRET"


def _secret_env_key(name: str) -> str:
    return f"{_SECRET_ENV_PREFIX}{name.upper().replace('-', '_')}{_SECRET_ENV_SUFFIX}"


def init_sources() -> None:
    """Initialize all configured auth sources.

    Called during application startup (lifespan handler). A source with a
    missing key or secret raises ConfigurationError and aborts startup.
    """
    from livebridge.auth.sources.liveid import LiveIDSource

    _sources.clear()

    for raw in settings.auth.sources:
        name = raw.get("name")
        if not name:
            raise ConfigurationError("Auth source is not properly configured: missing [name]")

        config: dict[str, Any] = dict(raw)
        # Inject secret from env var if not set in config.
        env_key = _secret_env_key(name)
        env_secret = os.environ.get(env_key, "")
        if env_secret and not config.get("secret"):
            config["secret"] = env_secret
            logger.debug("Loaded secret from env", auth_id=name, env_var=env_key)

        source = LiveIDSource(name, config)
        _sources[source.auth_id] = source
        logger.info("Registered auth source", auth_id=name, type=source.source_type)

    logger.info("Auth sources initialized", count=len(_sources))


def register_source(source: AuthSource) -> None:
    """Register an already-constructed source."""
    _sources[source.auth_id] = source


def get_source(auth_id: str) -> AuthSource | None:
    """Get a source by auth_id."""
    return _sources.get(auth_id)


def list_sources() -> list[dict[str, str]]:
    """List all configured sources (auth_id, type)."""
    return [{"auth_id": s.auth_id, "type": s.source_type} for s in _sources.values()]
