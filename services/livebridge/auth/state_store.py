"""Flow state store.

A login attempt survives the redirect to the identity provider only as a
persisted FlowState. Persisting mints an opaque token that travels through
the provider as the OAuth2 ``state`` parameter; resuming with that token
returns the state exactly once.

Each persisted state is tagged with a stage so a token minted for one step
of the flow cannot be replayed against another.
"""

import json
import secrets
from typing import Any, Protocol

from livebridge.errors import StateError
from livebridge.logging_config import get_logger
from livebridge.redis.client import FlowStateRedis, flow_state_redis

logger = get_logger(__name__)

# One in-flight login attempt. Owned by the caller and passed by reference.
FlowState = dict[str, Any]


class StateStore(Protocol):
    """What the auth flow needs from the host to survive the redirect."""

    async def persist(self, state: FlowState, stage: str) -> str: ...

    async def resume(self, token: str, stage: str) -> FlowState: ...


def generate_state_token() -> str:
    """Generate a cryptographically random state token."""
    return secrets.token_urlsafe(32)


class RedisStateStore:
    """StateStore on top of FlowStateRedis (key layout and TTL live there)."""

    def __init__(self, backend: FlowStateRedis | None = None) -> None:
        self._backend = backend or flow_state_redis

    async def persist(self, state: FlowState, stage: str) -> str:
        """Store state under a fresh token. Returns the token."""
        token = generate_state_token()
        await self._backend.put(token, json.dumps({"stage": stage, "state": state}))
        logger.debug("Stored flow state", stage=stage, state_token=token)
        return token

    async def resume(self, token: str, stage: str) -> FlowState:
        """Consume the state stored under token.

        Raises StateError if the token is unknown, expired, or was minted
        for a different stage.
        """
        data = await self._backend.take(token)
        if data is None:
            logger.warning("Flow state not found or expired", state_token=token)
            raise StateError("Invalid or expired auth state")

        parsed = json.loads(data)
        if parsed.get("stage") != stage:
            logger.warning(
                "Flow state stage mismatch",
                state_token=token,
                expected=stage,
                actual=parsed.get("stage"),
            )
            raise StateError(f"Auth state is not for stage {stage}")

        return parsed["state"]
