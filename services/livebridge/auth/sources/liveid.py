"""Windows Live / Microsoft identity platform auth source.

Runs the OAuth2 authorization code flow against the Microsoft identity
platform (v2.0 endpoints) and maps the Microsoft Graph ``/me`` profile into
a multi-valued attribute set.

Phase 1 (authenticate): persist the flow state and redirect the browser to
the authorize endpoint, carrying the state token as the OAuth2 ``state``.

Phase 2 (final_step): exchange the verification code for an access token,
fetch the profile, normalize it, write it to ``state["Attributes"]``.

Protocol docs:
https://learn.microsoft.com/en-us/entra/identity-platform/v2-oauth2-auth-code-flow
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError, field_validator

from livebridge.auth.source import ATTRIBUTES_KEY, AttributeSet, AuthSource, Redirect
from livebridge.auth.state_store import FlowState, RedisStateStore, StateStore
from livebridge.auth.transport import HttpTransport
from livebridge.config import AuthSourceConfig, ProviderConfig, callback_url, settings
from livebridge.errors import ProviderProfileError, ProviderTokenError, StateError
from livebridge.logging_config import get_logger

logger = get_logger(__name__)

STAGE_INIT = "liveid:init"
AUTH_ID_KEY = "liveid:AuthId"
VERIFICATION_CODE_KEY = "liveid:verification_code"

PROFILE_MARKER = "@odata.context"
INVALID_RESPONSE = "invalid_response"


# --- Token endpoint response ---


@dataclass(frozen=True)
class TokenGrant:
    access_token: str


@dataclass(frozen=True)
class TokenFailure:
    error: str
    description: str = ""
    error_codes: list[int] = field(default_factory=list)


class _TokenSuccessBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: StrictStr


class _TokenErrorBody(BaseModel):
    """Each field falls back to its default on its own when mistyped."""

    model_config = ConfigDict(extra="ignore")

    error: str = "unknown_error"
    error_description: str = ""
    error_codes: list[int] = []

    @field_validator("error", mode="before")
    @classmethod
    def _error(cls, v: Any) -> str:
        return v if isinstance(v, str) and v else "unknown_error"

    @field_validator("error_description", mode="before")
    @classmethod
    def _description(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("error_codes", mode="before")
    @classmethod
    def _codes(cls, v: Any) -> list[int]:
        if not isinstance(v, list):
            return []
        # bool is an int subclass
        return [c for c in v if isinstance(c, int) and not isinstance(c, bool)]


def decode_token_response(body: str) -> TokenGrant | TokenFailure:
    """Decode a token endpoint body into a grant or a failure."""
    raw = _load_json_object(body)
    if raw is None:
        return TokenFailure(INVALID_RESPONSE, "Token endpoint did not return a JSON object")

    try:
        return TokenGrant(_TokenSuccessBody.model_validate(raw).access_token)
    except ValidationError:
        pass

    err = _TokenErrorBody.model_validate(raw)
    return TokenFailure(err.error, err.error_description, err.error_codes)


# --- Profile endpoint response ---


@dataclass(frozen=True)
class Profile:
    fields: dict[str, Any]


@dataclass(frozen=True)
class ProfileFailure:
    code: str
    message: str = ""


class _GraphError(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: str = "unknown_error"
    message: str = ""

    @field_validator("code", mode="before")
    @classmethod
    def _code(cls, v: Any) -> str:
        return v if isinstance(v, str) and v else "unknown_error"

    @field_validator("message", mode="before")
    @classmethod
    def _message(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""


def decode_profile_response(body: str) -> Profile | ProfileFailure:
    """Decode a Graph ``/me`` body into a profile or a failure.

    A profile is accepted only when it carries the ``@odata.context`` marker
    and no ``error`` key. A body with neither is still a failure.
    """
    raw = _load_json_object(body)
    if raw is None:
        return ProfileFailure(INVALID_RESPONSE, "Profile endpoint did not return a JSON object")

    if "error" in raw:
        error = raw["error"]
        if not isinstance(error, dict):
            return ProfileFailure(INVALID_RESPONSE, str(error))
        err = _GraphError.model_validate(error)
        return ProfileFailure(err.code, err.message)

    if PROFILE_MARKER not in raw:
        return ProfileFailure(INVALID_RESPONSE, f"Profile response lacks {PROFILE_MARKER}")

    return Profile(raw)


def _load_json_object(body: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


# --- Normalization ---


def normalize_profile(
    profile: Mapping[str, Any],
    provider: ProviderConfig | None = None,
) -> AttributeSet:
    """Map a raw Graph profile to an AttributeSet.

    The targeted ID attribute is always present: ``<origin>!<id>``, with
    ``unknown`` standing in for a missing or empty id. Every other field is
    copied as ``<prefix>.<key>`` only if its JSON value is a string; numbers,
    booleans, nulls, objects and arrays are dropped.
    """
    provider = provider or settings.provider

    user_id = profile.get("id")
    if not isinstance(user_id, str) or not user_id:
        user_id = "unknown"

    attributes: AttributeSet = {provider.id_attribute: [f"{provider.id_origin}!{user_id}"]}
    for key, value in profile.items():
        if key == "id":
            continue
        if isinstance(value, str):
            attributes[f"{provider.attribute_prefix}.{key}"] = [value]
    return attributes


# --- Source ---


class LiveIDSource(AuthSource):
    """Auth source delegating login to the Microsoft identity platform."""

    def __init__(
        self,
        auth_id: str,
        config: Mapping[str, Any],
        state_store: StateStore | None = None,
        transport: HttpTransport | None = None,
        provider: ProviderConfig | None = None,
    ) -> None:
        super().__init__(auth_id)
        self._config = AuthSourceConfig.from_mapping(config)
        self._state_store = state_store or RedisStateStore()
        self._transport = transport or HttpTransport()
        self._provider = provider or settings.provider

    @property
    def source_type(self) -> str:
        return "liveid"

    @property
    def client_id(self) -> str:
        return self._config.key

    def build_authorize_url(self, state_token: str) -> str:
        params = {
            "client_id": self._config.key,
            "response_type": "code",
            "response_mode": "query",
            "redirect_uri": callback_url(),
            "state": state_token,
            "scope": self._provider.authorize_scope,
        }
        return f"{self._provider.authorize_url}?{urlencode(params)}"

    async def authenticate(self, state: FlowState) -> Redirect:
        """Persist the flow and redirect the browser to the provider."""
        # Needed to find this source again when the flow resumes
        state[AUTH_ID_KEY] = self.auth_id

        state_token = await self._state_store.persist(state, STAGE_INIT)
        logger.debug("LiveID auth state stored", auth_id=self.auth_id, state_token=state_token)

        return Redirect(self.build_authorize_url(state_token))

    async def final_step(self, state: FlowState) -> None:
        """Exchange the code, fetch the profile, write the attributes."""
        code = state.get(VERIFICATION_CODE_KEY)
        if not code:
            raise StateError("No verification code in auth state")

        access_token = await self._request_access_token(code)
        profile = await self._fetch_profile(access_token)
        attributes = normalize_profile(profile, self._provider)

        logger.debug(
            "LiveID returned attributes",
            auth_id=self.auth_id,
            attributes=sorted(attributes),
        )
        state[ATTRIBUTES_KEY] = attributes

    async def _request_access_token(self, code: str) -> str:
        data = {
            "client_id": self._config.key,
            "client_secret": self._config.secret,
            "scope": self._provider.token_scope,
            "grant_type": "authorization_code",
            "redirect_uri": callback_url(),
            "code": code,
        }
        body = await self._transport.post(
            self._provider.token_url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        result = decode_token_response(body)
        if isinstance(result, TokenFailure):
            logger.warning(
                "LiveID token exchange failed",
                auth_id=self.auth_id,
                error=result.error,
                error_codes=result.error_codes,
            )
            raise ProviderTokenError(result.error, result.description, result.error_codes)

        logger.debug("LiveID access token obtained", auth_id=self.auth_id)
        return result.access_token

    async def _fetch_profile(self, access_token: str) -> dict[str, Any]:
        body = await self._transport.get(
            self._provider.profile_url,
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {access_token}",
            },
        )

        result = decode_profile_response(body)
        if isinstance(result, ProfileFailure):
            logger.warning(
                "LiveID profile fetch failed",
                auth_id=self.auth_id,
                code=result.code,
            )
            raise ProviderProfileError(result.code, result.message)

        return result.fields
