"""Authentication router.

Binds the delegated-login flow to HTTP:

    GET /auth/sources               - configured sources
    GET /auth/{auth_id}/login       - start a login, 302 to the provider
    GET /auth/linkback              - provider redirect URI, finishes the login
    GET /auth/result/{auth_state}   - one-time pickup of the attributes

The flow state never lives in this process between requests; it is
persisted by the state store and found again through the OAuth2 ``state``
parameter.
"""

from urllib.parse import urlencode, urlsplit

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from livebridge.auth.source import ATTRIBUTES_KEY, Redirect
from livebridge.auth.sources import get_source, list_sources
from livebridge.auth.sources.liveid import AUTH_ID_KEY, STAGE_INIT, VERIFICATION_CODE_KEY
from livebridge.auth.state_store import FlowState, RedisStateStore, StateStore
from livebridge.config import settings
from livebridge.errors import UserAbortedError
from livebridge.logging_config import get_logger

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)

STAGE_COMPLETE = "livebridge:complete"
RETURN_URL_KEY = "ReturnURL"


# --- Pydantic models ---


class SourceInfo(BaseModel):
    auth_id: str
    type: str


class SourcesResponse(BaseModel):
    sources: list[SourceInfo]


class AuthResult(BaseModel):
    auth_id: str
    attributes: dict[str, list[str]]
    auth_state: str | None = None


# --- Dependencies ---


def get_state_store() -> StateStore:
    return RedisStateStore()


# --- Helpers ---


def _is_trusted_return_url(url: str) -> bool:
    """Same scheme and host as a trusted prefix, and a path under its path."""
    target = urlsplit(url)
    if not target.scheme or not target.netloc:
        return False

    for prefix in settings.auth.trusted_return_prefixes:
        trusted = urlsplit(prefix)
        if (target.scheme, target.netloc.lower()) != (trusted.scheme, trusted.netloc.lower()):
            continue
        base = trusted.path.rstrip("/")
        if not base or target.path == base or target.path.startswith(base + "/"):
            return True
    return False


def _redirect(result: Redirect) -> RedirectResponse:
    return RedirectResponse(url=result.url, status_code=status.HTTP_302_FOUND)


async def _complete(state: FlowState, store: StateStore) -> RedirectResponse | JSONResponse:
    """Hand the finished flow back to the SSO framework."""
    state.pop(VERIFICATION_CODE_KEY, None)
    auth_state = await store.persist(state, STAGE_COMPLETE)

    return_url = state.get(RETURN_URL_KEY)
    if return_url:
        separator = "&" if "?" in return_url else "?"
        logger.info("Login complete: redirecting to return URL", auth_id=state[AUTH_ID_KEY])
        return RedirectResponse(
            url=f"{return_url}{separator}{urlencode({'AuthState': auth_state})}",
            status_code=status.HTTP_302_FOUND,
        )

    logger.info("Login complete", auth_id=state[AUTH_ID_KEY])
    result = AuthResult(
        auth_id=state[AUTH_ID_KEY],
        attributes=state[ATTRIBUTES_KEY],
        auth_state=auth_state,
    )
    return JSONResponse(content=result.model_dump())


# --- Endpoints ---


@router.get("/sources", response_model=SourcesResponse)
async def sources() -> SourcesResponse:
    """List configured auth sources."""
    return SourcesResponse(sources=[SourceInfo(**s) for s in list_sources()])


@router.get("/linkback", response_model=None)
async def linkback(
    code: str = Query("", description="Verification code from the provider"),
    state: str = Query("", description="State token minted at login"),
    error: str = Query("", description="Provider error, e.g. access_denied"),
    error_description: str = Query(""),
    store: StateStore = Depends(get_state_store),
) -> RedirectResponse | JSONResponse:
    """Provider redirect URI: finish the login."""
    if error:
        logger.info("Provider returned an error", error=error)
        raise UserAbortedError(error, error_description)

    if not code or not state:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing code or state",
        )

    flow_state = await store.resume(state, STAGE_INIT)

    auth_id = flow_state.get(AUTH_ID_KEY, "")
    source = get_source(auth_id)
    if source is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Auth source not found: {auth_id or '(none)'}",
        )

    flow_state[VERIFICATION_CODE_KEY] = code
    await source.final_step(flow_state)

    return await _complete(flow_state, store)


@router.get("/result/{auth_state}", response_model=AuthResult)
async def result(
    auth_state: str,
    store: StateStore = Depends(get_state_store),
) -> AuthResult:
    """Consume a completed login and return its attributes."""
    flow_state = await store.resume(auth_state, STAGE_COMPLETE)
    return AuthResult(
        auth_id=flow_state[AUTH_ID_KEY],
        attributes=flow_state[ATTRIBUTES_KEY],
    )


@router.get("/{auth_id}/login")
async def login(
    auth_id: str,
    return_to: str = Query("", description="Where to send the browser when done"),
) -> RedirectResponse:
    """Start a login with the given source; always ends in a 302."""
    source = get_source(auth_id)
    if source is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Auth source not found: {auth_id}",
        )

    flow_state: FlowState = {}
    if return_to:
        if not _is_trusted_return_url(return_to):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="return_to is not a trusted URL",
            )
        flow_state[RETURN_URL_KEY] = return_to

    redirect = await source.authenticate(flow_state)

    logger.info("Login: redirecting to provider", auth_id=auth_id)
    return _redirect(redirect)
