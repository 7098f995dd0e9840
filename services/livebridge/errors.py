"""Error taxonomy for the livebridge auth flow.

Everything raised here propagates to the host's exception handlers; the
flow itself never recovers locally.
"""


class LiveBridgeError(Exception):
    """Base class for all livebridge errors."""


class ConfigurationError(LiveBridgeError):
    """A required auth source setting is missing or invalid."""


class TransportError(LiveBridgeError):
    """Connection or protocol failure talking to the identity provider."""


class StateError(LiveBridgeError):
    """Flow state token is unknown, expired, or for a different stage."""


class UserAbortedError(LiveBridgeError):
    """The provider returned an error instead of a code (e.g. consent denied)."""

    def __init__(self, error: str, description: str = "") -> None:
        self.error = error
        self.description = description
        super().__init__(f"[{error}] {description}".rstrip())


class ProviderTokenError(LiveBridgeError):
    """The token endpoint did not return an access token."""

    def __init__(
        self,
        error: str,
        description: str = "",
        error_codes: list[int] | None = None,
    ) -> None:
        self.error = error
        self.description = description
        self.error_codes = list(error_codes or [])
        codes = ", ".join(str(c) for c in self.error_codes)
        super().__init__(
            f"[{error}] {description}\nNo access_token returned - cannot proceed\n{codes}"
        )


class ProviderProfileError(LiveBridgeError):
    """The profile endpoint returned an error object or an unrecognized shape."""

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"Unable to retrieve userdata from Microsoft Graph [{code}] {message}")
