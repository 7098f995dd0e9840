"""Auth source base abstraction.

Defines the interface every delegated-login source implements, plus the
Redirect result a source hands back when the browser has to leave.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from livebridge.auth.state_store import FlowState

# FlowState key holding the normalized AttributeSet.
ATTRIBUTES_KEY = "Attributes"

# Multi-valued per SSO convention.
AttributeSet = dict[str, list[str]]


@dataclass(frozen=True)
class Redirect:
    """Terminal result: the host must end the request with a 302 to url.

    The url is built by the source from trusted configuration only.
    """

    url: str


class AuthSource(ABC):
    """Abstract base class for all auth sources."""

    def __init__(self, auth_id: str) -> None:
        self._auth_id = auth_id

    @property
    def auth_id(self) -> str:
        """Identifier this source was registered under."""
        return self._auth_id

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Source protocol type, e.g. 'liveid'."""

    @abstractmethod
    async def authenticate(self, state: FlowState) -> Redirect:
        """Start a login attempt.

        Args:
            state: The in-flight FlowState. Mutated in place and persisted.

        Returns:
            Redirect the host must issue; nothing else runs in this request.
        """

    @abstractmethod
    async def final_step(self, state: FlowState) -> None:
        """Complete a login attempt after the provider redirects back.

        Writes the AttributeSet into state[ATTRIBUTES_KEY] on success and
        leaves it untouched on any failure.
        """
