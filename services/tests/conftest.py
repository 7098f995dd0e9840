"""
Top-level test configuration for livebridge.
"""

import json
import os

import pytest

# Ensure test-friendly defaults
os.environ.setdefault("LIVEBRIDGE_JSON_LOGS", "false")
os.environ.setdefault("LIVEBRIDGE_LOG_LEVEL", "DEBUG")

from livebridge.auth.state_store import FlowState  # noqa: E402
from livebridge.errors import StateError  # noqa: E402


class MemoryStateStore:
    """In-process StateStore with the same one-time, stage-checked semantics."""

    def __init__(self) -> None:
        self.saved: dict[str, tuple[str, str]] = {}
        self._counter = 0

    async def persist(self, state: FlowState, stage: str) -> str:
        self._counter += 1
        token = f"state-token-{self._counter}"
        self.saved[token] = (stage, json.dumps(state))
        return token

    async def resume(self, token: str, stage: str) -> FlowState:
        entry = self.saved.pop(token, None)
        if entry is None:
            raise StateError("Invalid or expired auth state")
        saved_stage, data = entry
        if saved_stage != stage:
            raise StateError(f"Auth state is not for stage {stage}")
        return json.loads(data)


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()
