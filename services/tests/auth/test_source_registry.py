"""Tests for the auth source registry and base abstractions."""

from unittest.mock import patch

import pytest

from livebridge.auth.source import AuthSource, Redirect
from livebridge.auth.sources import (
    _sources,
    get_source,
    init_sources,
    list_sources,
    register_source,
)
from livebridge.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clear_registry():
    _sources.clear()
    yield
    _sources.clear()


class TestAuthSourceABC:
    def test_redirect_is_immutable(self):
        redirect = Redirect("https://idp.example.com/authorize")
        with pytest.raises(AttributeError):
            redirect.url = "https://evil.example.com"

    def test_custom_source_can_be_registered(self):
        class StaticSource(AuthSource):
            @property
            def source_type(self) -> str:
                return "static"

            async def authenticate(self, state):
                return Redirect("https://idp.example.com")

            async def final_step(self, state):
                state["Attributes"] = {}

        register_source(StaticSource("static-1"))

        source = get_source("static-1")
        assert source is not None
        assert source.source_type == "static"


class TestInitSources:
    @patch("livebridge.auth.sources.settings")
    def test_registers_configured_sources(self, mock_settings):
        mock_settings.auth.sources = [
            {"name": "contoso", "key": "client-1", "secret": "secret-1"},
            {"name": "fabrikam", "key": "client-2", "secret": "secret-2"},
        ]

        init_sources()

        assert list_sources() == [
            {"auth_id": "contoso", "type": "liveid"},
            {"auth_id": "fabrikam", "type": "liveid"},
        ]
        assert get_source("contoso").client_id == "client-1"

    @patch("livebridge.auth.sources.settings")
    def test_clears_previous(self, mock_settings):
        mock_settings.auth.sources = [{"name": "contoso", "key": "k", "secret": "s"}]
        init_sources()
        assert len(_sources) == 1

        mock_settings.auth.sources = []
        init_sources()
        assert len(_sources) == 0

    @patch("livebridge.auth.sources.settings")
    def test_secret_from_env(self, mock_settings, monkeypatch):
        monkeypatch.setenv("LIVEBRIDGE_MY_TENANT_SECRET", "env-secret")
        mock_settings.auth.sources = [{"name": "my-tenant", "key": "client-1"}]

        init_sources()

        assert get_source("my-tenant") is not None

    @patch("livebridge.auth.sources.settings")
    def test_missing_secret_aborts(self, mock_settings, monkeypatch):
        monkeypatch.delenv("LIVEBRIDGE_CONTOSO_SECRET", raising=False)
        mock_settings.auth.sources = [{"name": "contoso", "key": "client-1"}]

        with pytest.raises(ConfigurationError, match=r"missing \[secret\]"):
            init_sources()

    @patch("livebridge.auth.sources.settings")
    def test_missing_name_aborts(self, mock_settings):
        mock_settings.auth.sources = [{"key": "client-1", "secret": "s"}]

        with pytest.raises(ConfigurationError, match=r"missing \[name\]"):
            init_sources()

    def test_get_source_unknown(self):
        assert get_source("nonexistent") is None
