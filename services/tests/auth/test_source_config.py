"""Tests for auth source configuration."""

import pytest
from pydantic import ValidationError

from livebridge.auth.sources.liveid import LiveIDSource
from livebridge.config import AuthSourceConfig, callback_url
from livebridge.errors import ConfigurationError


class TestAuthSourceConfig:
    def test_valid_config(self):
        config = AuthSourceConfig.from_mapping({"key": "client-id", "secret": "s3cret"})
        assert config.key == "client-id"
        assert config.secret == "s3cret"

    def test_extra_settings_ignored(self):
        config = AuthSourceConfig.from_mapping(
            {"name": "contoso", "key": "client-id", "secret": "s3cret"}
        )
        assert config.key == "client-id"

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match=r"missing \[key\]"):
            AuthSourceConfig.from_mapping({"secret": "s3cret"})

    def test_missing_secret(self):
        with pytest.raises(ConfigurationError, match=r"missing \[secret\]"):
            AuthSourceConfig.from_mapping({"key": "client-id"})

    def test_key_reported_first_when_both_missing(self):
        with pytest.raises(ConfigurationError, match=r"missing \[key\]"):
            AuthSourceConfig.from_mapping({})

    def test_non_string_value_rejected(self):
        with pytest.raises(ConfigurationError):
            AuthSourceConfig.from_mapping({"key": ["a", "b"], "secret": "s3cret"})

    def test_immutable(self):
        config = AuthSourceConfig.from_mapping({"key": "client-id", "secret": "s3cret"})
        with pytest.raises(ValidationError):
            config.key = "other"


class TestSourceConstruction:
    def test_source_fails_without_secret(self, state_store):
        with pytest.raises(ConfigurationError):
            LiveIDSource("contoso", {"key": "client-id"}, state_store=state_store)

    def test_source_exposes_client_id(self, state_store):
        source = LiveIDSource(
            "contoso", {"key": "client-id", "secret": "s3cret"}, state_store=state_store
        )
        assert source.auth_id == "contoso"
        assert source.client_id == "client-id"
        assert source.source_type == "liveid"


class TestCallbackUrl:
    def test_callback_url_is_module_relative(self):
        assert callback_url() == "http://localhost:8000/auth/linkback"
