"""
Tests for settings validation and the provider configuration.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from config.settings import ProviderConfig, Settings, config


class TestRequiredSettings:
    def test_all_missing(self):
        settings = Settings(
            outlook_client_id="",
            outlook_client_secret="",
            outlook_redirect_uri="",
            frontend_url="",
        )
        assert settings.missing_required() == [
            "OUTLOOK_CLIENT_ID",
            "OUTLOOK_CLIENT_SECRET",
            "OUTLOOK_REDIRECT_URI",
            "FRONTEND_URL",
        ]
        with pytest.raises(RuntimeError, match="OUTLOOK_CLIENT_SECRET"):
            settings.validate_required()

    def test_configured(self):
        assert config.missing_required() == []
        config.validate_required()

    def test_create_app_fails_fast(self):
        from main import create_app

        with pytest.raises(RuntimeError, match="FRONTEND_URL"):
            create_app(config.model_copy(update={"frontend_url": ""}))


class TestProviderConfig:
    def test_from_settings(self):
        provider = ProviderConfig.from_settings(
            config.model_copy(update={"outlook_tenant": "contoso", "provider_http_timeout": 3.5})
        )
        assert provider.client_id == config.outlook_client_id
        assert provider.token_endpoint == "https://login.microsoftonline.com/contoso/oauth2/v2.0/token"
        assert provider.authorize_endpoint == "https://login.microsoftonline.com/contoso/oauth2/v2.0/authorize"
        assert provider.timeout == 3.5
        assert "offline_access" in provider.scopes

    def test_empty_tenant_uses_common(self):
        provider = ProviderConfig.from_settings(config.model_copy(update={"outlook_tenant": ""}))
        assert provider.tenant == "common"

    def test_immutable(self, provider_config):
        with pytest.raises(ValidationError):
            provider_config.client_id = "other"

    def test_repr_hides_secret(self, provider_config):
        assert "test-client-secret" not in repr(provider_config)


class TestIdentityFallback:
    def test_default_is_placeholder(self):
        assert Settings().identity_fallback == "placeholder"

    def test_reject_accepted(self):
        assert Settings(identity_fallback="reject").identity_fallback == "reject"

    def test_unknown_value_rejected(self):
        with pytest.raises(ValidationError):
            Settings(identity_fallback="rejct")

    def test_resolver_wiring(self, provider_config):
        from api.dependencies import get_identity_resolver

        assert not get_identity_resolver(provider_config, None).strict
        with patch.object(config, "identity_fallback", "reject"):
            assert get_identity_resolver(provider_config, None).strict
