"""
Tests for identity resolution through Graph `/me`.
"""

import httpx
import pytest

from auth.errors import IdentityUnavailable
from connectors.identity import PLACEHOLDER_EMAIL, IdentityResolver, is_placeholder


def _resolver(provider_config, fake_provider, **kwargs) -> IdentityResolver:
    return IdentityResolver(provider_config, transport=fake_provider.transport, **kwargs)


class TestResolve:
    @pytest.mark.asyncio
    async def test_prefers_mail(self, provider_config, fake_provider):
        email = await _resolver(provider_config, fake_provider).resolve("access-1")
        assert email == "a@x.com"

        [request] = fake_provider.me_requests()
        assert request.headers["Authorization"] == "Bearer access-1"
        assert request.url.params["$select"] == "displayName,mail,userPrincipalName"

    @pytest.mark.asyncio
    async def test_falls_back_to_principal_name(self, provider_config, fake_provider):
        fake_provider.me_body = {"mail": None, "userPrincipalName": "upn@x.com"}
        email = await _resolver(provider_config, fake_provider).resolve("access-1")
        assert email == "upn@x.com"

    @pytest.mark.asyncio
    async def test_network_error_yields_placeholder(self, provider_config, fake_provider):
        fake_provider.me_error = httpx.ConnectError("down")
        email = await _resolver(provider_config, fake_provider).resolve("access-1")
        assert email == PLACEHOLDER_EMAIL

    @pytest.mark.asyncio
    async def test_error_status_yields_placeholder(self, provider_config, fake_provider):
        fake_provider.me_status = 401
        fake_provider.me_body = {"error": {"code": "InvalidAuthenticationToken"}}
        email = await _resolver(provider_config, fake_provider).resolve("access-1")
        assert email == PLACEHOLDER_EMAIL

    @pytest.mark.asyncio
    async def test_absent_fields_yield_placeholder(self, provider_config, fake_provider):
        fake_provider.me_body = {"displayName": "Nobody"}
        email = await _resolver(provider_config, fake_provider).resolve("access-1")
        assert email == PLACEHOLDER_EMAIL

    @pytest.mark.asyncio
    async def test_malformed_fields_yield_placeholder(self, provider_config, fake_provider):
        fake_provider.me_body = {"mail": 12345, "userPrincipalName": {"nested": True}}
        email = await _resolver(provider_config, fake_provider).resolve("access-1")
        assert email == PLACEHOLDER_EMAIL

    @pytest.mark.asyncio
    async def test_custom_placeholder(self, provider_config, fake_provider):
        fake_provider.me_status = 503
        resolver = _resolver(provider_config, fake_provider, placeholder_email="nobody@local")
        assert await resolver.resolve("access-1") == "nobody@local"

    @pytest.mark.asyncio
    async def test_strict_resolver_raises(self, provider_config, fake_provider):
        fake_provider.me_error = httpx.ReadTimeout("slow")
        resolver = _resolver(provider_config, fake_provider, strict=True)
        with pytest.raises(IdentityUnavailable):
            await resolver.resolve("access-1")

    @pytest.mark.asyncio
    async def test_strict_resolver_raises_on_absent_fields(self, provider_config, fake_provider):
        fake_provider.me_body = {}
        resolver = _resolver(provider_config, fake_provider, strict=True)
        with pytest.raises(IdentityUnavailable):
            await resolver.resolve("access-1")


class TestFetchProfile:
    @pytest.mark.asyncio
    async def test_returns_display_name(self, provider_config, fake_provider):
        profile = await _resolver(provider_config, fake_provider).fetch_profile("access-1")
        assert profile.email == "a@x.com"
        assert profile.display_name == "A User"

    @pytest.mark.asyncio
    async def test_failure_raises(self, provider_config, fake_provider):
        fake_provider.me_status = 500
        with pytest.raises(IdentityUnavailable):
            await _resolver(provider_config, fake_provider).fetch_profile("access-1")

    @pytest.mark.asyncio
    async def test_non_string_fields_are_ignored(self, provider_config, fake_provider):
        fake_provider.me_body = {"mail": 12345, "userPrincipalName": "u@x.com", "displayName": ["A"]}
        profile = await _resolver(provider_config, fake_provider).fetch_profile("access-1")
        assert profile.email == "u@x.com"
        assert profile.display_name is None


class TestIsPlaceholder:
    def test_default_placeholder(self):
        assert is_placeholder(PLACEHOLDER_EMAIL)
        assert is_placeholder(None)
        assert is_placeholder("")
        assert not is_placeholder("a@x.com")

    def test_custom_placeholder(self):
        assert is_placeholder("nobody@local", "nobody@local")
        assert not is_placeholder(PLACEHOLDER_EMAIL, "nobody@local")
