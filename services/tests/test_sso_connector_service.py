"""Tests for the SSO connector service."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qsl, urlsplit

import pytest

from tessera.config import settings
from tessera.db.models import ApplicationType, IdpInitiatedSamlSsoSession, epoch_millis
from tessera.errors import InvalidApplicationTypeError, InvalidRedirectUriError, NotFoundError
from tessera.services.sso_connector_service import (
    compute_session_expires_at,
    is_available_connector,
    try_safe,
)

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class TestConnectorDiscovery:
    """Test listing and lookup of connectors."""

    @pytest.mark.asyncio
    async def test_unsupported_connectors_filtered_count_unchanged(
        self, service, sso_connector_queries, make_connector
    ):
        """Unsupported providers are dropped; the total stays the persisted count."""
        supported = make_connector(id="c1", provider_name="OIDC")
        unsupported = make_connector(id="c2", provider_name="Legacy")
        sso_connector_queries.find_all.return_value = (2, [supported, unsupported])

        count, connectors = await service.get_sso_connectors(10, 0)

        assert count == 2
        assert connectors == [supported]
        sso_connector_queries.find_all.assert_awaited_once_with(10, 0)

    @pytest.mark.asyncio
    async def test_available_connectors(self, service, sso_connector_queries, make_connector):
        """Only supported, valid, domain-bound connectors are available."""
        available = make_connector(id="ok")
        no_domains = make_connector(id="no-domains", domains=[])
        bad_config = make_connector(id="bad-config", config={"clientId": "x"})
        unsupported = make_connector(id="unsupported", provider_name="Legacy")
        sso_connector_queries.find_all.return_value = (
            4,
            [available, no_domains, bad_config, unsupported],
        )

        result = await service.get_available_sso_connectors()

        assert [c.id for c in result] == ["ok"]
        sso_connector_queries.find_all.assert_awaited_once_with(None, None)

    @pytest.mark.asyncio
    async def test_valid_okta_connector_without_domains_is_not_available(
        self, service, sso_connector_queries, make_connector
    ):
        connector = make_connector(id="c1", provider_name="Okta", domains=[])
        sso_connector_queries.find_all.return_value = (1, [connector])

        assert await service.get_available_sso_connectors() == []

    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({}, True),
            ({"provider_name": "Legacy"}, False),
            ({"config": {}}, False),
            ({"domains": []}, False),
        ],
    )
    def test_is_available_connector(self, make_connector, overrides, expected):
        """Flipping any one condition removes the connector."""
        assert is_available_connector(make_connector(**overrides)) is expected

    @pytest.mark.asyncio
    async def test_get_by_id(self, service, sso_connector_queries, make_connector):
        connector = make_connector()
        sso_connector_queries.find_by_id.return_value = connector

        assert await service.get_sso_connector_by_id("c1") is connector
        sso_connector_queries.find_by_id.assert_awaited_once_with("c1")

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, service, sso_connector_queries):
        sso_connector_queries.find_by_id.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_sso_connector_by_id("missing")

        assert exc_info.value.code == "connector.not_found"
        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_get_by_id_unsupported_looks_missing(
        self, service, sso_connector_queries, make_connector
    ):
        sso_connector_queries.find_by_id.return_value = make_connector(provider_name="Legacy")

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_sso_connector_by_id("c1")

        assert exc_info.value.code == "connector.not_found"


class TestIdpInitiatedAuthConfig:
    """Test IdP-initiated auth config creation and updates."""

    @pytest.fixture
    def config_data(self):
        return {
            "connector_id": "c1",
            "default_application_id": "a1",
            "redirect_uri": None,
            "auth_parameters": {"scope": "email"},
        }

    @pytest.mark.asyncio
    async def test_create(
        self,
        service,
        sso_connector_queries,
        application_queries,
        make_application,
        make_auth_config,
        config_data,
    ):
        application_queries.find_application_by_id.return_value = make_application()
        created = make_auth_config(auth_parameters={"scope": "email"})
        sso_connector_queries.insert_idp_initiated_auth_config.return_value = created

        result = await service.create_idp_initiated_auth_config(config_data)

        assert result is created
        application_queries.find_application_by_id.assert_awaited_once_with("a1")
        sso_connector_queries.insert_idp_initiated_auth_config.assert_awaited_once_with(
            config_data
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "app_overrides",
        [
            {"type": ApplicationType.SPA},
            {"type": ApplicationType.NATIVE},
            {"type": ApplicationType.MACHINE_TO_MACHINE},
            {"type": ApplicationType.TRADITIONAL, "is_third_party": True},
        ],
    )
    async def test_create_rejects_invalid_application(
        self,
        service,
        sso_connector_queries,
        application_queries,
        make_application,
        config_data,
        app_overrides,
    ):
        application_queries.find_application_by_id.return_value = make_application(
            **app_overrides
        )

        with pytest.raises(InvalidApplicationTypeError) as exc_info:
            await service.create_idp_initiated_auth_config(config_data)

        assert exc_info.value.status == 400
        assert (
            exc_info.value.code == "connector.saml_idp_initiated_auth_invalid_application_type"
        )
        sso_connector_queries.insert_idp_initiated_auth_config.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_application_not_found(
        self, service, sso_connector_queries, application_queries, config_data
    ):
        application_queries.find_application_by_id.side_effect = NotFoundError(
            "entity.not_exists_with_id"
        )

        with pytest.raises(NotFoundError):
            await service.create_idp_initiated_auth_config(config_data)

        sso_connector_queries.insert_idp_initiated_auth_config.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_without_application_skips_validation(
        self, service, sso_connector_queries, application_queries, make_auth_config
    ):
        updated = make_auth_config(redirect_uri="https://cb")
        sso_connector_queries.update_idp_initiated_auth_config.return_value = updated

        result = await service.update_idp_initiated_auth_config(
            "c1", {"redirect_uri": "https://cb"}
        )

        assert result is updated
        application_queries.find_application_by_id.assert_not_awaited()
        sso_connector_queries.update_idp_initiated_auth_config.assert_awaited_once_with(
            set={"redirect_uri": "https://cb"},
            where={"connector_id": "c1"},
            jsonb_mode="replace",
        )

    @pytest.mark.asyncio
    async def test_update_validates_new_application(
        self, service, sso_connector_queries, application_queries, make_application
    ):
        application_queries.find_application_by_id.return_value = make_application(
            id="a2", is_third_party=True
        )

        with pytest.raises(InvalidApplicationTypeError):
            await service.update_idp_initiated_auth_config("c1", {"default_application_id": "a2"})

        application_queries.find_application_by_id.assert_awaited_once_with("a2")
        sso_connector_queries.update_idp_initiated_auth_config.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_with_valid_application(
        self,
        service,
        sso_connector_queries,
        application_queries,
        make_application,
        make_auth_config,
    ):
        application_queries.find_application_by_id.return_value = make_application(id="a2")
        sso_connector_queries.update_idp_initiated_auth_config.return_value = make_auth_config(
            default_application_id="a2"
        )
        changes = {"default_application_id": "a2", "auth_parameters": {"resource": "api"}}

        result = await service.update_idp_initiated_auth_config("c1", changes)

        assert result.default_application_id == "a2"
        sso_connector_queries.update_idp_initiated_auth_config.assert_awaited_once_with(
            set=changes,
            where={"connector_id": "c1"},
            jsonb_mode="replace",
        )


class TestSamlSsoSession:
    """Test IdP-initiated SAML SSO session creation."""

    @pytest.fixture(autouse=True)
    def echo_insert(self, sso_connector_queries):
        async def _insert(data):
            return IdpInitiatedSamlSsoSession(**data)

        sso_connector_queries.insert_idp_initiated_saml_sso_session.side_effect = _insert

    @pytest.mark.asyncio
    async def test_expiry_from_not_on_or_after(self, service, sso_connector_queries):
        assertion = {
            "nameID": "alice@acme.com",
            "conditions": {"notOnOrAfter": "2026-01-01T00:00:00.123Z"},
        }

        session = await service.create_idp_initiated_saml_sso_session("c1", assertion)

        assert session.expires_at == 1767225600123
        assert session.connector_id == "c1"
        assert session.assertion_content is assertion
        assert len(session.id) == 21

    @pytest.mark.asyncio
    async def test_expiry_defaults_to_ttl(self, service):
        with patch("tessera.services.sso_connector_service.utc_now", return_value=FIXED_NOW):
            session = await service.create_idp_initiated_saml_sso_session(
                "c1", {"nameID": "alice@acme.com"}
            )

        assert session.expires_at == epoch_millis(FIXED_NOW + timedelta(minutes=10))

    @pytest.mark.asyncio
    async def test_expiry_defaults_when_conditions_lack_not_on_or_after(self, service):
        with patch("tessera.services.sso_connector_service.utc_now", return_value=FIXED_NOW):
            session = await service.create_idp_initiated_saml_sso_session(
                "c1", {"conditions": {"notBefore": "2025-06-01T11:59:00Z"}}
            )

        assert session.expires_at == epoch_millis(FIXED_NOW + timedelta(minutes=10))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("not_on_or_after", ["", "  ", None])
    async def test_expiry_defaults_when_not_on_or_after_is_empty(self, service, not_on_or_after):
        with patch("tessera.services.sso_connector_service.utc_now", return_value=FIXED_NOW):
            session = await service.create_idp_initiated_saml_sso_session(
                "c1", {"conditions": {"notOnOrAfter": not_on_or_after}}
            )

        assert session.expires_at == epoch_millis(FIXED_NOW + timedelta(minutes=10))

    @pytest.mark.asyncio
    async def test_session_ids_are_unique(self, service):
        ids = {
            (await service.create_idp_initiated_saml_sso_session("c1", {})).id for _ in range(20)
        }
        assert len(ids) == 20

    def test_datetime_not_on_or_after(self):
        not_on_or_after = datetime(2026, 1, 1, tzinfo=UTC)
        expires_at = compute_session_expires_at(
            {"conditions": {"notOnOrAfter": not_on_or_after}}, FIXED_NOW
        )
        assert expires_at == epoch_millis(not_on_or_after)

    def test_naive_not_on_or_after_is_utc(self):
        expires_at = compute_session_expires_at(
            {"conditions": {"notOnOrAfter": "2026-01-01T00:00:00"}}, FIXED_NOW
        )
        assert expires_at == 1767225600000

    def test_configured_ttl(self):
        with patch.object(settings.sso, "idp_initiated_saml_session_ttl_seconds", 60):
            expires_at = compute_session_expires_at({}, FIXED_NOW)
        assert expires_at == epoch_millis(FIXED_NOW + timedelta(seconds=60))

    def test_session_is_expired(self):
        session = IdpInitiatedSamlSsoSession(
            id="s1", connector_id="c1", assertion_content={}, expires_at=epoch_millis(FIXED_NOW)
        )
        assert session.is_expired(FIXED_NOW)
        assert not session.is_expired(FIXED_NOW - timedelta(milliseconds=1))


class TestSignInUrl:
    """Test IdP-initiated SAML SSO sign-in URL synthesis."""

    @pytest.mark.asyncio
    async def test_end_to_end_url(self, service, application_queries, make_auth_config):
        auth_config = make_auth_config(
            connector_id="c1",
            default_application_id="a1",
            redirect_uri="https://cb",
            auth_parameters={"scope": "a b"},
        )

        url = await service.get_idp_initiated_saml_sso_sign_in_url(
            "https://issuer.example", auth_config
        )

        assert url == (
            "https://issuer.example/auth?client_id=a1&redirect_uri=https%3A%2F%2Fcb"
            "&response_type=code&prompt=login&direct_sign_in=sso%3Ac1"
            "&scope=openid+offline_access+profile+a+b"
        )
        application_queries.find_application_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_extra_parameters_before_scope(self, service, make_auth_config):
        auth_config = make_auth_config(
            redirect_uri="https://cb",
            auth_parameters={
                "resource": "https://api.example",
                "scope": "email",
                "ui_locales": "fr",
            },
        )

        url = await service.get_idp_initiated_saml_sso_sign_in_url(
            "https://issuer.example", auth_config
        )

        split = urlsplit(url)
        assert split.path == "/auth"
        params = parse_qsl(split.query)
        assert [k for k, _ in params] == [
            "client_id",
            "redirect_uri",
            "response_type",
            "prompt",
            "direct_sign_in",
            "resource",
            "ui_locales",
            "scope",
        ]
        assert dict(params)["scope"] == "openid offline_access profile email"
        assert dict(params)["resource"] == "https://api.example"

    @pytest.mark.asyncio
    async def test_scope_without_duplicates(self, service, make_auth_config):
        auth_config = make_auth_config(
            redirect_uri="https://cb", auth_parameters={"scope": "custom openid"}
        )

        url = await service.get_idp_initiated_saml_sso_sign_in_url("https://i", auth_config)

        scopes = dict(parse_qsl(urlsplit(url).query))["scope"].split(" ")
        assert scopes == ["openid", "offline_access", "profile", "custom"]

    @pytest.mark.asyncio
    async def test_scope_always_present(self, service, make_auth_config):
        auth_config = make_auth_config(redirect_uri="https://cb", auth_parameters={})

        url = await service.get_idp_initiated_saml_sso_sign_in_url("https://i", auth_config)

        assert dict(parse_qsl(urlsplit(url).query))["scope"] == "openid offline_access profile"

    @pytest.mark.asyncio
    async def test_redirect_uri_falls_back_to_application(
        self, service, application_queries, make_application, make_auth_config
    ):
        application_queries.find_application_by_id.return_value = make_application(
            oidc_client_metadata={
                "redirectUris": ["https://app.example/cb", "https://app.example/other"]
            }
        )

        url = await service.get_idp_initiated_saml_sso_sign_in_url(
            "https://issuer.example", make_auth_config()
        )

        params = dict(parse_qsl(urlsplit(url).query))
        assert params["redirect_uri"] == "https://app.example/cb"
        application_queries.find_application_by_id.assert_awaited_once_with("a1")

    @pytest.mark.asyncio
    async def test_no_redirect_uri(
        self, service, application_queries, make_application, make_auth_config
    ):
        application_queries.find_application_by_id.return_value = make_application(
            oidc_client_metadata={"redirectUris": []}
        )

        with pytest.raises(InvalidRedirectUriError) as exc_info:
            await service.get_idp_initiated_saml_sso_sign_in_url(
                "https://issuer.example", make_auth_config()
            )

        assert exc_info.value.code == "oidc.invalid_redirect_uri"
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_application_lookup_failure_is_not_propagated(
        self, service, application_queries, make_auth_config
    ):
        """A failed lookup counts as "no redirect URI", not as a lookup error."""
        application_queries.find_application_by_id.side_effect = NotFoundError(
            "entity.not_exists_with_id"
        )

        with pytest.raises(InvalidRedirectUriError):
            await service.get_idp_initiated_saml_sso_sign_in_url(
                "https://issuer.example", make_auth_config()
            )

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_propagated(
        self, service, application_queries, make_auth_config
    ):
        application_queries.find_application_by_id.side_effect = ConnectionError("db down")

        with pytest.raises(InvalidRedirectUriError):
            await service.get_idp_initiated_saml_sso_sign_in_url(
                "https://issuer.example", make_auth_config()
            )


class TestTrySafe:
    @pytest.mark.asyncio
    async def test_returns_value(self):
        assert await try_safe(AsyncMock(return_value="x")) == "x"

    @pytest.mark.asyncio
    async def test_swallows_exception(self):
        assert await try_safe(AsyncMock(side_effect=RuntimeError("boom"))) is None
