"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tessera.api.app import create_application
from tessera.api.dependencies import get_queries
from tessera.db.models import (
    Application,
    ApplicationType,
    SsoConnector,
    SsoConnectorIdpInitiatedAuthConfig,
)
from tessera.db.queries import ApplicationQueries, Queries, SsoConnectorQueries
from tessera.services.sso_connector_service import SsoConnectorService

CREATED_AT = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)

OIDC_CONFIG: dict[str, Any] = {
    "clientId": "tessera-client",
    "clientSecret": "s3cret",
    "issuer": "https://idp.example.com",
}

SAML_CONFIG: dict[str, Any] = {"metadataUrl": "https://idp.example.com/saml/metadata"}


@pytest.fixture
def make_connector() -> Callable[..., SsoConnector]:
    """Factory for connector rows (not attached to a session)."""

    def _make(**overrides: Any) -> SsoConnector:
        fields: dict[str, Any] = {
            "id": "c1",
            "provider_name": "OIDC",
            "connector_name": "acme",
            "config": dict(OIDC_CONFIG),
            "domains": ["acme.com"],
            "created_at": CREATED_AT,
        }
        fields.update(overrides)
        return SsoConnector(**fields)

    return _make


@pytest.fixture
def make_application() -> Callable[..., Application]:
    """Factory for application rows; first-party traditional by default."""

    def _make(**overrides: Any) -> Application:
        fields: dict[str, Any] = {
            "id": "a1",
            "name": "Acme Portal",
            "type": ApplicationType.TRADITIONAL,
            "is_third_party": False,
            "oidc_client_metadata": {"redirectUris": ["https://app.example/cb"]},
            "created_at": CREATED_AT,
        }
        fields.update(overrides)
        return Application(**fields)

    return _make


@pytest.fixture
def make_auth_config() -> Callable[..., SsoConnectorIdpInitiatedAuthConfig]:
    def _make(**overrides: Any) -> SsoConnectorIdpInitiatedAuthConfig:
        fields: dict[str, Any] = {
            "connector_id": "c1",
            "default_application_id": "a1",
            "redirect_uri": None,
            "auth_parameters": {},
            "created_at": CREATED_AT,
        }
        fields.update(overrides)
        return SsoConnectorIdpInitiatedAuthConfig(**fields)

    return _make


@pytest.fixture
def sso_connector_queries() -> AsyncMock:
    return AsyncMock(spec=SsoConnectorQueries)


@pytest.fixture
def application_queries() -> AsyncMock:
    return AsyncMock(spec=ApplicationQueries)


@pytest.fixture
def queries(sso_connector_queries: AsyncMock, application_queries: AsyncMock) -> Queries:
    return Queries(sso_connectors=sso_connector_queries, applications=application_queries)


@pytest.fixture
def service(queries: Queries) -> SsoConnectorService:
    return SsoConnectorService(queries)


@pytest.fixture
def app(queries: Queries) -> FastAPI:
    """Create FastAPI application for testing, backed by mocked queries."""
    application = create_application()

    async def override_get_queries() -> Queries:
        return queries

    application.dependency_overrides[get_queries] = override_get_queries

    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create sync test client."""
    return TestClient(app)
