"""SSO connector registry.

Maps provider names to their capability descriptors. The mapping is built
once at import time and is read-only afterwards. Persisted connectors whose
provider is not listed here are "unsupported" and are filtered out of every
connector listing.
"""

from collections.abc import Iterable
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from tessera.sso.base import SsoConnectorFactory, SsoProviderType
from tessera.sso.configs import (
    GoogleWorkspaceConnectorConfig,
    OidcConnectorConfig,
    SamlConnectorConfig,
)


class SsoProviderName(StrEnum):
    OIDC = "OIDC"
    SAML = "SAML"
    AZURE_AD = "AzureAD"
    AZURE_AD_OIDC = "AzureAdOidc"
    GOOGLE_WORKSPACE = "GoogleWorkspace"
    OKTA = "Okta"


def _build_registry(
    factories: Iterable[SsoConnectorFactory],
) -> MappingProxyType[str, SsoConnectorFactory]:
    registry: dict[str, SsoConnectorFactory] = {}
    for factory in factories:
        if factory.provider_name in registry:
            raise ValueError(f"Duplicate SSO provider: {factory.provider_name}")
        registry[factory.provider_name] = factory
    return MappingProxyType(registry)


sso_connector_factories = _build_registry(
    [
        SsoConnectorFactory(SsoProviderName.OIDC, SsoProviderType.OIDC, OidcConnectorConfig),
        SsoConnectorFactory(SsoProviderName.SAML, SsoProviderType.SAML, SamlConnectorConfig),
        SsoConnectorFactory(SsoProviderName.AZURE_AD, SsoProviderType.SAML, SamlConnectorConfig),
        SsoConnectorFactory(
            SsoProviderName.AZURE_AD_OIDC, SsoProviderType.OIDC, OidcConnectorConfig
        ),
        SsoConnectorFactory(
            SsoProviderName.GOOGLE_WORKSPACE,
            SsoProviderType.OIDC,
            GoogleWorkspaceConnectorConfig,
        ),
        SsoConnectorFactory(SsoProviderName.OKTA, SsoProviderType.OIDC, OidcConnectorConfig),
    ]
)


def get_sso_connector_factory(provider_name: str) -> SsoConnectorFactory | None:
    """Get the capability for a provider, or None if it is not supported."""
    return sso_connector_factories.get(provider_name)


def is_supported_sso_connector(connector: Any) -> bool:
    """True if ``connector`` exists and its provider is registered."""
    if connector is None:
        return False
    return connector.provider_name in sso_connector_factories


def list_sso_connector_factories() -> list[dict[str, Any]]:
    """List registered providers (name, type, config schema)."""
    return [
        {
            "provider_name": f.provider_name,
            "provider_type": f.provider_type,
            "config_schema": f.describe(),
        }
        for f in sso_connector_factories.values()
    ]


__all__ = [
    "SsoConnectorFactory",
    "SsoProviderName",
    "SsoProviderType",
    "get_sso_connector_factory",
    "is_supported_sso_connector",
    "list_sso_connector_factories",
    "sso_connector_factories",
]
