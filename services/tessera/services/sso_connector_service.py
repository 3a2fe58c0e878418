"""SSO connector service.

Connector discovery, IdP-initiated auth config management, and the
IdP-initiated SAML SSO handoff:

1. The SAML assertion consumer (outside this module) verifies an unsolicited
   assertion and calls create_idp_initiated_saml_sso_session().
2. get_idp_initiated_saml_sso_sign_in_url() builds the OIDC authorization
   request that sends the user's browser to ``<issuer>/auth``, bound to the
   connector through the direct sign-in parameter.
3. The authorization endpoint consumes the session (once, before expiry).

Connectors whose provider is not registered in tessera.sso are treated as
if they did not exist.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tessera.auth.oidc import DirectSignInOptions, Prompt, QueryKey, with_reserved_scopes
from tessera.config import settings
from tessera.db.models import (
    Application,
    ApplicationType,
    IdpInitiatedSamlSsoSession,
    SsoConnector,
    SsoConnectorIdpInitiatedAuthConfig,
    epoch_millis,
    generate_standard_id,
    utc_now,
)
from tessera.db.queries import Queries
from tessera.errors import InvalidApplicationTypeError, InvalidRedirectUriError, NotFoundError
from tessera.logging_config import get_logger
from tessera.sso import is_supported_sso_connector, sso_connector_factories

logger = get_logger(__name__)

T = TypeVar("T")


def default_saml_session_ttl() -> timedelta:
    """TTL for sessions whose assertion has no NotOnOrAfter condition."""
    return timedelta(seconds=settings.sso.idp_initiated_saml_session_ttl_seconds)


class _AssertionConditions(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    not_on_or_after: datetime | None = Field(default=None, alias="notOnOrAfter")

    @field_validator("not_on_or_after", mode="before")
    @classmethod
    def _empty_as_missing(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value


class _AssertionExpiry(BaseModel):
    """The part of an assertion payload that bounds the session lifetime."""

    model_config = ConfigDict(extra="ignore")

    conditions: _AssertionConditions | None = None


async def try_safe(func: Callable[[], Awaitable[T]]) -> T | None:
    """Await ``func()``; return None instead of raising."""
    try:
        return await func()
    except Exception:
        logger.debug("Best-effort lookup failed", exc_info=True)
        return None


def filter_supported_connectors(connectors: list[SsoConnector]) -> list[SsoConnector]:
    """Drop connectors whose provider is not registered."""
    return [c for c in connectors if is_supported_sso_connector(c)]


def is_available_connector(connector: SsoConnector) -> bool:
    """Supported, with a valid config and at least one email domain."""
    factory = sso_connector_factories.get(connector.provider_name)
    if factory is None:
        return False
    return factory.validate(connector.config) and len(connector.domains or []) > 0


def compute_session_expires_at(assertion_content: dict[str, Any], now: datetime) -> int:
    """Session expiry in epoch millis.

    Never later than the assertion's own NotOnOrAfter condition; without one,
    ``now`` plus the default TTL.
    """
    expiry = _AssertionExpiry.model_validate(assertion_content or {})
    not_on_or_after = expiry.conditions.not_on_or_after if expiry.conditions else None
    if not_on_or_after is not None:
        if not_on_or_after.tzinfo is None:
            not_on_or_after = not_on_or_after.replace(tzinfo=UTC)
        return epoch_millis(not_on_or_after)
    return epoch_millis(now + default_saml_session_ttl())


def _assert_first_party_traditional(application: Application) -> None:
    if application.type != ApplicationType.TRADITIONAL or application.is_third_party:
        raise InvalidApplicationTypeError(application_id=application.id)


class SsoConnectorService:
    """SSO connector operations over one request's queries."""

    def __init__(self, queries: Queries) -> None:
        self._sso_connectors = queries.sso_connectors
        self._applications = queries.applications

    async def get_sso_connectors(
        self,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[int, list[SsoConnector]]:
        """Page of supported connectors.

        The returned count is the unfiltered persisted total, so a page may
        hold fewer items than ``limit`` even when more pages follow.
        """
        count, connectors = await self._sso_connectors.find_all(limit, offset)
        return count, filter_supported_connectors(connectors)

    async def get_available_sso_connectors(self) -> list[SsoConnector]:
        """Connectors that can be used for sign-in right now."""
        _, connectors = await self.get_sso_connectors()
        return [c for c in connectors if is_available_connector(c)]

    async def get_sso_connector_by_id(self, connector_id: str) -> SsoConnector:
        """Get a supported connector.

        Raises NotFoundError both for missing connectors and for connectors
        with an unregistered provider.
        """
        connector = await self._sso_connectors.find_by_id(connector_id)
        if not is_supported_sso_connector(connector):
            raise NotFoundError("connector.not_found", connector_id=connector_id)
        return connector

    async def create_idp_initiated_auth_config(
        self, data: dict[str, Any]
    ) -> SsoConnectorIdpInitiatedAuthConfig:
        """Create the IdP-initiated auth config of ``data["connector_id"]``.

        Raises NotFoundError if the default application does not exist and
        InvalidApplicationTypeError unless it is a first-party traditional
        web application.
        """
        application = await self._applications.find_application_by_id(
            data["default_application_id"]
        )
        _assert_first_party_traditional(application)

        config = await self._sso_connectors.insert_idp_initiated_auth_config(data)
        logger.info(
            "IdP-initiated auth config created",
            connector_id=config.connector_id,
            application_id=config.default_application_id,
        )
        return config

    async def update_idp_initiated_auth_config(
        self,
        connector_id: str,
        set: dict[str, Any],
    ) -> SsoConnectorIdpInitiatedAuthConfig:
        """Partially update a config; ``auth_parameters`` is replaced whole."""
        default_application_id = set.get("default_application_id")
        if default_application_id:
            application = await self._applications.find_application_by_id(default_application_id)
            _assert_first_party_traditional(application)

        config = await self._sso_connectors.update_idp_initiated_auth_config(
            set=set,
            where={"connector_id": connector_id},
            jsonb_mode="replace",
        )
        logger.info(
            "IdP-initiated auth config updated",
            connector_id=connector_id,
            fields=sorted(set),
        )
        return config

    async def create_idp_initiated_saml_sso_session(
        self,
        connector_id: str,
        assertion_content: dict[str, Any],
    ) -> IdpInitiatedSamlSsoSession:
        """Record a verified SAML assertion for the IdP-initiated flow.

        The caller must have verified the assertion already; the connector is
        not looked up here. The session id is later used by the sign-in flow
        to retrieve the assertion.
        """
        expires_at = compute_session_expires_at(assertion_content, utc_now())

        session = await self._sso_connectors.insert_idp_initiated_saml_sso_session(
            {
                "id": generate_standard_id(),
                "connector_id": connector_id,
                "assertion_content": assertion_content,
                "expires_at": expires_at,
            }
        )
        logger.info(
            "IdP-initiated SAML SSO session created",
            connector_id=connector_id,
            session_id=session.id,
            expires_at=expires_at,
        )
        return session

    async def get_idp_initiated_saml_sso_sign_in_url(
        self,
        issuer: str,
        auth_config: SsoConnectorIdpInitiatedAuthConfig,
    ) -> str:
        """Build the OIDC sign-in URL for an IdP-initiated SAML SSO session.

        Args:
            issuer: OIDC issuer of the current tenant.
            auth_config: The connector's IdP-initiated auth config.

        Raises:
            InvalidRedirectUriError: No redirect URI is configured and the
                default application has none registered.
        """
        connector_id = auth_config.connector_id
        default_application_id = auth_config.default_application_id
        extra_params = dict(auth_config.auth_parameters or {})
        scope = extra_params.pop(QueryKey.SCOPE, None)

        redirect_uri = auth_config.redirect_uri or await try_safe(
            lambda: self._first_redirect_uri(default_application_id)
        )
        if not redirect_uri:
            raise InvalidRedirectUriError(connector_id=connector_id)

        direct_sign_in = DirectSignInOptions(method="sso", target=connector_id)

        params: dict[str, str] = {
            QueryKey.CLIENT_ID: default_application_id,
            QueryKey.REDIRECT_URI: redirect_uri,
            QueryKey.RESPONSE_TYPE: "code",
            QueryKey.PROMPT: Prompt.LOGIN,
            QueryKey.DIRECT_SIGN_IN: str(direct_sign_in),
        }
        params.update(extra_params)
        # scope goes last
        params[QueryKey.SCOPE] = with_reserved_scopes(scope.split(" ") if scope else [])

        query = urlencode([(str(k), str(v)) for k, v in params.items()])
        return f"{issuer}/auth?{query}"

    async def _first_redirect_uri(self, application_id: str) -> str | None:
        application = await self._applications.find_application_by_id(application_id)
        redirect_uris = application.redirect_uris
        return redirect_uris[0] if redirect_uris else None
