"""
SQLAlchemy database models for Tessera.

All models use:
- Opaque string primary keys (see generate_standard_id)
- snake_case column names
- Plural table names
- TIMESTAMPTZ with UTC for all timestamps, except session expiry which is
  stored as epoch milliseconds
"""

import secrets
import string
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    String,
    Text,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
STANDARD_ID_ALPHABET = string.ascii_lowercase + string.digits
STANDARD_ID_LENGTH = 21


def generate_standard_id(length: int = STANDARD_ID_LENGTH) -> str:
    """Generate a random, URL-safe lowercase alphanumeric id."""
    return "".join(secrets.choice(STANDARD_ID_ALPHABET) for _ in range(length))


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def epoch_millis(value: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return (value - _EPOCH) // timedelta(milliseconds=1)


class ApplicationType(StrEnum):
    NATIVE = "Native"
    SPA = "SPA"
    TRADITIONAL = "Traditional"
    MACHINE_TO_MACHINE = "MachineToMachine"
    PROTECTED = "Protected"
    SAML = "SAML"


class Base(DeclarativeBase):
    """Base class for all models."""

    type_annotation_map = {
        dict[str, Any]: JSONB,
    }


class Application(Base):
    """OIDC client application.

    Managed elsewhere; Tessera only reads it to validate IdP-initiated
    auth configs and to resolve default redirect URIs.
    """

    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(21), primary_key=True, default=generate_standard_id)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    type: Mapped[ApplicationType] = mapped_column(
        SAEnum(
            ApplicationType,
            name="application_type",
            values_callable=lambda enum: [m.value for m in enum],
        ),
        nullable=False,
    )
    is_third_party: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # {"redirectUris": [...], "postLogoutRedirectUris": [...]}
    oidc_client_metadata: Mapped[dict[str, Any]] = mapped_column(
        JSONB, default=dict, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    @property
    def redirect_uris(self) -> list[str]:
        """Registered redirect URIs, in registration order."""
        return list((self.oidc_client_metadata or {}).get("redirectUris") or [])


class SsoConnector(Base):
    """Enterprise SSO connector.

    ``config`` is provider-specific and validated against the registry in
    tessera.sso. ``domains`` are the email domains routed to this connector.
    """

    __tablename__ = "sso_connectors"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=generate_standard_id)
    provider_name: Mapped[str] = mapped_column(String(128), nullable=False)
    connector_name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    config: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict, nullable=False)
    domains: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )


class SsoConnectorIdpInitiatedAuthConfig(Base):
    """IdP-initiated SAML SSO settings, one row per connector."""

    __tablename__ = "sso_connector_idp_initiated_auth_configs"

    connector_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("sso_connectors.id", ondelete="CASCADE"), primary_key=True
    )
    default_application_id: Mapped[str] = mapped_column(
        String(21), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    redirect_uri: Mapped[str | None] = mapped_column(Text, nullable=True)
    # {"scope": "openid email", "<extra param>": "<value>"}
    auth_parameters: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class IdpInitiatedSamlSsoSession(Base):
    """Verified SAML assertion awaiting pickup by the OIDC sign-in flow.

    Write-once. The session is invalid once the current time reaches
    ``expires_at`` (epoch milliseconds).
    """

    __tablename__ = "idp_initiated_saml_sso_sessions"

    id: Mapped[str] = mapped_column(String(21), primary_key=True)
    connector_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("sso_connectors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assertion_content: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        return epoch_millis(now or utc_now()) >= self.expires_at
