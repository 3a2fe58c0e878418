"""Initial schema

Revision ID: 4c2a9e71d0b3
Revises: -
Create Date: 2026-10-19

Creates all tables matching the current SQLAlchemy models.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "4c2a9e71d0b3"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

APPLICATION_TYPES = ("Native", "SPA", "Traditional", "MachineToMachine", "Protected", "SAML")


def upgrade() -> None:
    # ── applications (read-only here; managed by the platform) ────────────
    op.create_table(
        "applications",
        sa.Column("id", sa.String(21), primary_key=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("type", sa.Enum(*APPLICATION_TYPES, name="application_type"), nullable=False),
        sa.Column("is_third_party", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "oidc_client_metadata",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # ── sso_connectors ────────────────────────────────────────────────────
    op.create_table(
        "sso_connectors",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("provider_name", sa.String(128), nullable=False),
        sa.Column("connector_name", sa.String(128), nullable=False, unique=True),
        sa.Column(
            "config", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")
        ),
        sa.Column(
            "domains", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_sso_connectors_created_at", "sso_connectors", ["created_at"])

    # ── sso_connector_idp_initiated_auth_configs (one per connector) ──────
    op.create_table(
        "sso_connector_idp_initiated_auth_configs",
        sa.Column(
            "connector_id",
            sa.String(128),
            sa.ForeignKey("sso_connectors.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "default_application_id",
            sa.String(21),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("redirect_uri", sa.Text(), nullable=True),
        sa.Column(
            "auth_parameters",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # ── idp_initiated_saml_sso_sessions ───────────────────────────────────
    op.create_table(
        "idp_initiated_saml_sso_sessions",
        sa.Column("id", sa.String(21), primary_key=True),
        sa.Column(
            "connector_id",
            sa.String(128),
            sa.ForeignKey("sso_connectors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "assertion_content",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_idp_initiated_saml_sso_sessions_connector_id",
        "idp_initiated_saml_sso_sessions",
        ["connector_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_idp_initiated_saml_sso_sessions_connector_id",
        table_name="idp_initiated_saml_sso_sessions",
    )
    op.drop_table("idp_initiated_saml_sso_sessions")
    op.drop_table("sso_connector_idp_initiated_auth_configs")
    op.drop_index("ix_sso_connectors_created_at", table_name="sso_connectors")
    op.drop_table("sso_connectors")
    op.drop_table("applications")
    sa.Enum(name="application_type").drop(op.get_bind(), checkfirst=True)
