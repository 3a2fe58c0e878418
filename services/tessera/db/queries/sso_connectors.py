"""Persistence for SSO connectors and their IdP-initiated SSO records."""

from typing import Any, Literal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tessera.db.models import (
    IdpInitiatedSamlSsoSession,
    SsoConnector,
    SsoConnectorIdpInitiatedAuthConfig,
)
from tessera.errors import ConflictError, NotFoundError, RequestError
from tessera.logging_config import get_logger

logger = get_logger(__name__)

JsonbMode = Literal["replace", "merge"]

_AUTH_CONFIG_UPDATABLE = frozenset({"default_application_id", "redirect_uri", "auth_parameters"})
_AUTH_CONFIG_JSONB = frozenset({"auth_parameters"})

# PostgreSQL SQLSTATE for unique and primary key violations
UNIQUE_VIOLATION = "23505"


class SsoConnectorQueries:
    """Query helpers bound to one database session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_all(
        self,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[int, list[SsoConnector]]:
        """Return (total count, page of connectors), newest first.

        The count is over all persisted connectors, regardless of provider.
        """
        count = await self._db.scalar(select(func.count()).select_from(SsoConnector))

        query = select(SsoConnector).order_by(SsoConnector.created_at.desc(), SsoConnector.id)
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)

        result = await self._db.execute(query)
        return count or 0, list(result.scalars().all())

    async def find_by_id(self, connector_id: str) -> SsoConnector | None:
        return await self._db.get(SsoConnector, connector_id)

    async def find_idp_initiated_auth_config_by_connector_id(
        self, connector_id: str
    ) -> SsoConnectorIdpInitiatedAuthConfig | None:
        return await self._db.get(SsoConnectorIdpInitiatedAuthConfig, connector_id)

    async def insert_idp_initiated_auth_config(
        self, data: dict[str, Any]
    ) -> SsoConnectorIdpInitiatedAuthConfig:
        """Insert a config row.

        Raises ConflictError if the connector already has a config, and a
        400 RequestError if a referenced connector or application is missing.
        """
        config = SsoConnectorIdpInitiatedAuthConfig(**data)
        await self._insert(config, entity="sso_connector_idp_initiated_auth_config")
        return config

    async def update_idp_initiated_auth_config(
        self,
        *,
        set: dict[str, Any],
        where: dict[str, str],
        jsonb_mode: JsonbMode = "replace",
    ) -> SsoConnectorIdpInitiatedAuthConfig:
        """Update the config of ``where["connector_id"]``.

        With ``jsonb_mode="replace"`` JSONB columns are overwritten as a
        whole; ``"merge"`` merges top-level keys into the stored object.
        """
        unknown = set.keys() - _AUTH_CONFIG_UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")

        connector_id = where["connector_id"]
        config = await self.find_idp_initiated_auth_config_by_connector_id(connector_id)
        if config is None:
            raise NotFoundError(
                "entity.not_found",
                message="IdP-initiated auth config not found",
                connector_id=connector_id,
            )

        for column, value in set.items():
            if column in _AUTH_CONFIG_JSONB and jsonb_mode == "merge":
                value = {**(getattr(config, column) or {}), **(value or {})}
            setattr(config, column, value)

        await self._db.flush()
        await self._db.refresh(config)
        return config

    async def delete_idp_initiated_auth_config(self, connector_id: str) -> None:
        config = await self.find_idp_initiated_auth_config_by_connector_id(connector_id)
        if config is None:
            raise NotFoundError(
                "entity.not_found",
                message="IdP-initiated auth config not found",
                connector_id=connector_id,
            )
        await self._db.delete(config)
        await self._db.flush()

    async def insert_idp_initiated_saml_sso_session(
        self, data: dict[str, Any]
    ) -> IdpInitiatedSamlSsoSession:
        session = IdpInitiatedSamlSsoSession(**data)
        await self._insert(session, entity="idp_initiated_saml_sso_session")
        return session

    async def _insert(self, row: Any, *, entity: str) -> None:
        # Savepoint so a constraint violation leaves the request transaction usable
        try:
            async with self._db.begin_nested():
                self._db.add(row)
            await self._db.refresh(row)
        except IntegrityError as e:
            sqlstate = getattr(e.orig, "sqlstate", None)
            logger.info(
                "Insert rejected by constraint",
                entity=entity,
                sqlstate=sqlstate,
                error=str(e.orig),
            )
            if sqlstate == UNIQUE_VIOLATION:
                raise ConflictError("entity.create_failed", entity=entity) from e
            raise RequestError(
                "entity.create_failed",
                message="Referenced entity does not exist or value is invalid",
                entity=entity,
            ) from e
