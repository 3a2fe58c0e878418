"""Query facade over the Tessera tables."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from .applications import ApplicationQueries
from .sso_connectors import SsoConnectorQueries


@dataclass(frozen=True)
class Queries:
    """All query helpers, bound to the same request session."""

    sso_connectors: SsoConnectorQueries
    applications: ApplicationQueries

    @classmethod
    def from_session(cls, db: AsyncSession) -> "Queries":
        return cls(
            sso_connectors=SsoConnectorQueries(db),
            applications=ApplicationQueries(db),
        )


__all__ = ["ApplicationQueries", "Queries", "SsoConnectorQueries"]
