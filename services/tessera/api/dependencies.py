"""FastAPI dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tessera.db.queries import Queries
from tessera.db.session import get_db
from tessera.services.sso_connector_service import SsoConnectorService


async def get_queries(db: AsyncSession = Depends(get_db)) -> Queries:
    """Query facade bound to the request's database session."""
    return Queries.from_session(db)


async def get_sso_connector_service(
    queries: Queries = Depends(get_queries),
) -> SsoConnectorService:
    return SsoConnectorService(queries)
