"""Read access to OIDC applications."""

from sqlalchemy.ext.asyncio import AsyncSession

from tessera.db.models import Application
from tessera.errors import NotFoundError


class ApplicationQueries:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_application_by_id(self, application_id: str) -> Application:
        """Get an application. Raises NotFoundError if it does not exist."""
        application = await self._db.get(Application, application_id)
        if application is None:
            raise NotFoundError(
                "entity.not_exists_with_id",
                message="Application not found",
                id=application_id,
            )
        return application
