"""Base repository for the record store."""

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Data access for one table.

    Repositories never commit; the service that owns the unit of work does.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID, *, for_update: bool = False) -> ModelType | None:
        """Get a record by primary key.

        With ``for_update`` the row stays locked (SELECT ... FOR UPDATE) until
        the session's transaction ends, and an instance already loaded in the
        session is refreshed from the locked row.
        """
        query = select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Stage a new record in the session (no flush/commit)."""
        self.session.add(entity)
