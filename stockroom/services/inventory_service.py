"""
Inventory entries: explicit insert and explicit update only.

Entries are never upsert-merged and never deleted here; removal is an
administrative action outside the API. Each write stamps last_modified and,
through the database trigger, produces one change-feed event.
"""

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.exceptions import NotFoundError, StorageError
from stockroom.models.inventory import InventoryEntry
from stockroom.schemas.inventory import InventoryCreate, InventoryRead, InventoryUpdate

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_entries(self, owner_id: str) -> List[InventoryRead]:
        query = (
            select(InventoryEntry)
            .where(InventoryEntry.owner_id == owner_id)
            .order_by(InventoryEntry.last_modified.desc())
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StorageError(f"Error fetching inventory: {e}") from e
        return [InventoryRead.model_validate(entry) for entry in result.scalars().all()]

    async def add_entry(self, data: InventoryCreate, owner_id: str) -> InventoryRead:
        entry = InventoryEntry(
            **data.model_dump(),
            owner_id=owner_id,
            last_modified=datetime.now(timezone.utc),
        )
        try:
            self.db.add(entry)
            await self.db.commit()
            await self.db.refresh(entry)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Error saving inventory: {e}") from e

        logger.info(f"Inventory entry {entry.id} ({entry.code}) created for owner {owner_id}")
        return InventoryRead.model_validate(entry)

    async def update_entry(self, entry_id: int, data: InventoryUpdate, owner_id: str) -> InventoryRead:
        """
        Update one of the caller's entries.

        Raises:
            NotFoundError: no entry with this id belongs to the caller
        """
        try:
            entry = await self.db.scalar(
                select(InventoryEntry).where(
                    InventoryEntry.id == entry_id,
                    InventoryEntry.owner_id == owner_id,
                )
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Error fetching inventory entry {entry_id}: {e}") from e

        if entry is None:
            raise NotFoundError(f"Inventory entry {entry_id} not found")

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(entry, key, value)
        entry.last_modified = datetime.now(timezone.utc)

        try:
            await self.db.commit()
            await self.db.refresh(entry)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Error updating inventory entry {entry_id}: {e}") from e

        return InventoryRead.model_validate(entry)
