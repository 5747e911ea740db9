"""
Profile rows mirroring identity-service accounts.
"""

import logging
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.exceptions import StorageError
from stockroom.models.user import User

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_profile(self, user_id: str, email: str, name: Optional[str] = None) -> None:
        """Insert the profile row; a repeated registration for the same id is a no-op."""
        stmt = (
            pg_insert(User)
            .values(id=user_id, email=email, name=name)
            .on_conflict_do_nothing(index_elements=["id"])
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Error saving profile for user {user_id}: {e}") from e
        logger.info(f"Profile stored for user {user_id}")
