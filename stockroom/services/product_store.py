"""
Row-shaped access to the products table.

Every method returns plain dicts so the reconciler and the HTTP layer never
hold ORM instances across a commit. All driver failures are re-raised as
StorageError; a duplicate (code, owner_id) on a plain insert is a ConflictError.

asyncpg accepts at most 32767 bind parameters per statement, so code lists
travel as a single array parameter (code = ANY(:codes)) and multi-row
upserts are split into batches.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from sqlalchemy import String, any_, bindparam, delete, select
from sqlalchemy.dialects.postgresql import ARRAY, insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.exceptions import ConflictError, StorageError
from stockroom.models.product import PRODUCT_FIELDS, Product

logger = logging.getLogger(__name__)

products = Product.__table__

CONFLICT_KEY = ("code", "owner_id")

# len(PRODUCT_FIELDS) parameters per row; keeps one batch well under 32767
UPSERT_BATCH_SIZE = 1000


def _clean(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: row.get(key) for key in PRODUCT_FIELDS if key in row}


def _full_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Every product column, None where the row has no value.

    A multi-row VALUES clause takes its column list from the first row, so
    all rows of one statement must carry the same keys.
    """
    return {key: row.get(key) for key in PRODUCT_FIELDS}


def _code_in(codes: Iterable[str]):
    return products.c.code == any_(bindparam("codes", list(codes), type_=ARRAY(String)))


class SqlProductStore:
    def __init__(self, db: AsyncSession, batch_size: int = UPSERT_BATCH_SIZE):
        self.db = db
        self.batch_size = batch_size

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlProductStore"]:
        """Commit everything done inside the block, or roll all of it back."""
        try:
            yield self
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Transaction failed: {e}") from e
        except Exception:
            await self.db.rollback()
            raise

    async def list_all(self) -> List[Dict[str, Any]]:
        try:
            result = await self.db.execute(select(products).order_by(products.c.id))
        except SQLAlchemyError as e:
            raise StorageError(f"Error fetching products: {e}") from e
        return [dict(row) for row in result.mappings().all()]

    async def list_for_owner(
        self,
        owner_id: str,
        codes: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        query = select(products).where(products.c.owner_id == owner_id)
        if codes is not None:
            query = query.where(_code_in(codes))
        try:
            result = await self.db.execute(query.order_by(products.c.code))
        except SQLAlchemyError as e:
            raise StorageError(f"Error fetching products for owner {owner_id}: {e}") from e
        return [dict(row) for row in result.mappings().all()]

    async def insert(self, row: Dict[str, Any]) -> Dict[str, Any]:
        stmt = products.insert().values(**_clean(row)).returning(*products.c)
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(
                f"Product '{row.get('code')}' already exists for this owner",
                details={"code": row.get("code")},
            ) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Error adding product: {e}") from e
        return dict(result.mappings().one())

    async def delete_by_id(self, product_id: int) -> int:
        try:
            result = await self.db.execute(delete(products).where(products.c.id == product_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Error deleting product {product_id}: {e}") from e
        return result.rowcount

    async def delete_for_owner(
        self,
        owner_id: str,
        codes: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Delete the owner's rows, restricted to `codes` when given.
        Does not commit; run it inside transaction().
        """
        stmt = delete(products).where(products.c.owner_id == owner_id)
        if codes is not None:
            stmt = stmt.where(_code_in(codes))
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"Error deleting products for owner {owner_id}: {e}") from e
        return result.rowcount

    async def upsert(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        INSERT .. ON CONFLICT (code, owner_id) DO NOTHING, batch_size rows per statement.
        Returns only the rows these statements inserted. Does not commit.
        """
        inserted: List[Dict[str, Any]] = []
        for start in range(0, len(rows), self.batch_size):
            batch = [_full_row(row) for row in rows[start:start + self.batch_size]]
            stmt = (
                pg_insert(products)
                .values(batch)
                .on_conflict_do_nothing(index_elements=list(CONFLICT_KEY))
                .returning(*products.c)
            )
            try:
                result = await self.db.execute(stmt)
            except SQLAlchemyError as e:
                raise StorageError(f"Error upserting products: {e}") from e
            inserted.extend(dict(row) for row in result.mappings().all())
        return inserted
