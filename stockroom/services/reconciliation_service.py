# stockroom/services/reconciliation_service.py
"""
Replaces an owner's product rows with a client-supplied set.

Two delete scopes are offered because the legacy endpoint only deleted the
codes it was sent, which lets codes missing from a later payload survive:

- upsert_subset: delete the owner's rows whose code is in the input, then upsert.
- replace_all:   delete every row of the owner, then upsert.

Either way an empty input removes all of the owner's rows.

Rows are tagged with the owner and inserted with ON CONFLICT (code, owner_id)
DO NOTHING, so re-running a reconciliation is idempotent and a concurrent call
inserting the same key collapses instead of failing. No lock is taken: two
concurrent calls for one owner may interleave their phases.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from stockroom.core.enums import ReconcileMode
from stockroom.core.exceptions import PartialReconciliationError, StorageError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    mode: ReconcileMode
    deleted_count: int
    inserted_count: int
    inserted_rows: List[Dict[str, Any]] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "mode": self.mode,
            "deleted": self.deleted_count,
            "inserted": self.inserted_count,
            "data": self.inserted_rows,
        }


def prepare_rows(products: Iterable[Dict[str, Any]], owner_id: str) -> List[Dict[str, Any]]:
    """
    Validate, dedupe by code (first occurrence wins) and tag with owner_id.
    Raises ValidationError before anything is written.
    """
    rows: List[Dict[str, Any]] = []
    seen = set()
    for index, product in enumerate(products):
        code = product.get("code")
        if isinstance(code, str):
            code = code.strip()
        if not code:
            raise ValidationError(
                f"Product at position {index} has no code",
                details={"index": index},
            )
        if code in seen:
            logger.debug(f"Dropping duplicate code {code!r} for owner {owner_id}")
            continue
        seen.add(code)
        rows.append({**product, "code": code, "owner_id": owner_id})
    return rows


class ProductReconciler:
    """
    Args:
        store: SqlProductStore (or anything with the same coroutine API)
        atomic: run both phases in one transaction. With atomic=False each phase
            commits on its own and an insert failure after the delete leaves the
            owner's codes deleted (PartialReconciliationError).
    """

    def __init__(self, store, atomic: bool = True):
        self.store = store
        self.atomic = atomic

    async def upsert_subset(self, products: List[Dict[str, Any]], owner_id: str) -> ReconciliationResult:
        return await self.reconcile(products, owner_id, ReconcileMode.UPSERT_SUBSET)

    async def replace_all(self, products: List[Dict[str, Any]], owner_id: str) -> ReconciliationResult:
        return await self.reconcile(products, owner_id, ReconcileMode.REPLACE_ALL)

    async def reconcile(
        self,
        products: List[Dict[str, Any]],
        owner_id: str,
        mode: ReconcileMode = ReconcileMode.UPSERT_SUBSET,
    ) -> ReconciliationResult:
        if not owner_id:
            raise ValidationError("Owner id not provided")

        rows = prepare_rows(products, owner_id)
        codes = [row["code"] for row in rows]

        # None means "every row of the owner"
        delete_scope: Optional[List[str]] = None
        if mode == ReconcileMode.UPSERT_SUBSET and codes:
            delete_scope = codes

        if self.atomic:
            deleted_count = await self._run_atomic(rows, owner_id, delete_scope)
        else:
            deleted_count = await self._run_two_phase(rows, owner_id, delete_scope)

        inserted_rows = await self.store.list_for_owner(owner_id, codes) if codes else []

        logger.info(
            f"Reconciled products for owner {owner_id} ({mode.value}): "
            f"{deleted_count} deleted, {len(inserted_rows)} present from {len(rows)} submitted"
        )
        return ReconciliationResult(
            mode=mode,
            deleted_count=deleted_count,
            inserted_count=len(inserted_rows),
            inserted_rows=inserted_rows,
        )

    async def _run_atomic(self, rows, owner_id, delete_scope) -> int:
        async with self.store.transaction():
            deleted_count = await self.store.delete_for_owner(owner_id, delete_scope)
            await self.store.upsert(rows)
        return deleted_count

    async def _run_two_phase(self, rows, owner_id, delete_scope) -> int:
        # A failed delete propagates here, before anything is inserted
        async with self.store.transaction():
            deleted_count = await self.store.delete_for_owner(owner_id, delete_scope)

        try:
            async with self.store.transaction():
                await self.store.upsert(rows)
        except StorageError as e:
            logger.error(
                f"Insert phase failed for owner {owner_id} after deleting {deleted_count} rows: {e}"
            )
            raise PartialReconciliationError(owner_id, deleted_count) from e
        return deleted_count
