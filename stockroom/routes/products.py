# stockroom/routes/products.py
import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from stockroom.core.enums import ReconcileMode
from stockroom.core.exceptions import NotFoundError
from stockroom.core.security import get_current_user, require_role
from stockroom.dependencies import get_inventory_service, get_product_store, get_reconciler
from stockroom.schemas.auth import AuthenticatedUser
from stockroom.schemas.inventory import InventoryCreate, InventoryUpdate
from stockroom.schemas.product import ProductCreate, ProductRead, ReconcileRequest, ReconcileResponse
from stockroom.services.inventory_service import InventoryService
from stockroom.services.product_store import SqlProductStore
from stockroom.services.reconciliation_service import ProductReconciler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductRead])
async def list_products(
    user: AuthenticatedUser = Depends(get_current_user),
    store: SqlProductStore = Depends(get_product_store),
):
    return await store.list_all()


@router.post("")
async def add_product(
    product: ProductCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    store: SqlProductStore = Depends(get_product_store),
):
    row = await store.insert({**product.model_dump(), "owner_id": user.id})
    logger.info(f"Product {row['code']} added for owner {user.id}")
    return {"success": True, "data": row}


@router.get("/mine")
async def list_my_products(
    user: AuthenticatedUser = Depends(get_current_user),
    store: SqlProductStore = Depends(get_product_store),
):
    return {"success": True, "products": await store.list_for_owner(user.id)}


@router.post("/actualizar-usuario-productos", response_model=ReconcileResponse)
async def reconcile_user_products(
    payload: ReconcileRequest,
    mode: ReconcileMode = Query(ReconcileMode.UPSERT_SUBSET),
    user: AuthenticatedUser = Depends(get_current_user),
    reconciler: ProductReconciler = Depends(get_reconciler),
):
    """Replace the caller's products with the submitted set."""
    products = [item.model_dump(exclude_unset=True) for item in payload.products]
    result = await reconciler.reconcile(products, user.id, mode)
    return result.to_response()


@router.delete("/{product_id}", dependencies=[Depends(require_role("admin"))])
async def delete_product(
    product_id: int,
    store: SqlProductStore = Depends(get_product_store),
):
    deleted = await store.delete_by_id(product_id)
    if not deleted:
        raise NotFoundError(f"Product {product_id} not found")
    return {"success": True, "message": "Product deleted"}


@router.get("/inventory")
async def list_inventory(
    user: AuthenticatedUser = Depends(get_current_user),
    service: InventoryService = Depends(get_inventory_service),
):
    return {"success": True, "data": await service.list_entries(user.id)}


@router.post("/inventory")
async def add_inventory(
    entry: InventoryCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    service: InventoryService = Depends(get_inventory_service),
):
    return {"success": True, "data": await service.add_entry(entry, user.id)}


@router.put("/inventory/{entry_id}")
async def update_inventory(
    entry_id: int,
    changes: InventoryUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    service: InventoryService = Depends(get_inventory_service),
):
    return {"success": True, "data": await service.update_entry(entry_id, changes, user.id)}
