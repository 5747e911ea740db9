from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.config import get_settings
from stockroom.database import async_session
from stockroom.services.identity.client import IdentityClient
from stockroom.services.inventory_service import InventoryService
from stockroom.services.product_store import SqlProductStore
from stockroom.services.reconciliation_service import ProductReconciler
from stockroom.services.user_service import UserService
from stockroom.services.websockets.manager import ConnectionManager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_identity_client() -> IdentityClient:
    return IdentityClient.from_settings(get_settings())


def get_product_store(db: AsyncSession = Depends(get_db)) -> SqlProductStore:
    return SqlProductStore(db)


def get_reconciler(store: SqlProductStore = Depends(get_product_store)) -> ProductReconciler:
    return ProductReconciler(store, atomic=get_settings().RECONCILE_ATOMIC)


def get_inventory_service(db: AsyncSession = Depends(get_db)) -> InventoryService:
    return InventoryService(db)


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)
