# tests/test_routes/test_product_routes.py
import pytest
from unittest.mock import AsyncMock

from stockroom.core.security import get_current_user
from stockroom.dependencies import get_inventory_service, get_product_store, get_reconciler
from stockroom.main import app
from stockroom.services.inventory_service import InventoryService
from stockroom.services.reconciliation_service import ProductReconciler
from tests.conftest import OTHER_OWNER_ID, OWNER_ID
from tests.mocks.memory_store import MemoryProductStore

RECONCILE_URL = "/products/actualizar-usuario-productos"


@pytest.fixture
def store():
    store = MemoryProductStore([
        {"code": "A", "name": "Tornillo", "owner_id": OWNER_ID},
        {"code": "B", "name": "Clavo", "owner_id": OWNER_ID},
        {"code": "A", "name": "Tuerca", "owner_id": OTHER_OWNER_ID},
    ])
    app.dependency_overrides[get_product_store] = lambda: store
    app.dependency_overrides[get_reconciler] = lambda: ProductReconciler(store)
    return store


def test_routes_require_token(test_client):
    response = test_client.get("/products")
    assert response.status_code == 401
    assert response.json()["error"] == "Token not provided"


def test_list_my_products_only_returns_owner_rows(authenticated_client, store):
    response = authenticated_client.get("/products/mine")

    assert response.status_code == 200
    products = response.json()["products"]
    assert [p["code"] for p in products] == ["A", "B"]
    assert {p["owner_id"] for p in products} == {OWNER_ID}


def test_reconcile_defaults_to_upsert_subset(authenticated_client, store):
    response = authenticated_client.post(RECONCILE_URL, json={"products": [{"code": "B"}, {"code": "C"}]})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["mode"] == "upsert_subset"
    assert body["deleted"] == 1
    assert body["inserted"] == 2
    assert [row["code"] for row in body["data"]] == ["B", "C"]
    assert store.codes_for(OWNER_ID) == ["A", "B", "C"]
    assert store.codes_for(OTHER_OWNER_ID) == ["A"]


def test_reconcile_replace_all_accepts_spanish_fields(authenticated_client, store):
    response = authenticated_client.post(
        f"{RECONCILE_URL}?mode=replace_all",
        json={"products": [{"codigo": "C", "nombre": "Martillo", "marca": "Stanley", "unidad": "pz"}]},
    )

    assert response.status_code == 200
    assert response.json()["deleted"] == 2
    assert store.codes_for(OWNER_ID) == ["C"]
    [row] = response.json()["data"]
    assert row["name"] == "Martillo"
    assert row["brand"] == "Stanley"


def test_reconcile_empty_payload_clears_owner(authenticated_client, store):
    response = authenticated_client.post(RECONCILE_URL, json={"products": []})

    assert response.status_code == 200
    assert response.json()["inserted"] == 0
    assert store.codes_for(OWNER_ID) == []


def test_reconcile_rejects_product_without_code(authenticated_client, store):
    response = authenticated_client.post(RECONCILE_URL, json={"products": [{"name": "sin codigo"}]})

    assert response.status_code == 400
    assert response.json()["error"] == "Request validation failed"
    assert store.codes_for(OWNER_ID) == ["A", "B"]


def test_reconcile_storage_failure_is_500(authenticated_client, store):
    store.fail_on = {"upsert"}

    response = authenticated_client.post(RECONCILE_URL, json={"products": [{"code": "Z"}]})

    assert response.status_code == 500
    assert response.json()["error"] == "Storage operation failed"
    assert store.codes_for(OWNER_ID) == ["A", "B"]


def test_add_product_duplicate_code_is_conflict(authenticated_client, store):
    payload = {"codigo": "A", "nombre": "Tornillo", "categoria": "Ferreteria", "marca": "Truper", "unidad": "pz"}

    response = authenticated_client.post("/products", json=payload)

    assert response.status_code == 409


def test_add_product(authenticated_client, store):
    payload = {"code": "N-1", "name": "Nuevo", "category": "Varios", "brand": "Generica", "unit": "pz"}

    response = authenticated_client.post("/products", json=payload)

    assert response.status_code == 200
    assert response.json()["data"]["owner_id"] == OWNER_ID
    assert "N-1" in store.codes_for(OWNER_ID)


def test_delete_product_requires_admin(authenticated_client, store):
    response = authenticated_client.delete("/products/1")
    assert response.status_code == 403


def test_admin_deletes_product(test_client, store, admin):
    app.dependency_overrides[get_current_user] = lambda: admin

    assert test_client.delete("/products/1").status_code == 200
    assert test_client.delete("/products/1").status_code == 404


def test_inventory_update_passes_owner(authenticated_client):
    service = AsyncMock(spec=InventoryService)
    service.update_entry.return_value = {"id": 3, "code": "A", "quantity": 5}
    app.dependency_overrides[get_inventory_service] = lambda: service

    response = authenticated_client.put("/products/inventory/3", json={"cantidad": 5})

    assert response.status_code == 200
    entry_id, changes, owner_id = service.update_entry.call_args.args
    assert (entry_id, owner_id) == (3, OWNER_ID)
    assert changes.quantity == 5


def test_list_products_uses_read_schema(authenticated_client, store):
    response = authenticated_client.get("/products")

    assert response.status_code == 200
    products = response.json()
    assert [p["code"] for p in products] == ["A", "B", "A"]
    assert set(products[0]) == {"id", "code", "name", "category", "brand", "unit", "owner_id", "created_at"}
