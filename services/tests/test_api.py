"""
Storefront HTTP API

Tests:
  1. Health, auth enforcement and session lifecycle
  2. Shopper flow: vendors, menus, cart selector, delivery location, checkout
  3. Order history and the pass-through transaction API
  4. Super-admin vendor CRUD and the vendor dashboard
"""
import json

import pytest

from app.gateway.codecs import encode_transaction
from app.sync.dual_write import drain_background_tasks

from conftest import (
    ADMIN_SCRIPT,
    HTML_LOGIN_PAGE,
    KANTIN_SCRIPT,
    admin_token,
    bearer,
    kantin_row,
    kantin_token,
    menu_row,
)


@pytest.fixture
def seeded(script):
    script.rows(ADMIN_SCRIPT, "AkunKantin").append(kantin_row())
    script.rows(KANTIN_SCRIPT, "Menus").extend([
        menu_row(),
        menu_row(id="menu-2", name="Es Teh", price="5000", quantity=""),
        menu_row(id="menu-3", name="Soto", quantity="0"),
    ])
    return script


def order_row(txn_id: str = "txn-1", status: str = "pending", code: str = "TRX-20260101-AB12") -> dict:
    return encode_transaction({
        "id": txn_id,
        "code": code,
        "kantinId": "kantin-1",
        "kantinName": "Kantin Satu",
        "items": [{"menuId": "menu-1", "menuName": "Nasi Goreng", "quantity": 1, "price": 15000}],
        "total": 15000,
        "paymentProof": "https://drive.google.com/uc?id=x",
        "status": status,
        "createdAt": "2026-01-01T10:00:00Z",
    })


# ─── Test 1: Health & auth ─────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_health_reports_dependencies(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["dependencies"] == {"redis": "ok", "super_admin_script": "configured"}


@pytest.mark.asyncio
async def test_protected_routes_require_bearer_token(client):
    r = await client.get("/dashboard/transactions")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"

    r = await client.get("/admin/kantins", headers=bearer("not-a-jwt"))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_wrong_role_is_forbidden(client, seeded):
    r = await client.get("/admin/kantins", headers=bearer(kantin_token()))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_kantin_login_me_and_logout(client, seeded):
    r = await client.post("/auth/kantin/login", json={"email": "SATU@kantin.test", "password": "rahasia"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["role"] == "kantin"
    assert body["kantin"]["id"] == "kantin-1"
    assert "password" not in body["kantin"]
    token = body["access_token"]

    r = await client.get("/auth/me", headers=bearer(token))
    assert r.json()["kantin_id"] == "kantin-1"

    r = await client.post("/auth/logout", headers=bearer(token))
    assert r.status_code == 204

    r = await client.get("/auth/me", headers=bearer(token))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_kantin_login_rejects_wrong_password(client, seeded):
    r = await client.post("/auth/kantin/login", json={"email": "satu@kantin.test", "password": "salah"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_kantin_login_when_accounts_sheet_misconfigured(client, script):
    script.fail(ADMIN_SCRIPT, "AkunKantin", text=HTML_LOGIN_PAGE)
    r = await client.post("/auth/kantin/login", json={"email": "satu@kantin.test", "password": "rahasia"})
    assert r.status_code == 503
    assert "deployment" in r.json()["detail"]


@pytest.mark.asyncio
async def test_admin_login(client):
    r = await client.post("/auth/admin/login", json={"username": "admin", "password": "wrong"})
    assert r.status_code == 401

    r = await client.post("/auth/admin/login", json={"username": "admin", "password": "admin-secret"})
    assert r.status_code == 200
    assert r.json()["role"] == "superadmin"


@pytest.mark.asyncio
async def test_login_rate_limit(client):
    for _ in range(5):
        r = await client.post("/auth/admin/login", json={"username": "admin", "password": "wrong"})
        assert r.status_code == 401

    r = await client.post("/auth/admin/login", json={"username": "admin", "password": "admin-secret"})
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "60"


# ─── Test 2: Shopper flow ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_public_vendor_list_hides_credentials(client, seeded):
    r = await client.get("/kantin")
    assert r.status_code == 200
    body = r.json()
    assert body["source"] == "remote"
    assert body["items"][0]["name"] == "Kantin Satu"
    assert body["items"][0]["isOpen"] is True
    assert "password" not in body["items"][0]
    assert "spreadsheetApiUrl" not in body["items"][0]


@pytest.mark.asyncio
async def test_unknown_vendor(client, seeded):
    r = await client.get("/kantin/kantin-404")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_menu_is_reconciled_with_cart(client, seeded):
    await client.post("/cart/kantin-1/items/menu-1", json={"quantity": 3})

    r = await client.get("/kantin/kantin-1/menus")
    items = {item["id"]: item for item in r.json()["items"]}

    assert items["menu-1"]["cartQuantity"] == 3
    assert items["menu-1"]["headroom"] == 5
    assert items["menu-2"]["quantity"] is None
    assert items["menu-3"]["unavailable"] is True
    assert items["menu-3"]["statusLabel"] == "sold_out"


@pytest.mark.asyncio
async def test_menu_falls_back_to_cache(client, seeded):
    await client.get("/kantin/kantin-1/menus")
    seeded.fail(KANTIN_SCRIPT, "Menus", status_code=500, text="down")

    r = await client.get("/kantin/kantin-1/menus")
    body = r.json()
    assert body["source"] == "local"
    assert body["error"].startswith("HTTP 500")
    assert len(body["items"]) == 3


@pytest.mark.asyncio
async def test_selector_clamps_to_stock(client, seeded):
    r = await client.post("/cart/kantin-1/items/menu-1", json={"quantity": 3})
    assert r.json()["cart"]["count"] == 3

    r = await client.put("/cart/kantin-1/items/menu-1", json={"quantity": 9, "displayed": 3})
    body = r.json()
    assert body["quantity"] == 5
    assert body["written"] is True
    assert body["canIncrement"] is False
    assert body["cart"]["items"]["menu-1"]["quantity"] == 5

    r = await client.put("/cart/kantin-1/items/menu-1", json={"quantity": 0, "displayed": 5})
    assert r.json()["quantity"] == 1


@pytest.mark.asyncio
async def test_requested_quantity_never_exceeds_stock(client, seeded):
    r = await client.post("/cart/kantin-1/items/menu-1", json={"quantity": 100})
    assert r.json()["cart"]["items"]["menu-1"]["quantity"] == 5

    await client.delete("/cart")
    r = await client.put("/cart/kantin-1/items/menu-1", json={"quantity": 50, "displayed": 50})
    body = r.json()
    assert body["quantity"] == 5
    assert body["canIncrement"] is False
    assert body["cart"]["items"]["menu-1"]["quantity"] == 5


@pytest.mark.asyncio
async def test_sold_out_item_cannot_be_added(client, seeded):
    r = await client.post("/cart/kantin-1/items/menu-3")
    assert r.status_code == 409
    assert (await client.get("/cart")).json()["count"] == 0


@pytest.mark.asyncio
async def test_remove_and_clear_cart(client, seeded):
    await client.post("/cart/kantin-1/items/menu-1")
    await client.post("/cart/kantin-1/items/menu-2", json={"quantity": 2})

    r = await client.delete("/cart/items/menu-1")
    assert r.json()["count"] == 2
    assert (await client.delete("/cart/items/menu-1")).status_code == 404

    r = await client.delete("/cart")
    assert r.json()["items"] == {}


@pytest.mark.parametrize("meja, name, table", [
    ("Gedung A - Meja 1", "Gedung A", "Meja 1"),
    ("Perpustakaan meja 2", "Perpustakaan", "meja 2"),
    ("Teras", "Lokasi", "Teras"),
])
@pytest.mark.asyncio
async def test_delivery_location_parsing(client, meja, name, table):
    r = await client.put("/delivery-location", json={"meja": meja})
    assert r.json()["deliveryFee"] == 1000

    location = (await client.get("/delivery-location")).json()
    assert (location["name"], location["tableNumber"]) == (name, table)

    r = await client.delete("/delivery-location")
    assert r.json()["deliveryFee"] == 0


@pytest.mark.asyncio
async def test_checkout_writes_transaction_and_empties_cart(client, seeded):
    await client.post("/cart/kantin-1/items/menu-1", json={"quantity": 2})
    await client.put("/delivery-location", json={"meja": "Gedung A - Meja 1"})

    r = await client.post("/kantin/kantin-1/checkout", json={
        "customerName": "  Budi ",
        "paymentProof": "https://drive.google.com/uc?export=view&id=file-123",
    })

    assert r.status_code == 201, r.text
    body = r.json()
    txn = body["transaction"]
    assert body["synced"] is True
    assert txn["total"] == 2 * 15000 + 1000
    assert txn["customerName"] == "Budi"
    assert txn["code"].startswith("TRX-")
    assert txn["status"] == "pending"
    assert body["notifications"][0]["level"] == "success"

    row = seeded.rows(KANTIN_SCRIPT, "Pesanan")[0]
    assert json.loads(row["deliveryLocation"])["tableNumber"] == "Meja 1"
    assert (await client.get("/cart")).json()["count"] == 0


@pytest.mark.asyncio
async def test_checkout_survives_remote_failure(client, seeded):
    await client.post("/cart/kantin-1/items/menu-1")
    seeded.fail(KANTIN_SCRIPT, "Pesanan", status_code=500, text="quota")

    r = await client.post("/kantin/kantin-1/checkout", json={"paymentProof": "https://drive.google.com/x"})

    body = r.json()
    assert r.status_code == 201
    assert body["synced"] is False
    assert body["pendingSync"] == [body["transaction"]["id"]]
    assert body["notifications"][0]["level"] == "warning"

    history = (await client.get("/transactions")).json()
    assert [item["id"] for item in history["items"]] == [body["transaction"]["id"]]


@pytest.mark.asyncio
async def test_checkout_requires_items(client, seeded):
    r = await client.post("/kantin/kantin-1/checkout", json={"paymentProof": "https://drive.google.com/x"})
    assert r.status_code == 400


# ─── Test 3: Order history & transaction API ───────────────────────────────────
@pytest.mark.asyncio
async def test_history_and_code_search(client, seeded):
    seeded.rows(KANTIN_SCRIPT, "Pesanan").append(order_row())

    r = await client.get("/transactions", params={"kantinId": "kantin-1"})
    assert [item["code"] for item in r.json()["items"]] == ["TRX-20260101-AB12"]

    r = await client.get("/transactions/search", params={"code": "trx-20260101-ab12"})
    assert r.status_code == 200
    assert r.json()["id"] == "txn-1"

    r = await client.get("/transactions/search", params={"code": "TRX-NOPE"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_transaction_api_validation(client):
    r = await client.post("/api/transactions", json={"transaction": {"id": "txn-1"}})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Spreadsheet URL is required"}

    r = await client.post("/api/transactions", json={"scriptUrl": KANTIN_SCRIPT})
    assert r.json()["error"] == "Transaction data is required"

    r = await client.get("/api/transactions")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_transaction_api_round_trip(client, script):
    for txn_id, created in [("txn-old", "2026-01-01T00:00:00Z"), ("txn-new", "2026-02-01T00:00:00Z")]:
        r = await client.post("/api/transactions", json={
            "scriptUrl": KANTIN_SCRIPT,
            "transaction": {"id": txn_id, "createdAt": created},
        })
        assert r.json()["success"] is True

    r = await client.get("/api/transactions", params={"scriptUrl": KANTIN_SCRIPT})
    assert [row["id"] for row in r.json()["data"]] == ["txn-new", "txn-old"]


@pytest.mark.asyncio
async def test_transaction_api_remote_failure(client, script):
    script.fail(KANTIN_SCRIPT, "Pesanan", text='{"success": false, "error": "Sheet Pesanan not found"}')
    r = await client.get("/api/transactions", params={"scriptUrl": KANTIN_SCRIPT})
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Sheet Pesanan not found"}


# ─── Test 4: Super admin & vendor dashboard ────────────────────────────────────
@pytest.mark.asyncio
async def test_admin_vendor_crud(client, script):
    headers = bearer(admin_token())
    form = {
        "name": "Kantin Dua",
        "email": "dua@unpas.ac.id",
        "password": "rahasia",
        "spreadsheetApiUrl": "https://script.test/kantin-2/exec",
        "operatingHours": [{"day": "Senin", "open": "08:00", "close": "15:00"}],
    }

    r = await client.post("/admin/kantins", json=form, headers=headers)
    assert r.status_code == 201, r.text
    kantin = r.json()["kantin"]
    assert kantin["id"].startswith("kantin-")
    assert kantin["ownerId"].startswith("owner-")
    remote = script.rows(ADMIN_SCRIPT, "AkunKantin")
    assert json.loads(remote[0]["operatingHours"])[0]["day"] == "Senin"

    r = await client.put(f"/admin/kantins/{kantin['id']}", json={**form, "name": "Kantin Dua Baru"}, headers=headers)
    assert r.json()["kantin"]["name"] == "Kantin Dua Baru"
    assert r.json()["kantin"]["ownerId"] == kantin["ownerId"]

    r = await client.get("/admin/kantins", headers=headers)
    assert [item["name"] for item in r.json()["items"]] == ["Kantin Dua Baru"]

    r = await client.delete(f"/admin/kantins/{kantin['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["kantin"] is None
    await drain_background_tasks()
    assert script.rows(ADMIN_SCRIPT, "AkunKantin") == []

    r = await client.delete(f"/admin/kantins/{kantin['id']}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_vendors_created_in_the_same_millisecond_get_distinct_ids(client, monkeypatch):
    monkeypatch.setattr("app.core.ids.epoch_millis", lambda: 1_800_000_000_000)
    headers = bearer(admin_token())
    created = []
    for name, email in [("Kantin Dua", "dua@unpas.ac.id"), ("Kantin Tiga", "tiga@unpas.ac.id")]:
        r = await client.post("/admin/kantins", json={
            "name": name,
            "email": email,
            "password": "rahasia",
            "spreadsheetApiUrl": "https://script.test/kantin-2/exec",
        }, headers=headers)
        assert r.status_code == 201, r.text
        created.append(r.json()["kantin"])

    assert created[0]["id"] != created[1]["id"]
    assert created[0]["ownerId"] != created[1]["ownerId"]
    r = await client.get("/admin/kantins", headers=headers)
    assert sorted(item["name"] for item in r.json()["items"]) == ["Kantin Dua", "Kantin Tiga"]


@pytest.mark.asyncio
async def test_admin_form_validation(client):
    r = await client.post("/admin/kantins", json={"name": "", "email": "nope", "password": ""},
                          headers=bearer(admin_token()))
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_dashboard_open_closed_is_idempotent(client, seeded):
    headers = bearer(kantin_token())
    for _ in range(2):
        r = await client.post("/dashboard/status", json={"isOpen": False}, headers=headers)
        assert r.status_code == 200
        assert r.json()["kantin"]["isOpen"] is False
        assert r.json()["synced"] is True

    remote = seeded.rows(ADMIN_SCRIPT, "AkunKantin")
    assert len(remote) == 1 and remote[0]["isOpen"] is False


@pytest.mark.asyncio
async def test_dashboard_profile_update(client, seeded):
    r = await client.put("/dashboard/profile", json={"whatsapp": "0899"}, headers=bearer(kantin_token()))
    assert r.json()["kantin"]["whatsapp"] == "0899"
    assert seeded.rows(ADMIN_SCRIPT, "AkunKantin")[0]["whatsapp"] == "0899"

    r = await client.put("/dashboard/profile", json={}, headers=bearer(kantin_token()))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_order_status_transitions(client, seeded):
    seeded.rows(KANTIN_SCRIPT, "Pesanan").append(order_row())
    headers = bearer(kantin_token())

    r = await client.get("/dashboard/transactions", headers=headers)
    assert [item["id"] for item in r.json()["items"]] == ["txn-1"]

    r = await client.post("/dashboard/transactions/txn-1/status", json={"status": "ready"}, headers=headers)
    assert r.status_code == 200
    assert seeded.rows(KANTIN_SCRIPT, "Pesanan")[0]["status"] == "ready"

    r = await client.post("/dashboard/transactions/txn-1/status", json={"status": "processing"}, headers=headers)
    assert r.status_code == 409

    r = await client.post("/dashboard/transactions/txn-1/status", json={"status": "ready"}, headers=headers)
    assert r.status_code == 200

    r = await client.post("/dashboard/transactions/txn-1/status", json={"status": "completed"}, headers=headers)
    r = await client.post("/dashboard/transactions/txn-1/status", json={"status": "cancelled"}, headers=headers)
    assert r.status_code == 409

    r = await client.post("/dashboard/transactions/txn-404/status", json={"status": "ready"}, headers=headers)
    assert r.status_code == 404
