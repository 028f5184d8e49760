import json

import pytest

from stockcommon.storage import StoreError
from stockroom import app as flask_app
from stockroom.services.store import DataStore


def create_shirt(client):
    response = client.post(
        "/api/product",
        json={"productName": "Shirt", "principalCode": "1234", "typeCode": "5678"},
    )
    assert response.status_code == 201
    return response.get_json()["barcode"]


def post_transaction(client, **body):
    return client.post("/api/transaction", json=body)


def test_health():
    client = flask_app.app.test_client()
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_load_data_starts_empty(configure_test_env):
    client = flask_app.app.test_client()
    response = client.get("/api/data")
    assert response.status_code == 200
    assert response.get_json() == {"inventory": {}, "transactions": [], "products": {}}

    assert client.get("/api/categories").get_json() == {"cat_0": "Default"}
    saved = json.loads((configure_test_env / "categories.json").read_text(encoding="utf-8"))
    assert saved == {"cat_0": "Default"}


def test_transaction_flow_over_http():
    client = flask_app.app.test_client()
    barcode = create_shirt(client)
    assert barcode == "123456780001"

    added = post_transaction(client, lookupValue=barcode, amount=20, mode="add", size="M")
    assert added.status_code == 200
    assert added.get_json()["updatedItem"]["newStockLevel"] == 20

    cut = post_transaction(client, lookupValue=barcode, amount=5, mode="cut", size="M", totalSalesPrice=100)
    record = cut.get_json()["newTransaction"]
    assert record["newStock"] == 15
    assert record["totalSales"] == 100

    refused = post_transaction(client, lookupValue=barcode, amount=50, mode="cut", size="M")
    assert refused.status_code == 400
    assert refused.get_json() == {
        "message": "error_not_enough_stock",
        "errorType": "INSUFFICIENT_STOCK",
        "context": {"item": "Shirt (M)", "stock": 15},
    }

    reverted = client.delete(f"/api/transaction/{record['timestamp']}")
    assert reverted.status_code == 200
    assert reverted.get_json()["message"] == "Transaction deleted and stock reverted."

    data = client.get("/api/data").get_json()
    assert data["inventory"][barcode]["M"]["stock"] == 20
    assert [entry["type"] for entry in data["transactions"]] == ["Added"]


def test_invalid_transaction_body():
    client = flask_app.app.test_client()
    barcode = create_shirt(client)

    response = post_transaction(client, lookupValue=barcode, amount=0, mode="add", size="M")
    assert response.status_code == 400
    payload = response.get_json()
    assert payload["message"] == "error_invalid_data"
    assert payload["errorType"] == "INVALID_INPUT"

    response = client.post("/api/transaction", data="not json", content_type="text/plain")
    assert response.status_code == 400
    assert set(response.get_json()["context"]["fields"]) >= {"amount", "mode"}

    response = client.post("/api/transaction", json=["list", "body"])
    assert response.status_code == 400
    assert response.get_json()["context"] == {"fields": ["body"]}


def test_unknown_item_and_size():
    client = flask_app.app.test_client()
    barcode = create_shirt(client)

    response = post_transaction(client, lookupValue="000000000000", amount=1, mode="add", size="M")
    assert response.status_code == 404
    assert response.get_json()["context"] == {"itemCode": "000000000000"}

    response = post_transaction(client, lookupValue=barcode, amount=1, mode="cut", size="XXL")
    assert response.status_code == 404
    assert response.get_json()["message"] == "error_size_not_found"


def test_product_routes():
    client = flask_app.app.test_client()
    barcode = create_shirt(client)

    assert client.get(f"/api/product/{barcode}").get_json()["name"] == "Shirt"
    assert barcode in client.get("/api/products").get_json()

    updated = client.put(f"/api/product/{barcode}", json={"productName": "Tee", "sizeCosts": {"M": 3}})
    assert updated.status_code == 200
    assert updated.get_json()["updatedProduct"]["name"] == "Tee"

    empty_name = client.put(f"/api/product/{barcode}", json={"productName": ""})
    assert empty_name.status_code == 400
    assert empty_name.get_json()["message"] == "error_name_empty"

    assert client.delete(f"/api/product/{barcode}").status_code == 200
    missing = client.get(f"/api/product/{barcode}")
    assert missing.status_code == 404
    assert missing.get_json()["message"] == "error_product_not_found"


def test_barcode_collision_is_server_error():
    client = flask_app.app.test_client()
    first = create_shirt(client)
    client.post("/api/product", json={"productName": "Hat", "principalCode": "1234", "typeCode": "5678"})
    client.delete(f"/api/product/{first}")

    response = client.post("/api/product", json={"productName": "Cap", "principalCode": "1234", "typeCode": "5678"})
    assert response.status_code == 500
    assert response.get_json()["message"] == "error_barcode_collision"


def test_category_routes():
    client = flask_app.app.test_client()
    created = client.post("/api/category", json={"categoryName": "Shirts"})
    assert created.status_code == 201
    category_id = created.get_json()["id"]

    renamed = client.put(f"/api/category/{category_id}", json={"newName": "Tops"})
    assert renamed.get_json()["name"] == "Tops"
    assert client.get("/api/categories").get_json()[category_id] == "Tops"

    protected = client.delete("/api/category/cat_0")
    assert protected.status_code == 403
    assert protected.get_json()["message"] == "error_category_delete_default"

    deleted = client.delete(f"/api/category/{category_id}")
    assert deleted.status_code == 200
    assert category_id not in client.get("/api/categories").get_json()


def test_transaction_queries_and_log_clear():
    client = flask_app.app.test_client()
    barcode = create_shirt(client)
    post_transaction(client, lookupValue=barcode, amount=5, mode="add", size="M")
    post_transaction(client, lookupValue=barcode, amount=2, mode="cut", size="M")
    post_transaction(client, lookupValue=barcode, amount=9, mode="adjust", size="L")

    cuts = client.get("/api/transactions?type=cut").get_json()
    assert [entry["type"] for entry in cuts] == ["Cut"]

    named = client.get("/api/transactions?name=(l)").get_json()
    assert [entry["itemName"] for entry in named] == ["Shirt (L)"]

    newest = client.get("/api/transactions?limit=2").get_json()
    assert [entry["type"] for entry in newest] == ["Adjusted", "Cut"]

    bad_date = client.get("/api/transactions?date=yesterday")
    assert bad_date.status_code == 400

    history = client.get(f"/api/item/{barcode}/history").get_json()
    assert len(history) == 3

    cleared = client.delete("/api/log")
    assert cleared.get_json() == {"success": True, "message": "Transaction log cleared", "removed": 3}
    assert client.get("/api/transactions").get_json() == []
    # Clearing the log leaves stock untouched.
    assert client.get("/api/data").get_json()["inventory"][barcode]["M"]["stock"] == 3


def test_reports():
    client = flask_app.app.test_client()
    barcode = create_shirt(client)
    post_transaction(client, lookupValue=barcode, amount=4, mode="add", size="M")

    active = client.get("/api/reports/most-active?limit=1").get_json()
    assert active == [{"rank": 1, "barcode": barcode, "name": "Shirt", "count": 1}]

    value = client.get("/api/reports/inventory-value").get_json()
    assert value["totalUnits"] == 4

    unknown = client.get("/api/reports/best-sellers")
    assert unknown.status_code == 400
    assert unknown.get_json()["message"] == "error_unknown_report"


def test_corrupt_log_reads_as_empty(configure_test_env):
    client = flask_app.app.test_client()
    create_shirt(client)
    (configure_test_env / "transactions.json").write_text('{"bad": true}', encoding="utf-8")

    response = client.get("/api/data")
    assert response.status_code == 200
    assert response.get_json()["transactions"] == []


def test_storage_failure_is_reported(monkeypatch):
    client = flask_app.app.test_client()
    barcode = create_shirt(client)

    def broken_commit(self, changes, previous=None):
        raise StoreError("disk full")

    monkeypatch.setattr(DataStore, "commit", broken_commit)
    response = post_transaction(client, lookupValue=barcode, amount=1, mode="add", size="M")

    assert response.status_code == 500
    assert response.get_json() == {
        "message": "error_storage",
        "errorType": "STORAGE_FAILURE",
        "context": {"operation": "process_transaction"},
    }


@pytest.mark.parametrize("method, path", [("get", "/api/nothing"), ("post", "/api/health")])
def test_unknown_routes_answer_json(method, path):
    client = flask_app.app.test_client()
    response = getattr(client, method)(path)
    assert response.status_code in (404, 405)
    assert "message" in response.get_json()


def test_unusable_data_dir_is_storage_failure(tmp_path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    monkeypatch.setattr(flask_app, "DATA_DIR", blocker / "app-data")

    client = flask_app.app.test_client()
    response = client.get("/api/data")

    assert response.status_code == 500
    assert response.get_json() == {
        "message": "error_storage",
        "errorType": "STORAGE_FAILURE",
        "context": {"operation": "open_store"},
    }
