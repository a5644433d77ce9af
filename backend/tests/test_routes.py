"""HTTP surface: status codes and payload shapes."""

from datetime import datetime

import pytest

from pos_backend.models import Product, Sale


def _cart(product, quantity=2, **extra):
    line = {"product_id": product.id, "quantity": quantity}
    line.update(extra)
    return {"items": [line]}


def test_health(client, db_session):
    resp = client.get("/health")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["database"]["status"] == "healthy"


def test_payment_types_listed(client, cash, card):
    resp = client.get("/api/payment-types/")

    assert resp.status_code == 200
    assert [pt["name"] for pt in resp.get_json()["payment_types"]] == ["Card", "Cash"]


def test_create_sale(client, db_session, vat_product, cash):
    resp = client.post("/api/sales/", json={**_cart(vat_product), "payment_type_id": cash.id})

    assert resp.status_code == 201
    sale = resp.get_json()["sale"]
    assert sale["total_amount"] == "200.00"
    assert sale["tax_amount"] == "30.00"
    assert sale["subtotal"] == "170.00"
    assert sale["payment_type_name"] == "Cash"
    assert sale["items"][0]["product_name"] == "Kettle"
    assert db_session.get(Product, vat_product.id).stock_quantity == 8


@pytest.mark.parametrize("payload", [
    {},
    {"items": []},
    {"items": [{"product_id": 1}]},
    {"items": [{"product_id": 1, "quantity": "two"}]},
])
def test_create_sale_invalid_payload(client, db_session, payload):
    resp = client.post("/api/sales/", json=payload)

    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_request"
    assert db_session.query(Sale).count() == 0


def test_create_sale_underpaid(client, db_session, vat_product):
    resp = client.post("/api/sales/", json={**_cart(vat_product), "amount_tendered": "10.00"})

    assert resp.status_code == 400
    assert resp.get_json()["details"]["total_amount"] == "200.00"


def test_get_sale_and_missing(client, db_session, vat_product):
    sale_id = client.post("/api/sales/", json=_cart(vat_product)).get_json()["sale"]["id"]

    resp = client.get(f"/api/sales/{sale_id}")
    assert resp.status_code == 200
    assert resp.get_json()["sale"]["id"] == sale_id
    assert resp.get_json()["return_ids"] == []

    missing = client.get("/api/sales/99999")
    assert missing.status_code == 404
    assert missing.get_json()["kind"] == "not_found"


def test_void_twice_conflicts(client, db_session, vat_product):
    sale_id = client.post("/api/sales/", json=_cart(vat_product)).get_json()["sale"]["id"]

    first = client.post(f"/api/sales/{sale_id}/void")
    assert first.status_code == 200
    assert first.get_json()["sale"]["is_voided"] is True

    second = client.post(f"/api/sales/{sale_id}/void")
    assert second.status_code == 409
    assert second.get_json()["kind"] == "conflict"

    restored = client.post(f"/api/sales/{sale_id}/unvoid")
    assert restored.status_code == 200
    assert restored.get_json()["sale"]["is_voided"] is False


def test_void_missing_sale(client, db_session):
    assert client.post("/api/sales/424242/void").status_code == 404
    assert client.post("/api/sales/424242/unvoid").status_code == 404


def test_list_sales(client, db_session, vat_product):
    for _ in range(3):
        client.post("/api/sales/", json=_cart(vat_product, 1))

    resp = client.get("/api/sales/?limit=2")

    assert resp.status_code == 200
    assert len(resp.get_json()["sales"]) == 2
    assert client.get("/api/sales/?start=garbage").status_code == 400


def test_create_linked_return(client, db_session, vat_product):
    sale_id = client.post("/api/sales/", json=_cart(vat_product)).get_json()["sale"]["id"]

    resp = client.post("/api/returns/", json={**_cart(vat_product, 1), "original_sale_id": sale_id})

    assert resp.status_code == 201
    ret = resp.get_json()["sale"]
    assert ret["is_return"] is True
    assert ret["total_amount"] == "-100.00"
    assert ret["items"][0]["quantity"] == -1
    assert client.get(f"/api/sales/{sale_id}").get_json()["return_ids"] == [ret["id"]]

    too_many = client.post("/api/returns/", json={**_cart(vat_product, 5), "original_sale_id": sale_id})
    assert too_many.status_code == 409


def test_return_against_missing_sale(client, db_session, vat_product):
    resp = client.post("/api/returns/", json={**_cart(vat_product, 1), "original_sale_id": 31337})

    assert resp.status_code == 404


def test_tax_reconciliation_endpoint(client, db_session, vat_product):
    client.post("/api/sales/", json=_cart(vat_product, 2, tax_exempt=True))

    resp = client.get("/api/reports/tax-reconciliation")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["summary"]["total_expected_tax"] == "30.00"
    assert body["summary"]["total_excluded_tax"] == "30.00"
    assert body["details"][0]["is_tax_excluded"] is True


def test_daily_tax_reconciliation_endpoint(client, db_session, vat_product):
    client.post("/api/sales/", json=_cart(vat_product, 2))
    sale = db_session.query(Sale).one()
    sale.created_at = datetime(2024, 6, 1, 12, 0)
    db_session.commit()

    resp = client.get("/api/reports/tax-reconciliation/daily?start=2024-06-01&end=2024-06-01")

    assert resp.status_code == 200
    (row,) = resp.get_json()["rows"]
    assert row["date"] == "2024-06-01"
    assert row["recorded_tax"] == "30.00"


@pytest.mark.parametrize("path", [
    "/api/reports/sales-summary",
    "/api/reports/sales-by-payment",
    "/api/reports/top-products",
    "/api/reports/daily-sales",
    "/api/reports/product-sales",
    "/api/reports/tax-reconciliation",
    "/api/reports/tax-reconciliation/daily",
])
def test_report_endpoints(client, db_session, path):
    assert client.get(path).status_code == 200
    assert client.get(f"{path}?start=2024-02-01&end=2024-01-01").status_code == 400


@pytest.mark.parametrize("extra", [
    {"note": 42},
    {"amount_tendered": "500.001"},
])
def test_create_sale_rejects_bad_fields(client, db_session, vat_product, extra):
    resp = client.post("/api/sales/", json={**_cart(vat_product), **extra})

    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_request"


def test_sale_payload_has_no_lock_counter(client, db_session, vat_product):
    sale = client.post("/api/sales/", json=_cart(vat_product)).get_json()["sale"]

    assert "version_id" not in sale
