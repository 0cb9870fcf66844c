import io
import os

from parts_engine.tests.conftest import ORG


def test_organization_is_required(app):
    client = app.test_client()

    resp = client.get("/parts")

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Organization ID required"


def test_create_then_merge_through_post(client):
    first = client.post("/parts", json={"name": "Filter A", "sku": "SKU-1", "stockLevel": 5})
    second = client.post("/parts", json={"sku": "SKU-1", "stockLevel": 3, "organizationId": "org-x"})

    assert first.status_code == 201
    assert second.status_code == 201
    body = second.get_json()
    assert body["id"] == first.get_json()["id"]
    assert body["stock_level"] == 8
    assert body["organization_id"] == ORG

    listed = client.get("/parts").get_json()
    assert len(listed) == 1


def test_invalid_body_is_input_error(client):
    resp = client.post("/parts", json={"name": "Bolt", "stockLevel": -3})

    assert resp.status_code == 400
    assert resp.get_json()["error_type"] == "INPUT_ERROR"


def test_batch_reports_partial_success(client):
    resp = client.post(
        "/parts/batch",
        json={"parts": [{"name": "Bolt", "sku": "B-1"}, {"stockLevel": 1}, {"sku": "B-1", "stockLevel": 2}]},
    )

    assert resp.status_code == 200
    body = resp.get_json()
    assert (body["total"], body["created"], body["merged"], body["failed"]) == (3, 1, 1, 1)
    assert body["details"][1]["matched_by"] == "sku"


def test_batch_requires_a_list(client):
    resp = client.post("/parts/batch", json={"name": "Bolt"})

    assert resp.status_code == 400


def test_cleanup_duplicates(client):
    client.post("/parts/batch", json=[{"name": "Bolt"}, {"name": "Nut"}])

    resp = client.post("/parts/cleanup-duplicates")

    assert resp.status_code == 200
    assert resp.get_json() == {
        "groups_processed": 0,
        "parts_merged": 0,
        "parts_deleted": 0,
        "errors": 0,
        "failed_groups": [],
    }


def test_get_update_stock_and_delete(client):
    part_id = client.post("/parts", json={"name": "Valve", "stockLevel": 2}).get_json()["id"]

    assert client.get(f"/parts/{part_id}").get_json()["name"] == "Valve"

    updated = client.put(f"/parts/{part_id}", json={"location": "Bin 4"})
    assert updated.get_json()["location"] == "Bin 4"

    stock = client.patch(f"/parts/{part_id}/stock", json={"quantity": -5})
    assert stock.status_code == 409
    assert stock.get_json()["error_type"] == "BUSINESS_RULE_ERROR"

    stock = client.patch(f"/parts/{part_id}/stock", json={"quantity": 3})
    assert stock.get_json()["stock_level"] == 5

    assert client.delete(f"/parts/{part_id}").status_code == 204
    assert client.get(f"/parts/{part_id}").status_code == 404


def test_low_stock_listing(client):
    client.post("/parts", json={"name": "Low", "stockLevel": 1, "reorderPoint": 3})
    client.post("/parts", json={"name": "Fine", "stockLevel": 9, "reorderPoint": 3})

    body = client.get("/parts/low-stock").get_json()

    assert [p["name"] for p in body] == ["Low"]
    assert body[0]["is_low_stock"] is True


def test_file_import(app, client):
    data = {"file": (io.BytesIO(b"Name,Part Numbers,Quantity in Stock\nBolt,B-1,2\nBolt,B-1,3\n"), "parts.csv")}

    resp = client.post("/parts/import", data=data, content_type="multipart/form-data")

    assert resp.status_code == 200
    assert resp.get_json()["merged"] == 1
    assert client.get("/parts").get_json()[0]["stock_level"] == 5
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []


def test_file_import_rejects_unknown_extension(client):
    data = {"file": (io.BytesIO(b"hello"), "parts.pdf")}

    resp = client.post("/parts/import", data=data, content_type="multipart/form-data")

    assert resp.status_code == 400
