from conftest import place_order
from hardware_store.models import OrderStatus


def test_reads_require_authentication(client, catalog):
    assert client.get("/api/categories").status_code == 401
    assert client.get("/api/products").status_code == 401


def test_any_role_can_read(client, catalog, officer_headers):
    response = client.get("/api/categories", headers=officer_headers)
    assert response.status_code == 200
    assert [c["name"] for c in response.json()["data"]] == ["Outillage", "Quincaillerie"]


def test_officer_cannot_write(client, catalog, officer_headers):
    response = client.post("/api/categories", json={"name": "Peinture"}, headers=officer_headers)
    assert response.status_code == 403
    response = client.delete("/api/products/P001", headers=officer_headers)
    assert response.status_code == 403


def test_manager_creates_category(client, manager_headers):
    response = client.post(
        "/api/categories", json={"name": " Peinture ", "description": "Paints"}, headers=manager_headers
    )
    assert response.status_code == 201
    assert response.json()["data"]["name"] == "Peinture"
    assert response.json()["message"] == "Category created successfully"


def test_duplicate_category(client, catalog, manager_headers):
    response = client.post("/api/categories", json={"name": "Outillage"}, headers=manager_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "DuplicateEntryError"


def test_archive_category_cascades(client, catalog, manager_headers):
    response = client.delete(f"/api/categories/{catalog['tools']}", headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["data"]["products_archived"] == 3

    products = client.get("/api/products", headers=manager_headers).json()["data"]
    assert [p["code"] for p in products] == ["P004"]
    assert client.get(f"/api/sub-categories/{catalog['hammers']}", headers=manager_headers).status_code == 404
    assert client.delete(f"/api/categories/{catalog['tools']}", headers=manager_headers).status_code == 404


def test_sub_category_routes(client, catalog, manager_headers):
    response = client.post(
        "/api/sub-categories", json={"name": "Pinces", "category_id": catalog["tools"]}, headers=manager_headers
    )
    assert response.status_code == 201
    sub_category_id = response.json()["data"]["id"]

    listed = client.get(f"/api/sub-categories?category_id={catalog['tools']}", headers=manager_headers)
    assert [s["name"] for s in listed.json()["data"]] == ["Marteaux", "Pinces", "Tournevis"]

    response = client.put(
        f"/api/sub-categories/{sub_category_id}", json={"description": "Pliers"}, headers=manager_headers
    )
    assert response.json()["data"]["description"] == "Pliers"

    response = client.delete(f"/api/sub-categories/{catalog['hammers']}", headers=manager_headers)
    assert response.json()["data"] == {"id": catalog["hammers"], "products_archived": 2}


def test_sub_category_with_archived_parent(client, catalog, manager_headers):
    client.delete(f"/api/categories/{catalog['hardware']}", headers=manager_headers)
    response = client.post(
        "/api/sub-categories", json={"name": "Boulons", "category_id": catalog["hardware"]}, headers=manager_headers
    )
    assert response.status_code == 400


def test_product_lifecycle(client, catalog, manager_headers):
    response = client.post(
        "/api/products",
        json={"code": "mrt-020", "designation": "Rubber mallet", "unit_price": 2500, "sub_category_id": catalog["hammers"]},
        headers=manager_headers,
    )
    assert response.status_code == 201
    assert response.json()["data"]["code"] == "MRT-020"
    assert response.json()["data"]["stock_quantity"] == 0

    response = client.patch("/api/products/mrt-020/stock", json={"stock_quantity": 12}, headers=manager_headers)
    assert response.json()["data"]["stock_quantity"] == 12

    response = client.put("/api/products/MRT-020", json={"unit_price": 2750}, headers=manager_headers)
    assert response.json()["data"]["unit_price"] == 2750

    detail = client.get("/api/products/MRT-020", headers=manager_headers).json()["data"]
    assert detail["sub_category"]["category"]["name"] == "Outillage"
    assert detail["recent_orders"] == []

    assert client.delete("/api/products/MRT-020", headers=manager_headers).status_code == 200
    assert client.get("/api/products/MRT-020", headers=manager_headers).status_code == 404


def test_product_validation(client, catalog, manager_headers):
    response = client.post(
        "/api/products",
        json={"code": "X1", "designation": "Thing", "unit_price": 0, "sub_category_id": catalog["hammers"]},
        headers=manager_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"

    response = client.patch("/api/products/P001/stock", json={"stock_quantity": -3}, headers=manager_headers)
    assert response.status_code == 400


def test_product_search(client, catalog, officer_headers):
    response = client.get("/api/products?search=SCREW", headers=officer_headers)
    assert [p["code"] for p in response.json()["data"]] == ["P003", "P004"]


def test_archive_product_with_open_order(client, database, catalog, manager_headers):
    place_order(database, "P001", OrderStatus.ENCOURS.value)
    response = client.delete("/api/products/P001", headers=manager_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "ConflictError"

    detail = client.get("/api/products/P001", headers=manager_headers).json()["data"]
    assert detail["active"] is True
    assert detail["recent_orders"][0]["status"] == "ENCOURS"


def test_out_of_range_ids_are_rejected(client, catalog, manager_headers):
    huge = "99999999999999999999"
    for method, url in [
        ("GET", f"/api/categories/{huge}"),
        ("DELETE", f"/api/categories/{huge}"),
        ("GET", f"/api/sub-categories/{huge}"),
        ("DELETE", f"/api/sub-categories/{huge}"),
        ("GET", f"/api/products?category_id={huge}"),
        ("GET", f"/api/sub-categories?category_id={huge}"),
        ("PUT", f"/api/auth/users/{huge}/deactivate"),
    ]:
        response = client.request(method, url, headers=manager_headers)
        assert response.status_code == 400, url
        assert response.json()["error"] == "ValidationError"


def test_out_of_range_parent_in_body(client, catalog, manager_headers):
    response = client.post(
        "/api/sub-categories", json={"name": "Boulons", "category_id": 2**31}, headers=manager_headers
    )
    assert response.status_code == 400


def test_null_stock_is_rejected(client, catalog, manager_headers):
    response = client.put("/api/products/P001", json={"stock_quantity": None}, headers=manager_headers)
    assert response.status_code == 400
    detail = client.get("/api/products/P001", headers=manager_headers).json()["data"]
    assert detail["stock_quantity"] == 10
