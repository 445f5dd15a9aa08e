import inspect
import io
import logging

import pytest
from PIL import Image

from conftest import CDN
from hardware_store.core.errors import InfrastructureError, NotFoundError
from hardware_store.services.image_service import ImageService
from hardware_store.services.storage_service import (
    MAX_DIMENSION,
    build_image_storage,
    optimize_image,
    variant_max_size,
    variant_public_id,
)


def _png(size=(40, 30), mode="RGBA") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, (200, 10, 10, 128) if mode == "RGBA" else (200, 10, 10)).save(buffer, format="PNG")
    return buffer.getvalue()


def _upload(client, code, headers, content=b"fake-bytes", content_type="image/png"):
    return client.post(
        f"/api/images/products/{code}",
        files={"image": ("photo.png", content, content_type)},
        headers=headers,
    )


def test_optimize_image_resizes_and_flattens():
    content, width, height = optimize_image(_png((1600, 1200)), (800, 600))
    assert (width, height) == (800, 600)
    assert Image.open(io.BytesIO(content)).format == "JPEG"


def test_upload_sets_product_image(client, catalog, manager_headers, image_storage):
    response = _upload(client, "p001", manager_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["product"]["image_url"].startswith(f"{CDN}/products/product_P001")
    assert data["image"]["public_id"] in image_storage.objects


def test_replacing_image_removes_previous_one(client, catalog, manager_headers, image_storage):
    first = _upload(client, "P001", manager_headers).json()["data"]["image"]["public_id"]
    second = _upload(client, "P001", manager_headers).json()["data"]["image"]["public_id"]
    assert first in image_storage.deleted
    assert list(image_storage.objects) == [second]


def test_upload_requires_manager(client, catalog, officer_headers):
    assert _upload(client, "P001", officer_headers).status_code == 403


def test_upload_rejects_content_type(client, catalog, manager_headers, image_storage):
    response = _upload(client, "P001", manager_headers, content_type="application/pdf")
    assert response.status_code == 400
    assert image_storage.objects == {}


def test_upload_unknown_product_uploads_nothing(client, catalog, manager_headers, image_storage):
    response = _upload(client, "NOPE", manager_headers)
    assert response.status_code == 404
    assert image_storage.objects == {}


def test_delete_image(client, catalog, manager_headers, image_storage):
    public_id = _upload(client, "P001", manager_headers).json()["data"]["image"]["public_id"]
    response = client.delete("/api/images/products/P001", headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["data"]["image_url"] is None
    assert public_id in image_storage.deleted

    response = client.delete("/api/images/products/P001", headers=manager_headers)
    assert response.status_code == 400


def test_image_info(client, catalog, manager_headers, officer_headers, image_storage):
    assert client.get("/api/images/products/P001/info", headers=officer_headers).status_code == 404

    _upload(client, "P001", manager_headers)
    response = client.get("/api/images/products/P001/info", headers=officer_headers)
    assert response.status_code == 200
    assert response.json()["data"]["image"]["width"] == 10

    image_storage.fail_info = True
    response = client.get("/api/images/products/P001/info", headers=officer_headers)
    assert response.json()["data"]["image"]["note"] == "Detailed information is not available"


def test_uploaded_image_is_removed_when_product_update_fails(database, catalog, image_storage, monkeypatch):
    service = ImageService(database, image_storage)
    real_unit_of_work = database.unit_of_work

    def failing_unit_of_work():
        raise InfrastructureError("A database error occurred")

    monkeypatch.setattr(database, "unit_of_work", failing_unit_of_work)
    with pytest.raises(InfrastructureError):
        service.upload_product_image("P001", b"bytes", "image/png")
    assert image_storage.objects == {}
    assert len(image_storage.deleted) == 1

    monkeypatch.setattr(database, "unit_of_work", real_unit_of_work)
    with pytest.raises(NotFoundError):
        service.get_image_info("P001")


def test_storage_not_configured(database, catalog):
    with pytest.raises(InfrastructureError) as exc_info:
        ImageService(database, None).upload_product_image("P001", b"bytes")
    assert exc_info.value.message == "Image storage is not configured"


def test_upload_route_runs_in_threadpool(client):
    route = next(
        r for r in client.app.routes
        if getattr(r, "path", None) == "/api/images/products/{code}" and "POST" in r.methods
    )
    assert not inspect.iscoroutinefunction(route.endpoint)


def test_optimize_image_keeps_size_without_bounds():
    content, width, height = optimize_image(_png((120, 90)), None, quality=70, image_format="webp")
    assert (width, height) == (120, 90)
    assert Image.open(io.BytesIO(content)).format == "WEBP"


def test_variant_public_id():
    options = {"width": 200, "height": None, "quality": 85, "format": "webp"}
    assert variant_public_id("products/product_P001_1.jpg", options) == "products/product_P001_1_200xauto_q85.webp"
    assert variant_max_size(options) == (200, MAX_DIMENSION)
    assert variant_max_size({"quality": 85}) is None


def test_optimized_image_url(client, catalog, manager_headers, officer_headers, image_storage):
    original = _upload(client, "P001", manager_headers).json()["data"]["image"]

    response = client.get(
        "/api/images/products/p001/optimized?width=200&quality=70&format=webp", headers=officer_headers
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["original_url"] == original["url"]
    assert data["optimized_url"].endswith("_200xauto_q70.webp")
    assert data["transformations"] == {"width": 200, "height": None, "quality": 70, "format": "webp"}
    assert image_storage.variant_calls[0][0] == original["public_id"]


def test_optimized_image_url_validation(client, catalog, manager_headers):
    assert client.get("/api/images/products/P001/optimized", headers=manager_headers).status_code == 404

    _upload(client, "P001", manager_headers)
    response = client.get("/api/images/products/P001/optimized?format=gif", headers=manager_headers)
    assert response.status_code == 400
    response = client.get("/api/images/products/P001/optimized?width=0", headers=manager_headers)
    assert response.status_code == 400


def test_optimized_image_requires_authentication(client, catalog):
    assert client.get("/api/images/products/P001/optimized").status_code == 401


def test_build_image_storage_logs_failures(settings, caplog, tmp_path):
    settings.gcs_credentials_path = str(tmp_path / "missing.json")
    settings.gcs_bucket_name = "bucket"
    settings.cdn_base_url = CDN
    with caplog.at_level(logging.ERROR):
        assert build_image_storage(settings) is None
    assert caplog.records
    assert all(r.name == "hardware_store.services.storage_service" for r in caplog.records)
