from datetime import timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from hardware_store.config import Settings
from hardware_store.core.errors import InfrastructureError
from hardware_store.core.passwords import hash_password
from hardware_store.core.security import TokenService
from hardware_store.database import Database
from hardware_store.models import Category, Order, OrderLine, Product, SubCategory, Supplier, User
from hardware_store.models.user import Role
from hardware_store.services.storage_service import UploadedImage, variant_public_id
from main import create_app

TEST_SECRET = "test-secret-key"
CDN = "https://cdn.example.test"


class FakeImageStorage:
    """In-memory image store recording every call."""

    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_info = False
        self.variant_calls = []
        self._counter = 0

    def upload(self, content: bytes, options: dict) -> UploadedImage:
        self._counter += 1
        public_id = f"{options['folder']}/{options['prefix']}_{self._counter}.jpg"
        self.objects[public_id] = content
        return UploadedImage(
            url=f"{CDN}/{public_id}", public_id=public_id, width=10, height=10, format="jpg", bytes=len(content)
        )

    def delete(self, public_id: str) -> bool:
        self.deleted.append(public_id)
        return self.objects.pop(public_id, None) is not None

    def info(self, public_id: str) -> dict:
        if self.fail_info:
            raise InfrastructureError("storage unavailable")
        return {"public_id": public_id, "format": "jpg", "width": 10, "height": 10, "bytes": 3}

    def public_id_from_url(self, image_url: Optional[str]) -> Optional[str]:
        if not image_url or not image_url.startswith(f"{CDN}/"):
            return None
        return image_url[len(CDN) + 1:]

    def variant(self, public_id: str, options: dict) -> UploadedImage:
        self.variant_calls.append((public_id, options))
        name = variant_public_id(public_id, options)
        self.objects[name] = b"resized"
        return UploadedImage(
            url=f"{CDN}/{name}",
            public_id=name,
            width=options.get("width") or 10,
            height=options.get("height") or 10,
            format=options["format"],
            bytes=7,
        )


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        jwt_expires_in=timedelta(hours=1),
        environment="test",
    )


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture
def tokens():
    return TokenService(TEST_SECRET, timedelta(hours=1))


@pytest.fixture
def image_storage():
    return FakeImageStorage()


@pytest.fixture
def client(settings, database, image_storage):
    app = create_app(settings=settings, database=database, image_storage=image_storage)
    with TestClient(app) as test_client:
        yield test_client


def make_user(database: Database, username: str, password: str, role: Role, active: bool = True) -> int:
    with database.unit_of_work() as db:
        user = User(username=username, password_hash=hash_password(password), role=role.value, active=active)
        db.add(user)
        db.flush()
        return user.id


@pytest.fixture
def manager(database):
    return make_user(database, "manager", "manager123", Role.MANAGER)


@pytest.fixture
def purchase_officer(database):
    return make_user(database, "achat", "achat2024", Role.PURCHASE_OFFICER)


def login(client: TestClient, username: str, password: str) -> dict:
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['data']['access_token']}"}


@pytest.fixture
def manager_headers(client, manager):
    return login(client, "manager", "manager123")


@pytest.fixture
def officer_headers(client, purchase_officer):
    return login(client, "achat", "achat2024")


@pytest.fixture
def catalog(database):
    """
    Two categories; "Outillage" holds sub-categories "Marteaux" (P001, P002)
    and "Tournevis" (P003); "Quincaillerie" holds "Vis" (P004).
    """
    with database.unit_of_work() as db:
        tools = Category(name="Outillage", description="Hand tools")
        hardware = Category(name="Quincaillerie")
        db.add_all([tools, hardware])
        db.flush()

        hammers = SubCategory(name="Marteaux", category_id=tools.id)
        screwdrivers = SubCategory(name="Tournevis", category_id=tools.id)
        screws = SubCategory(name="Vis", category_id=hardware.id)
        db.add_all([hammers, screwdrivers, screws])
        db.flush()

        db.add_all([
            Product(code="P001", designation="Claw hammer", stock_quantity=10, unit_price=4500, sub_category_id=hammers.id),
            Product(code="P002", designation="Mallet", stock_quantity=3, unit_price=3000, sub_category_id=hammers.id),
            Product(code="P003", designation="Flat screwdriver", stock_quantity=7, unit_price=1200, sub_category_id=screwdrivers.id),
            Product(code="P004", designation="Wood screw 6x40", stock_quantity=500, unit_price=25, sub_category_id=screws.id),
        ])
        ids = {
            "tools": tools.id,
            "hardware": hardware.id,
            "hammers": hammers.id,
            "screwdrivers": screwdrivers.id,
            "screws": screws.id,
        }
    return ids


def place_order(database: Database, product_code: str, status: str, quantity: int = 2) -> int:
    with database.unit_of_work() as db:
        supplier = db.query(Supplier).filter(Supplier.name == "Sodimat").first()
        if not supplier:
            supplier = Supplier(name="Sodimat", phone_number="+221 33 000 00 00")
            db.add(supplier)
            db.flush()
        order = Order(supplier_id=supplier.id, status=status)
        db.add(order)
        db.flush()
        db.add(OrderLine(order_id=order.id, product_code=product_code, quantity=quantity, unit_price=4000))
        return order.id


def set_order_status(database: Database, order_id: int, status: str) -> None:
    with database.unit_of_work() as db:
        db.query(Order).filter(Order.id == order_id).one().status = status
