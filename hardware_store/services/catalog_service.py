"""
Catalog service: categories, sub-categories and products.

Archival is logical (``active = False``) and cascades downwards:
category -> its sub-categories -> their products. Each cascade runs in a
single unit of work, so it applies completely or not at all. Archived rows
are invisible to every read and lookup here, which is also why archiving
an already archived entity reports NotFoundError instead of cascading again.
"""
import logging
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload, selectinload, with_loader_criteria

from hardware_store.core.errors import ConflictError, DuplicateError, NotFoundError, ValidationError
from hardware_store.database import Database, UniqueViolationError
from hardware_store.models import (
    OPEN_ORDER_STATUSES,
    Category,
    Order,
    OrderLine,
    Product,
    SubCategory,
    Supplier,
)
from hardware_store.schemas.categories import CategoryDetail, CategoryListItem, CategoryResponse
from hardware_store.schemas.products import ProductDetail, ProductResponse, RecentOrderLine
from hardware_store.schemas.sub_categories import SubCategoryDetail, SubCategoryResponse

logger = logging.getLogger(__name__)

CATEGORY_MUTABLE_FIELDS = {"name", "description"}
SUB_CATEGORY_MUTABLE_FIELDS = {"name", "description", "category_id"}
PRODUCT_MUTABLE_FIELDS = {"designation", "stock_quantity", "unit_price", "image_url", "sub_category_id"}

RECENT_ORDERS_LIMIT = 5


def normalize_code(code: Optional[str]) -> str:
    if code is None or not str(code).strip():
        raise ValidationError("Product code is required")
    return str(code).strip().upper()


def _required_text(value: Optional[str], message: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(message)
    return str(value).strip()


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def _validated_price(value) -> float:
    if value is None or isinstance(value, bool):
        raise ValidationError("Unit price must be greater than 0")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Unit price must be a number")
    if price <= 0:
        raise ValidationError("Unit price must be greater than 0")
    return round(price, 2)


def _validated_stock(value) -> int:
    if value is None:
        raise ValidationError("Stock quantity is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Stock quantity must be a whole number")
    if value < 0:
        raise ValidationError("Stock quantity must be zero or greater")
    return value


def _reject_unknown(patch: dict, allowed: set) -> None:
    unknown = sorted(set(patch) - allowed)
    if unknown:
        raise ValidationError(f"Unknown or read-only fields: {', '.join(unknown)}")


class CatalogService:
    def __init__(self, database: Database):
        self.database = database

    # ------------------------------------------------------------------
    # lookups shared by reads and writes
    # ------------------------------------------------------------------

    @staticmethod
    def _active_category(db: Session, category_id: int, lock: bool = False) -> Category:
        query = db.query(Category).filter(Category.id == category_id, Category.active.is_(True))
        if lock:
            query = query.with_for_update()
        category = query.first()
        if not category:
            logger.warning(f"Category with ID {category_id} not found")
            raise NotFoundError(f"Category with ID {category_id} not found")
        return category

    @staticmethod
    def _active_sub_category(db: Session, sub_category_id: int, lock: bool = False) -> SubCategory:
        query = db.query(SubCategory).filter(SubCategory.id == sub_category_id, SubCategory.active.is_(True))
        if lock:
            query = query.with_for_update()
        sub_category = query.first()
        if not sub_category:
            logger.warning(f"Sub-category with ID {sub_category_id} not found")
            raise NotFoundError(f"Sub-category with ID {sub_category_id} not found")
        return sub_category

    @staticmethod
    def _active_product(db: Session, code: str, lock: bool = False) -> Product:
        query = db.query(Product).filter(Product.code == code, Product.active.is_(True))
        if lock:
            query = query.with_for_update()
        product = query.first()
        if not product:
            logger.warning(f"Product with code {code} not found")
            raise NotFoundError(f"Product with code {code} not found")
        return product

    @staticmethod
    def _parent_category(db: Session, category_id) -> Category:
        if not category_id:
            raise ValidationError("Category ID is required")
        category = db.query(Category).filter(Category.id == category_id, Category.active.is_(True)).first()
        if not category:
            raise ValidationError(f"Category with ID {category_id} not found")
        return category

    @staticmethod
    def _parent_sub_category(db: Session, sub_category_id) -> SubCategory:
        if not sub_category_id:
            raise ValidationError("Sub-category ID is required")
        sub_category = db.query(SubCategory).filter(
            SubCategory.id == sub_category_id, SubCategory.active.is_(True)
        ).first()
        if not sub_category:
            raise ValidationError(f"Sub-category with ID {sub_category_id} not found")
        return sub_category

    # ------------------------------------------------------------------
    # categories
    # ------------------------------------------------------------------

    def list_categories(self) -> List[CategoryListItem]:
        with self.database.session() as db:
            categories = (
                db.query(Category)
                .options(
                    selectinload(Category.sub_categories),
                    with_loader_criteria(SubCategory, SubCategory.active.is_(True)),
                )
                .filter(Category.active.is_(True))
                .order_by(Category.name.asc())
                .all()
            )
            logger.info(f"Successfully retrieved {len(categories)} categories")
            return [CategoryListItem.model_validate(c) for c in categories]

    def get_category(self, category_id: int) -> CategoryDetail:
        with self.database.session() as db:
            category = (
                db.query(Category)
                .options(
                    selectinload(Category.sub_categories).selectinload(SubCategory.products),
                    with_loader_criteria(SubCategory, SubCategory.active.is_(True)),
                    with_loader_criteria(Product, Product.active.is_(True)),
                )
                .filter(Category.id == category_id, Category.active.is_(True))
                .first()
            )
            if not category:
                logger.warning(f"Category with ID {category_id} not found")
                raise NotFoundError(f"Category with ID {category_id} not found")
            return CategoryDetail.model_validate(category)

    def create_category(self, name: str, description: Optional[str] = None) -> CategoryResponse:
        name = _required_text(name, "Category name is required")
        logger.info(f"Creating new category: {name}")
        try:
            with self.database.unit_of_work() as db:
                category = Category(name=name, description=_optional_text(description), active=True)
                db.add(category)
                db.flush()
                db.refresh(category)
                result = CategoryResponse.model_validate(category)
        except UniqueViolationError as e:
            logger.warning(f"Category already exists: {name}")
            raise DuplicateError("A category with this name already exists") from e

        logger.info(f"Successfully created category: {result.name} (ID: {result.id})")
        return result

    def update_category(self, category_id: int, patch: dict) -> CategoryResponse:
        _reject_unknown(patch, CATEGORY_MUTABLE_FIELDS)
        try:
            with self.database.unit_of_work() as db:
                category = self._active_category(db, category_id)
                if "name" in patch:
                    category.name = _required_text(patch["name"], "Category name is required")
                if "description" in patch:
                    category.description = _optional_text(patch["description"])
                db.flush()
                db.refresh(category)
                result = CategoryResponse.model_validate(category)
        except UniqueViolationError as e:
            logger.warning(f"Category name already exists: {patch.get('name')}")
            raise DuplicateError("A category with this name already exists") from e

        logger.info(f"Successfully updated category: {result.name} (ID: {result.id})")
        return result

    def archive_category(self, category_id: int) -> dict:
        """
        Archive a category together with its sub-categories and their
        products, in that bottom-up order, as one transaction.
        """
        with self.database.unit_of_work() as db:
            category = self._active_category(db, category_id, lock=True)

            sub_category_ids = select(SubCategory.id).where(SubCategory.category_id == category.id)
            products_archived = (
                db.query(Product)
                .filter(Product.sub_category_id.in_(sub_category_ids), Product.active.is_(True))
                .update({Product.active: False}, synchronize_session=False)
            )
            sub_categories_archived = (
                db.query(SubCategory)
                .filter(SubCategory.category_id == category.id, SubCategory.active.is_(True))
                .update({SubCategory.active: False}, synchronize_session=False)
            )
            category.active = False

        logger.info(
            f"Archived category {category_id} with {sub_categories_archived} sub-categories "
            f"and {products_archived} products"
        )
        return {
            "id": category_id,
            "sub_categories_archived": sub_categories_archived,
            "products_archived": products_archived,
        }

    # ------------------------------------------------------------------
    # sub-categories
    # ------------------------------------------------------------------

    def list_sub_categories(self, category_id: Optional[int] = None) -> List[SubCategoryDetail]:
        with self.database.session() as db:
            query = (
                db.query(SubCategory)
                .options(
                    joinedload(SubCategory.category),
                    selectinload(SubCategory.products),
                    with_loader_criteria(Product, Product.active.is_(True)),
                )
                .filter(SubCategory.active.is_(True))
            )
            if category_id:
                query = query.filter(SubCategory.category_id == category_id)
            sub_categories = query.order_by(SubCategory.name.asc()).all()
            return [SubCategoryDetail.model_validate(s) for s in sub_categories]

    def get_sub_category(self, sub_category_id: int) -> SubCategoryDetail:
        with self.database.session() as db:
            sub_category = (
                db.query(SubCategory)
                .options(
                    joinedload(SubCategory.category),
                    selectinload(SubCategory.products),
                    with_loader_criteria(Product, Product.active.is_(True)),
                )
                .filter(SubCategory.id == sub_category_id, SubCategory.active.is_(True))
                .first()
            )
            if not sub_category:
                logger.warning(f"Sub-category with ID {sub_category_id} not found")
                raise NotFoundError(f"Sub-category with ID {sub_category_id} not found")
            return SubCategoryDetail.model_validate(sub_category)

    def create_sub_category(
        self, name: str, category_id: int, description: Optional[str] = None
    ) -> SubCategoryResponse:
        name = _required_text(name, "Sub-category name is required")
        logger.info(f"Creating new sub-category {name} in category {category_id}")
        try:
            with self.database.unit_of_work() as db:
                category = self._parent_category(db, category_id)
                sub_category = SubCategory(
                    name=name,
                    description=_optional_text(description),
                    category_id=category.id,
                    active=True,
                )
                db.add(sub_category)
                db.flush()
                db.refresh(sub_category)
                result = SubCategoryResponse.model_validate(sub_category)
        except UniqueViolationError as e:
            logger.warning(f"Sub-category already exists in category {category_id}: {name}")
            raise DuplicateError("A sub-category with this name already exists in this category") from e

        logger.info(f"Successfully created sub-category: {result.name} (ID: {result.id})")
        return result

    def update_sub_category(self, sub_category_id: int, patch: dict) -> SubCategoryResponse:
        _reject_unknown(patch, SUB_CATEGORY_MUTABLE_FIELDS)
        try:
            with self.database.unit_of_work() as db:
                sub_category = self._active_sub_category(db, sub_category_id)
                if "name" in patch:
                    sub_category.name = _required_text(patch["name"], "Sub-category name is required")
                if "description" in patch:
                    sub_category.description = _optional_text(patch["description"])
                new_category_id = patch.get("category_id")
                if new_category_id and new_category_id != sub_category.category_id:
                    sub_category.category_id = self._parent_category(db, new_category_id).id
                db.flush()
                db.refresh(sub_category)
                result = SubCategoryResponse.model_validate(sub_category)
        except UniqueViolationError as e:
            raise DuplicateError("A sub-category with this name already exists in this category") from e

        logger.info(f"Successfully updated sub-category: {result.name} (ID: {result.id})")
        return result

    def archive_sub_category(self, sub_category_id: int) -> dict:
        with self.database.unit_of_work() as db:
            sub_category = self._active_sub_category(db, sub_category_id, lock=True)
            products_archived = (
                db.query(Product)
                .filter(Product.sub_category_id == sub_category.id, Product.active.is_(True))
                .update({Product.active: False}, synchronize_session=False)
            )
            sub_category.active = False

        logger.info(f"Archived sub-category {sub_category_id} with {products_archived} products")
        return {"id": sub_category_id, "products_archived": products_archived}

    # ------------------------------------------------------------------
    # products
    # ------------------------------------------------------------------

    def list_products(
        self,
        sub_category_id: Optional[int] = None,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[ProductResponse]:
        with self.database.session() as db:
            query = (
                db.query(Product)
                .options(joinedload(Product.sub_category).joinedload(SubCategory.category))
                .filter(Product.active.is_(True))
            )
            if sub_category_id:
                query = query.filter(Product.sub_category_id == sub_category_id)
            if category_id:
                query = query.filter(Product.sub_category.has(SubCategory.category_id == category_id))
            if search and search.strip():
                pattern = f"%{search.strip()}%"
                query = query.filter(or_(Product.code.ilike(pattern), Product.designation.ilike(pattern)))
            products = query.order_by(Product.designation.asc()).all()
            return [ProductResponse.model_validate(p) for p in products]

    def get_product(self, code: str) -> ProductDetail:
        code = normalize_code(code)
        with self.database.session() as db:
            product = (
                db.query(Product)
                .options(joinedload(Product.sub_category).joinedload(SubCategory.category))
                .filter(Product.code == code, Product.active.is_(True))
                .first()
            )
            if not product:
                logger.warning(f"Product with code {code} not found")
                raise NotFoundError(f"Product with code {code} not found")

            rows = (
                db.query(OrderLine, Order, Supplier)
                .join(Order, OrderLine.order_id == Order.id)
                .join(Supplier, Order.supplier_id == Supplier.id)
                .filter(OrderLine.product_code == code)
                .order_by(Order.order_date.desc(), Order.id.desc())
                .limit(RECENT_ORDERS_LIMIT)
                .all()
            )
            detail = ProductDetail.model_validate(product)
            detail.recent_orders = [
                RecentOrderLine(
                    order_id=order.id,
                    order_date=order.order_date,
                    status=order.status,
                    supplier_name=supplier.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for line, order, supplier in rows
            ]
            return detail

    def create_product(
        self,
        code: str,
        designation: str,
        unit_price,
        sub_category_id: int,
        stock_quantity: int = 0,
        image_url: Optional[str] = None,
    ) -> ProductResponse:
        code = normalize_code(code)
        designation = _required_text(designation, "Product designation is required")
        unit_price = _validated_price(unit_price)
        stock_quantity = _validated_stock(0 if stock_quantity is None else stock_quantity)

        logger.info(f"Creating new product: {code}")
        try:
            with self.database.unit_of_work() as db:
                sub_category = self._parent_sub_category(db, sub_category_id)
                product = Product(
                    code=code,
                    designation=designation,
                    stock_quantity=stock_quantity,
                    unit_price=unit_price,
                    image_url=_optional_text(image_url),
                    sub_category_id=sub_category.id,
                    active=True,
                )
                db.add(product)
                db.flush()
                db.refresh(product)
                result = ProductResponse.model_validate(product)
        except UniqueViolationError as e:
            logger.warning(f"Product code already exists: {code}")
            raise DuplicateError("A product with this code already exists") from e

        logger.info(f"Successfully created product: {result.code}")
        return result

    def update_product(self, code: str, patch: dict) -> ProductResponse:
        code = normalize_code(code)
        _reject_unknown(patch, PRODUCT_MUTABLE_FIELDS)
        with self.database.unit_of_work() as db:
            product = self._active_product(db, code)
            if "designation" in patch:
                product.designation = _required_text(patch["designation"], "Product designation is required")
            if "unit_price" in patch:
                product.unit_price = _validated_price(patch["unit_price"])
            if "stock_quantity" in patch:
                product.stock_quantity = _validated_stock(patch["stock_quantity"])
            if "image_url" in patch:
                product.image_url = _optional_text(patch["image_url"])
            new_sub_category_id = patch.get("sub_category_id")
            if new_sub_category_id and new_sub_category_id != product.sub_category_id:
                product.sub_category_id = self._parent_sub_category(db, new_sub_category_id).id
            db.flush()
            db.refresh(product)
            result = ProductResponse.model_validate(product)

        logger.info(f"Successfully updated product: {result.code}")
        return result

    def update_stock(self, code: str, stock_quantity: int) -> ProductResponse:
        return self.update_product(code, {"stock_quantity": stock_quantity})

    def archive_product(self, code: str) -> dict:
        """
        Archive a product unless an open order still references it.

        The product row is locked for the rest of the transaction, so the
        open-order check and the write see the same state.
        """
        code = normalize_code(code)
        with self.database.unit_of_work() as db:
            product = self._active_product(db, code, lock=True)
            open_lines = (
                db.query(OrderLine.id)
                .join(Order, OrderLine.order_id == Order.id)
                .filter(OrderLine.product_code == product.code, Order.status.in_(OPEN_ORDER_STATUSES))
                .count()
            )
            if open_lines:
                logger.warning(f"Refusing to archive product {code}: {open_lines} open order lines")
                raise ConflictError("This product cannot be archived because it is referenced by active orders")
            product.active = False

        logger.info(f"Archived product {code}")
        return {"code": code}
