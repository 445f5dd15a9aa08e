# package marker for hardware_store.models

# Import all models to ensure relationships are properly initialized
from hardware_store.models.user import Role, User
from hardware_store.models.categories import Category
from hardware_store.models.sub_categories import SubCategory
from hardware_store.models.products import Product
from hardware_store.models.orders import OPEN_ORDER_STATUSES, Order, OrderLine, OrderStatus, Supplier

__all__ = [
    "Role",
    "User",
    "Category",
    "SubCategory",
    "Product",
    "Supplier",
    "Order",
    "OrderLine",
    "OrderStatus",
    "OPEN_ORDER_STATUSES",
]
