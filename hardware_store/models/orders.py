import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from hardware_store.database import Base


class OrderStatus(str, enum.Enum):
    ENCOURS = "ENCOURS"  # placed with the supplier, not delivered
    LIVRE = "LIVRE"  # delivered, not fully paid
    LIVRE_PAYE = "LIVRE_PAYE"  # delivered and settled
    ANNULEE = "ANNULEE"


# Orders in these states still hold their products
OPEN_ORDER_STATUSES = (OrderStatus.ENCOURS.value, OrderStatus.LIVRE.value)


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(150), index=True, nullable=False)
    phone_number = Column(String(30), nullable=True)
    address = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    orders = relationship("Order", back_populates="supplier")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=OrderStatus.ENCOURS.value, index=True)
    order_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    supplier = relationship("Supplier", back_populates="orders")
    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan")


class OrderLine(Base):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_code = Column(String(50), ForeignKey("products.code"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2, asdecimal=False), nullable=False)

    order = relationship("Order", back_populates="lines")
    product = relationship("Product", back_populates="order_lines")
