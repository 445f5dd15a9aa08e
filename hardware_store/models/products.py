from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from hardware_store.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("unit_price > 0", name="ck_products_price_positive"),
    )

    # Business key, stored trimmed and uppercased
    code = Column(String(50), primary_key=True, index=True)
    designation = Column(String(255), index=True, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    image_url = Column(String(500), nullable=True)
    active = Column(Boolean, nullable=False, default=True, index=True)
    sub_category_id = Column(Integer, ForeignKey("sub_categories.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    sub_category = relationship("SubCategory", back_populates="products")
    order_lines = relationship("OrderLine", back_populates="product")
