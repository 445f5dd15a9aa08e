from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from hardware_store.schemas.categories import CategoryRef
from hardware_store.schemas.common import MAX_ID


def _validate_price(v: Optional[float]) -> Optional[float]:
    if v is None:
        return v
    if v <= 0:
        raise ValueError('Price must be greater than 0')
    if v > 99999999.99:
        raise ValueError('Price cannot exceed 99,999,999.99')
    # Round to 2 decimal places
    return round(v, 2)


class ProductBase(BaseModel):
    code: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Product code - unique identifier, stored uppercase",
        examples=["MRT-001", "VIS-6X40"]
    )
    designation: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Product designation",
        examples=["Claw hammer 500g"]
    )
    stock_quantity: int = Field(
        0,
        ge=0,
        le=MAX_ID,
        description="Quantity in stock (must be 0 or greater)",
        examples=[100, 0]
    )
    unit_price: float = Field(
        ...,
        gt=0,
        description="Unit price (must be greater than 0)",
        examples=[4500.0, 12.5]
    )
    image_url: Optional[str] = Field(None, max_length=500)
    sub_category_id: int = Field(..., gt=0, le=MAX_ID, description="Parent sub-category ID")

    @field_validator('code', 'designation')
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        if not v or not v.strip():
            raise ValueError(f'{info.field_name} cannot be empty or whitespace only')
        return v.strip()

    @field_validator('unit_price')
    @classmethod
    def validate_price(cls, v: float) -> float:
        return _validate_price(v)

    class Config:
        json_schema_extra = {
            "example": {
                "code": "MRT-001",
                "designation": "Claw hammer 500g",
                "stock_quantity": 25,
                "unit_price": 4500,
                "sub_category_id": 1
            }
        }


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    designation: Optional[str] = Field(None, min_length=1, max_length=255)
    stock_quantity: Optional[int] = Field(None, ge=0, le=MAX_ID)
    unit_price: Optional[float] = Field(None, gt=0)
    image_url: Optional[str] = Field(None, max_length=500)
    sub_category_id: Optional[int] = Field(None, gt=0, le=MAX_ID)

    @field_validator('designation')
    @classmethod
    def validate_not_empty(cls, v: Optional[str], info) -> Optional[str]:
        if v is not None and (not v or not v.strip()):
            raise ValueError(f'{info.field_name} cannot be empty or whitespace only')
        return v.strip() if v else v

    @field_validator('unit_price')
    @classmethod
    def validate_price(cls, v: Optional[float]) -> Optional[float]:
        return _validate_price(v)

    class Config:
        json_schema_extra = {
            "example": {
                "designation": "Claw hammer 600g",
                "unit_price": 4800
            }
        }


class StockUpdate(BaseModel):
    stock_quantity: int = Field(..., ge=0, le=MAX_ID, description="New quantity in stock")


class SubCategoryRef(BaseModel):
    id: int
    name: str
    category: CategoryRef

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    code: str
    designation: str
    stock_quantity: int
    unit_price: float
    image_url: Optional[str] = None
    active: bool
    sub_category_id: int
    sub_category: SubCategoryRef
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RecentOrderLine(BaseModel):
    order_id: int
    order_date: datetime
    status: str
    supplier_name: str
    quantity: int
    unit_price: float


class ProductDetail(ProductResponse):
    recent_orders: List[RecentOrderLine] = []
