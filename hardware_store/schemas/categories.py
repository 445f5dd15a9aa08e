from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime


def _strip_required(v: str, info) -> str:
    if not v or not v.strip():
        raise ValueError(f'{info.field_name} cannot be empty or whitespace only')
    return v.strip()


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    return v.strip() or None


class CategoryBase(BaseModel):
    """Base schema for category data"""
    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    description: Optional[str] = Field(None, max_length=500, description="Category description")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str, info) -> str:
        return _strip_required(v, info)

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class CategoryCreate(CategoryBase):
    """Schema for creating a new category"""
    pass


class CategoryUpdate(BaseModel):
    """Schema for updating an existing category"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str], info) -> Optional[str]:
        return v if v is None else _strip_required(v, info)


class CategoryRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class CategoryResponse(BaseModel):
    """Schema for category response"""
    id: int = Field(..., description="Category ID")
    name: str
    description: Optional[str] = None
    active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductSummary(BaseModel):
    code: str
    designation: str
    stock_quantity: int
    unit_price: float

    class Config:
        from_attributes = True


class SubCategorySummary(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class SubCategoryWithProducts(SubCategorySummary):
    products: List[ProductSummary] = []


class CategoryListItem(CategoryResponse):
    sub_categories: List[SubCategorySummary] = []


class CategoryDetail(CategoryResponse):
    sub_categories: List[SubCategoryWithProducts] = []
