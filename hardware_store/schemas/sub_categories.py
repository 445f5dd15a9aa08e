from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from hardware_store.schemas.categories import CategoryRef, ProductSummary
from hardware_store.schemas.common import MAX_ID


class SubCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Sub-category name, unique within its category")
    description: Optional[str] = Field(None, max_length=500)
    category_id: int = Field(..., gt=0, le=MAX_ID, description="Parent category ID")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str, info) -> str:
        if not v or not v.strip():
            raise ValueError(f'{info.field_name} cannot be empty or whitespace only')
        return v.strip()


class SubCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category_id: Optional[int] = Field(None, gt=0, le=MAX_ID, description="New parent category ID")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str], info) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError(f'{info.field_name} cannot be empty or whitespace only')
        return v.strip() if v else v


class SubCategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    active: bool
    category_id: int
    category: CategoryRef
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SubCategoryDetail(SubCategoryResponse):
    products: List[ProductSummary] = []
