from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from hardware_store.schemas.products import ProductResponse


class UploadedImageOut(BaseModel):
    url: str
    public_id: str
    width: int
    height: int
    format: str
    bytes: int


class ProductImageUpload(BaseModel):
    product: ProductResponse
    image: UploadedImageOut


class ImageDetails(BaseModel):
    url: str
    public_id: Optional[str] = None
    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    bytes: Optional[int] = None
    created_at: Optional[datetime] = None
    note: Optional[str] = None


class ProductImageInfo(BaseModel):
    code: str
    designation: str
    image: ImageDetails


class ImageTransformations(BaseModel):
    width: Optional[int] = None
    height: Optional[int] = None
    quality: int
    format: str


class OptimizedImage(BaseModel):
    original_url: str
    optimized_url: str
    width: int
    height: int
    bytes: int
    transformations: ImageTransformations
