import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from hardware_store.core.dependencies import get_current_user, get_image_service, require_permission
from hardware_store.core.identity import ResolvedIdentity
from hardware_store.schemas.common import ApiResponse, ok
from hardware_store.schemas.images import OptimizedImage, ProductImageInfo, ProductImageUpload
from hardware_store.schemas.products import ProductResponse
from hardware_store.services.image_service import ImageService
from hardware_store.services.storage_service import DEFAULT_QUALITY, MAX_DIMENSION

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/products/{code}", response_model=ApiResponse[ProductImageUpload], summary="Upload a product image")
def upload_product_image(
    code: str,
    image: UploadFile = File(..., description="JPEG, PNG, GIF or WebP, 5MB max"),
    images: ImageService = Depends(get_image_service),
    current_user: ResolvedIdentity = Depends(require_permission("images.upload"))
):
    """Replaces the product's current image, if any"""
    content = image.file.read()
    logger.info(f"User {current_user.username} uploading image {image.filename} for product {code}")
    result = images.upload_product_image(code, content, image.content_type)
    return ok(result, "Image uploaded successfully")


@router.delete("/products/{code}", response_model=ApiResponse[ProductResponse], summary="Delete a product image")
def delete_product_image(
    code: str,
    images: ImageService = Depends(get_image_service),
    current_user: ResolvedIdentity = Depends(require_permission("images.delete"))
):
    return ok(images.delete_product_image(code), "Image deleted successfully")


@router.get("/products/{code}/info", response_model=ApiResponse[ProductImageInfo], summary="Product image details")
def get_image_info(
    code: str,
    images: ImageService = Depends(get_image_service),
    current_user: ResolvedIdentity = Depends(get_current_user)
):
    return ok(images.get_image_info(code))


@router.get(
    "/products/{code}/optimized",
    response_model=ApiResponse[OptimizedImage],
    summary="Resized product image",
    description="URL of a copy of the product image bounded by width/height, re-encoded at the given quality and format"
)
def get_optimized_image_url(
    code: str,
    width: Optional[int] = Query(None, gt=0, le=MAX_DIMENSION),
    height: Optional[int] = Query(None, gt=0, le=MAX_DIMENSION),
    quality: int = Query(DEFAULT_QUALITY, ge=1, le=100),
    format: str = Query("jpg", pattern="^(jpg|png|webp)$"),
    images: ImageService = Depends(get_image_service),
    current_user: ResolvedIdentity = Depends(get_current_user)
):
    return ok(images.get_optimized_image_url(code, width, height, quality, format))
