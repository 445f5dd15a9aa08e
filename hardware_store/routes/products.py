import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from hardware_store.core.dependencies import get_catalog_service, get_current_user, require_permission
from hardware_store.core.identity import ResolvedIdentity
from hardware_store.schemas.common import MAX_ID, ApiResponse, ok
from hardware_store.schemas.products import (
    ProductCreate,
    ProductDetail,
    ProductResponse,
    ProductUpdate,
    StockUpdate,
)
from hardware_store.services.catalog_service import CatalogService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=ApiResponse[List[ProductResponse]], summary="Get all products")
def get_products(
    sub_category_id: Optional[int] = Query(None, gt=0, le=MAX_ID),
    category_id: Optional[int] = Query(None, gt=0, le=MAX_ID),
    search: Optional[str] = Query(None, max_length=100, description="Matches code or designation"),
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(get_current_user)
):
    """Active products ordered by designation"""
    return ok(catalog.list_products(sub_category_id, category_id, search))


@router.get("/{code}", response_model=ApiResponse[ProductDetail], summary="Get product by code")
def get_product(
    code: str,
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(get_current_user)
):
    """Product with its five most recent order lines"""
    return ok(catalog.get_product(code))


@router.post(
    "",
    response_model=ApiResponse[ProductResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create new product"
)
def create_product(
    product: ProductCreate,
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("products.create"))
):
    """
    Add a new product - requires the MANAGER role

    - code: required, unique, trimmed and uppercased
    - designation: required
    - unit_price: required, must be greater than 0
    - stock_quantity: optional, 0 or greater
    - sub_category_id: required, must reference an active sub-category
    """
    logger.info(f"User {current_user.username} adding product {product.code}")
    created = catalog.create_product(**product.model_dump())
    return ok(created, "Product created successfully")


@router.put("/{code}", response_model=ApiResponse[ProductResponse], summary="Update product")
def update_product(
    code: str,
    product: ProductUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("products.update"))
):
    updated = catalog.update_product(code, product.model_dump(exclude_unset=True))
    return ok(updated, "Product updated successfully")


@router.patch("/{code}/stock", response_model=ApiResponse[ProductResponse], summary="Update product stock")
def update_stock(
    code: str,
    payload: StockUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("products.update_stock"))
):
    updated = catalog.update_stock(code, payload.stock_quantity)
    return ok(updated, "Stock updated successfully")


@router.delete("/{code}", response_model=ApiResponse[dict], summary="Archive product")
def archive_product(
    code: str,
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("products.archive"))
):
    """Refused while the product appears on an in-progress or delivered-but-unpaid order"""
    logger.info(f"User {current_user.username} archiving product {code}")
    return ok(catalog.archive_product(code), "Product archived successfully")
