import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from hardware_store.core.dependencies import get_catalog_service, get_current_user, require_permission
from hardware_store.core.identity import ResolvedIdentity
from hardware_store.schemas.common import MAX_ID, ApiResponse, ok
from hardware_store.schemas.sub_categories import (
    SubCategoryCreate,
    SubCategoryDetail,
    SubCategoryResponse,
    SubCategoryUpdate,
)
from hardware_store.services.catalog_service import CatalogService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "",
    response_model=ApiResponse[List[SubCategoryDetail]],
    summary="Get all sub-categories",
    description="Retrieve active sub-categories, optionally filtered by category"
)
def get_all_sub_categories(
    category_id: Optional[int] = Query(None, gt=0, le=MAX_ID),
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(get_current_user)
):
    return ok(catalog.list_sub_categories(category_id))


@router.get("/{sub_category_id}", response_model=ApiResponse[SubCategoryDetail], summary="Get sub-category by ID")
def get_sub_category(
    sub_category_id: int = Path(..., gt=0, le=MAX_ID),
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(get_current_user)
):
    return ok(catalog.get_sub_category(sub_category_id))


@router.post(
    "",
    response_model=ApiResponse[SubCategoryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create new sub-category"
)
def create_sub_category(
    payload: SubCategoryCreate,
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("sub_categories.create"))
):
    sub_category = catalog.create_sub_category(payload.name, payload.category_id, payload.description)
    return ok(sub_category, "Sub-category created successfully")


@router.put("/{sub_category_id}", response_model=ApiResponse[SubCategoryResponse], summary="Update sub-category")
def update_sub_category(
    payload: SubCategoryUpdate,
    sub_category_id: int = Path(..., gt=0, le=MAX_ID),
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("sub_categories.update"))
):
    sub_category = catalog.update_sub_category(sub_category_id, payload.model_dump(exclude_unset=True))
    return ok(sub_category, "Sub-category updated successfully")


@router.delete(
    "/{sub_category_id}",
    response_model=ApiResponse[dict],
    summary="Archive sub-category",
    description="Archive a sub-category and its products"
)
def archive_sub_category(
    sub_category_id: int = Path(..., gt=0, le=MAX_ID),
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("sub_categories.archive"))
):
    logger.info(f"User {current_user.username} archiving sub-category {sub_category_id}")
    return ok(catalog.archive_sub_category(sub_category_id), "Sub-category archived successfully")
