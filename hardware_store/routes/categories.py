import logging
from typing import List

from fastapi import APIRouter, Depends, Path, status

from hardware_store.core.dependencies import get_catalog_service, get_current_user, require_permission
from hardware_store.core.identity import ResolvedIdentity
from hardware_store.schemas.categories import (
    CategoryCreate,
    CategoryDetail,
    CategoryListItem,
    CategoryResponse,
    CategoryUpdate,
)
from hardware_store.schemas.common import MAX_ID, ApiResponse, ok
from hardware_store.services.catalog_service import CatalogService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "",
    response_model=ApiResponse[List[CategoryListItem]],
    status_code=status.HTTP_200_OK,
    summary="Get all categories",
    description="Retrieve all active categories with their active sub-categories"
)
def get_all_categories(
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(get_current_user)
):
    return ok(catalog.list_categories())


@router.get(
    "/{category_id}",
    response_model=ApiResponse[CategoryDetail],
    status_code=status.HTTP_200_OK,
    summary="Get category by ID",
    description="Retrieve an active category with its sub-categories and their products"
)
def get_category(
    category_id: int = Path(..., gt=0, le=MAX_ID),
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(get_current_user)
):
    return ok(catalog.get_category(category_id))


@router.post(
    "",
    response_model=ApiResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create new category",
    description="Create a new product category"
)
def create_category(
    category_data: CategoryCreate,
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("categories.create"))
):
    """
    Create a new category.
    Requires the MANAGER role.

    Raises:
        DuplicateError: If a category with this name already exists
    """
    category = catalog.create_category(category_data.name, category_data.description)
    return ok(category, "Category created successfully")


@router.put(
    "/{category_id}",
    response_model=ApiResponse[CategoryResponse],
    status_code=status.HTTP_200_OK,
    summary="Update category",
    description="Update an existing category"
)
def update_category(
    category_data: CategoryUpdate,
    category_id: int = Path(..., gt=0, le=MAX_ID),
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("categories.update"))
):
    category = catalog.update_category(category_id, category_data.model_dump(exclude_unset=True))
    return ok(category, "Category updated successfully")


@router.delete(
    "/{category_id}",
    response_model=ApiResponse[dict],
    status_code=status.HTTP_200_OK,
    summary="Archive category",
    description="Archive a category together with its sub-categories and their products"
)
def archive_category(
    category_id: int = Path(..., gt=0, le=MAX_ID),
    catalog: CatalogService = Depends(get_catalog_service),
    current_user: ResolvedIdentity = Depends(require_permission("categories.archive"))
):
    logger.info(f"User {current_user.username} archiving category {category_id}")
    return ok(catalog.archive_category(category_id), "Category archived successfully")
