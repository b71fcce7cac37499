"""Category CRUD endpoints; deletes are soft and refused while products use the category."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, status

from inventory_api.api.dependencies.services import get_category_service
from inventory_api.api.schemas.category import CategoryRead
from inventory_api.api.schemas.common import ApiResponse
from inventory_api.services.category_service import CategoryService

router = APIRouter()


@router.get(
    "",
    summary="List active categories",
    response_model=ApiResponse[list[CategoryRead]],
)
def list_categories(
    service: CategoryService = Depends(get_category_service),
) -> ApiResponse[list[CategoryRead]]:
    return ApiResponse(
        message="Categories retrieved successfully",
        data=service.list_categories(),
    )


@router.post(
    "",
    summary="Create a category",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[CategoryRead],
)
def create_category(
    payload: dict[str, Any] = Body(...),
    service: CategoryService = Depends(get_category_service),
) -> ApiResponse[CategoryRead]:
    """Category names are unique; a duplicate name is rejected with 409."""
    return ApiResponse(
        message="Category created successfully",
        data=service.create_category(payload),
    )


@router.get(
    "/{category_id}",
    summary="Fetch a single active category",
    response_model=ApiResponse[CategoryRead],
)
def get_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
) -> ApiResponse[CategoryRead]:
    return ApiResponse(
        message="Category retrieved successfully",
        data=service.get_category(category_id),
    )


@router.put(
    "/{category_id}",
    summary="Update a category",
    response_model=ApiResponse[CategoryRead],
)
@router.patch(
    "/{category_id}",
    summary="Update a category",
    response_model=ApiResponse[CategoryRead],
)
def update_category(
    category_id: int,
    payload: dict[str, Any] = Body(...),
    service: CategoryService = Depends(get_category_service),
) -> ApiResponse[CategoryRead]:
    return ApiResponse(
        message="Category updated successfully",
        data=service.update_category(category_id, payload),
    )


@router.delete(
    "/{category_id}",
    summary="Delete a category",
    response_model=ApiResponse[None],
)
def delete_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
) -> ApiResponse[None]:
    service.delete_category(category_id)
    return ApiResponse(message="Category deleted successfully")
