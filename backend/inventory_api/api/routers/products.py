"""CRUD, stock and inventory-statistics endpoints for products.

Handlers are plain ``def`` so FastAPI runs them in its threadpool; storage
calls block, and concurrent requests must not queue behind each other on the
event loop. Validation, invariants and error classification all live in
``ProductService``; failures propagate to the registered error handlers.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status

from inventory_api.api.dependencies.services import get_product_service
from inventory_api.api.schemas.common import ApiResponse, ErrorResponse
from inventory_api.api.schemas.product import (
    InventoryStats,
    ProductListData,
    ProductRead,
)
from inventory_api.services.product_service import ProductService

router = APIRouter(
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    }
)


@router.get(
    "",
    summary="List products with pagination",
    response_model=ApiResponse[ProductListData],
)
def list_products(
    page: int | None = Query(None, description="Page number (1-indexed)"),
    limit: int | None = Query(None, description="Items per page"),
    search: str | None = Query(None, description="Match on name or description"),
    category_id: int | None = Query(None, alias="categoryId"),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductListData]:
    """Return products ordered by id; out-of-range paging follows the configured policy."""
    result = service.list_products(
        page, limit, search=search, category_id=category_id
    )
    return ApiResponse(
        message="Products retrieved successfully",
        data=ProductListData.from_page(result),
    )


@router.get(
    "/stats",
    summary="Inventory totals and value",
    response_model=ApiResponse[InventoryStats],
)
def get_inventory_stats(
    threshold: int | None = Query(None, description="Low-stock threshold override"),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[InventoryStats]:
    return ApiResponse(
        message="Inventory statistics retrieved successfully",
        data=service.get_inventory_stats(threshold),
    )


@router.get(
    "/low-stock",
    summary="Products at or below a stock threshold",
    response_model=ApiResponse[list[ProductRead]],
)
def get_low_stock_products(
    threshold: int | None = Query(None, description="Inclusive stock threshold"),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[list[ProductRead]]:
    return ApiResponse(
        message="Low stock products retrieved successfully",
        data=service.get_low_stock_products(threshold),
    )


@router.get(
    "/{product_id}",
    summary="Fetch a single product",
    response_model=ApiResponse[ProductRead],
)
def get_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductRead]:
    return ApiResponse(
        message="Product retrieved successfully",
        data=service.get_product(product_id),
    )


@router.post(
    "",
    summary="Create a product",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ProductRead],
)
def create_product(
    payload: dict[str, Any] = Body(...),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductRead]:
    """Validate the payload and insert the product; new products start active."""
    return ApiResponse(
        message="Product created successfully",
        data=service.create_product(payload),
    )


@router.put(
    "/{product_id}",
    summary="Update existing product",
    response_model=ApiResponse[ProductRead],
)
@router.patch(
    "/{product_id}",
    summary="Update existing product",
    response_model=ApiResponse[ProductRead],
)
def update_product(
    product_id: int,
    payload: dict[str, Any] = Body(...),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductRead]:
    """Partial update: only the fields present in the body change."""
    return ApiResponse(
        message="Product updated successfully",
        data=service.update_product(product_id, payload),
    )


@router.put(
    "/{product_id}/stock",
    summary="Adjust stock by a delta or to an absolute level",
    response_model=ApiResponse[ProductRead],
)
@router.patch(
    "/{product_id}/stock",
    summary="Adjust stock by a delta or to an absolute level",
    response_model=ApiResponse[ProductRead],
)
def update_stock(
    product_id: int,
    payload: dict[str, Any] = Body(...),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[ProductRead]:
    return ApiResponse(
        message="Stock updated successfully",
        data=service.update_stock(product_id, payload),
    )


@router.delete(
    "/{product_id}",
    summary="Delete product",
    response_model=ApiResponse[None],
)
def delete_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> ApiResponse[None]:
    service.delete_product(product_id)
    return ApiResponse(message="Product deleted successfully")
