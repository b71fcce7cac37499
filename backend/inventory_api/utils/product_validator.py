"""Validate and normalize inbound product, stock and category payloads.

Each validator runs the declared pydantic model and translates pydantic's
error list into ``FieldViolation`` items: one per offending field, every
field reported, never a "required" and a "type" error for the same path.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

import pydantic

from inventory_api.api.schemas.category import CategoryCreate, CategoryUpdate
from inventory_api.api.schemas.product import (
    ProductCreate,
    ProductUpdate,
    StockUpdate,
    StrictProductUpdate,
)
from inventory_api.core.errors import FieldViolation, ValidationError

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

BODY_PATH = "body"


def _field_path(loc: tuple[Any, ...]) -> str:
    if not loc:
        return BODY_PATH
    return ".".join(str(part) for part in loc)


def collect_violations(exc: pydantic.ValidationError) -> list[FieldViolation]:
    """Flatten pydantic errors, keeping only the first message per field."""
    violations: list[FieldViolation] = []
    seen: set[str] = set()
    for error in exc.errors(include_url=False):
        path = _field_path(tuple(error.get("loc", ())))
        if path in seen:
            continue
        seen.add(path)
        violations.append(FieldViolation(field=path, message=error["msg"]))
    return violations


def _validate(model: type[ModelT], payload: Any) -> ModelT:
    if isinstance(payload, model):
        return payload
    if isinstance(payload, pydantic.BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, Mapping):
        raise ValidationError(
            [FieldViolation(field=BODY_PATH, message="Payload must be a JSON object")]
        )
    try:
        return model.model_validate(dict(payload))
    except pydantic.ValidationError as e:
        raise ValidationError(collect_violations(e)) from e


def validate_create(payload: Any) -> ProductCreate:
    """Check a create payload; all five business fields are required."""
    return _validate(ProductCreate, payload)


def validate_update(payload: Any, *, strict: bool = False) -> ProductUpdate:
    """Check a partial update; unknown keys are rejected only in strict mode."""
    if strict:
        return _validate(StrictProductUpdate, payload)
    return _validate(ProductUpdate, payload)


def validate_stock_update(payload: Any) -> StockUpdate:
    return _validate(StockUpdate, payload)


def validate_category_create(payload: Any) -> CategoryCreate:
    return _validate(CategoryCreate, payload)


def validate_category_update(payload: Any) -> CategoryUpdate:
    return _validate(CategoryUpdate, payload)
