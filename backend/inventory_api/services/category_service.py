"""Category lookups and lifecycle; keeps the category gauge current.

Only active categories are visible. Deleting (or deactivating) a category is
refused while active products still reference it; the product count and the
state change happen in the same transaction, under a lock on the category.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from inventory_api.api.schemas.category import CategoryCreate, CategoryRead, CategoryUpdate
from inventory_api.core.errors import InvalidOperationError, NotFoundError, RepositoryFailure
from inventory_api.db.models.category import Category
from inventory_api.db.models.product import Product
from inventory_api.services.metrics import NullMetrics
from inventory_api.utils.product_validator import (
    validate_category_create,
    validate_category_update,
)

logger = logging.getLogger(__name__)


def _not_found(category_id: int) -> NotFoundError:
    return NotFoundError(f"Category {category_id} not found")


def _duplicate(name: str) -> InvalidOperationError:
    return InvalidOperationError(f"Category '{name}' already exists")


class CategoryService:
    def __init__(self, session_factory: sessionmaker, metrics: NullMetrics | None = None) -> None:
        self._session_factory = session_factory
        self._metrics = metrics if metrics is not None else NullMetrics()

    @contextmanager
    def _transaction(self, action: str, *, name: str | None = None) -> Iterator[Session]:
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except IntegrityError as e:
            # The only constraint a category write can break is the unique name
            if name is not None:
                raise _duplicate(name) from e
            raise InvalidOperationError(f"Cannot {action}: a storage constraint was violated") from e
        except SQLAlchemyError as e:
            raise RepositoryFailure(f"Storage is unavailable; could not {action}") from e
        finally:
            session.close()

    @staticmethod
    def _active(session: Session, category_id: int, *, lock: bool = False) -> Category | None:
        stmt = select(Category).where(Category.id == category_id, Category.is_active)
        if lock:
            stmt = stmt.with_for_update()
        return session.scalar(stmt)

    @staticmethod
    def _ensure_unused(session: Session, category_id: int) -> None:
        in_use = session.scalar(
            select(func.count(Product.id)).where(
                Product.category_id == category_id,
                Product.is_active,
                ~Product.is_deleted,
            )
        )
        if in_use:
            raise InvalidOperationError(
                f"Cannot delete category {category_id}: {in_use} active products still use it"
            )

    def list_categories(self) -> list[CategoryRead]:
        """Active categories ordered by name."""
        stmt = select(Category).where(Category.is_active).order_by(Category.name.asc())
        with self._transaction("list categories") as session:
            return [CategoryRead.model_validate(c) for c in session.scalars(stmt).all()]

    def count_categories(self) -> int:
        stmt = select(func.count(Category.id)).where(Category.is_active)
        with self._transaction("count categories") as session:
            return session.scalar(stmt) or 0

    def get_category(self, category_id: int) -> CategoryRead:
        with self._transaction(f"load category {category_id}") as session:
            category = self._active(session, category_id)
            if category is None:
                raise _not_found(category_id)
            return CategoryRead.model_validate(category)

    def create_category(self, payload: CategoryCreate | dict[str, Any]) -> CategoryRead:
        record = validate_category_create(payload)
        with self._transaction("create category", name=record.name) as session:
            category = Category(name=record.name, description=record.description)
            session.add(category)
            session.flush()
            session.refresh(category)
            created = CategoryRead.model_validate(category)

        self._metrics.category_added()
        logger.info(f"Created category {created.id} ({created.name})")
        return created

    def update_category(
        self, category_id: int, payload: CategoryUpdate | dict[str, Any]
    ) -> CategoryRead:
        """Apply the fields present in ``payload``; ``isActive: false`` counts as a delete."""
        changes = validate_category_update(payload).changes()
        with self._transaction(
            f"update category {category_id}", name=changes.get("name")
        ) as session:
            category = self._active(session, category_id, lock=True)
            if category is None:
                raise _not_found(category_id)
            if changes.get("is_active") is False:
                self._ensure_unused(session, category_id)
            for field, value in changes.items():
                setattr(category, field, value)
            session.flush()
            session.refresh(category)
            updated = CategoryRead.model_validate(category)

        if not updated.is_active:
            self._metrics.category_removed()
        if changes:
            logger.info(f"Updated category {category_id}: {', '.join(sorted(changes))}")
        return updated

    def delete_category(self, category_id: int) -> None:
        """Deactivate the category; refused while active products reference it."""
        with self._transaction(f"delete category {category_id}") as session:
            category = self._active(session, category_id, lock=True)
            if category is None:
                raise _not_found(category_id)
            self._ensure_unused(session, category_id)
            category.is_active = False

        self._metrics.category_removed()
        logger.info(f"Deleted category {category_id}")

    def refresh_business_metrics(self) -> None:
        self._metrics.set_total_categories(self.count_categories())
