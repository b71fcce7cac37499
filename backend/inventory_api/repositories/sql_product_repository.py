"""SQLAlchemy-backed product repository."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from inventory_api.api.schemas.product import ProductCreate, ProductRead
from inventory_api.core.errors import (
    InsufficientStockError,
    InvalidOperationError,
    RepositoryFailure,
)
from inventory_api.db.models.product import Product
from inventory_api.repositories.product_repository import (
    InventoryAggregate,
    MergeFn,
    ProductRepository,
    StockLevel,
    Transition,
)

UPDATABLE_FIELDS = (
    "name",
    "description",
    "price",
    "stock_quantity",
    "category_id",
    "is_active",
)


def _to_read(product: Product) -> ProductRead:
    return ProductRead.model_validate(product)


def _visible() -> Select:
    return select(Product).where(~Product.is_deleted)


def _apply_filters(
    stmt: Select, search: str | None, category_id: int | None
) -> Select:
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
        )
    if category_id is not None:
        stmt = stmt.where(Product.category_id == category_id)
    return stmt


class SqlAlchemyProductRepository(ProductRepository):
    """One session and one transaction per call.

    Row-level mutations lock the row with ``SELECT ... FOR UPDATE`` before
    touching it; stock changes are a single conditional UPDATE so the
    non-negative check and the write cannot be separated by another writer.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except IntegrityError as e:
            raise InvalidOperationError(
                f"Cannot {action}: a referenced category is missing "
                "or a storage constraint was violated"
            ) from e
        except SQLAlchemyError as e:
            raise RepositoryFailure(f"Storage is unavailable; could not {action}") from e
        finally:
            session.close()

    @staticmethod
    def _locked(session: Session, product_id: int) -> Product | None:
        stmt = _visible().where(Product.id == product_id).with_for_update()
        return session.scalar(stmt)

    def get(self, product_id: int) -> ProductRead | None:
        with self._transaction(f"load product {product_id}") as session:
            product = session.scalar(_visible().where(Product.id == product_id))
            return _to_read(product) if product is not None else None

    def list_page(
        self,
        offset: int,
        limit: int,
        *,
        search: str | None = None,
        category_id: int | None = None,
    ) -> list[ProductRead]:
        stmt = _apply_filters(_visible(), search, category_id)
        stmt = stmt.order_by(Product.id.asc()).offset(offset).limit(limit)
        with self._transaction("list products") as session:
            return [_to_read(p) for p in session.scalars(stmt).all()]

    def count(self, *, search: str | None = None, category_id: int | None = None) -> int:
        stmt = select(func.count(Product.id)).where(~Product.is_deleted)
        stmt = _apply_filters(stmt, search, category_id)
        with self._transaction("count products") as session:
            return session.scalar(stmt) or 0

    def insert(self, record: ProductCreate) -> ProductRead:
        with self._transaction("create product") as session:
            product = Product(
                name=record.name,
                description=record.description,
                price=record.price,
                stock_quantity=record.stock_quantity,
                category_id=record.category_id,
                is_active=True,
                is_deleted=False,
            )
            session.add(product)
            session.flush()
            session.refresh(product)
            return _to_read(product)

    def update_atomic(self, product_id: int, merge: MergeFn) -> Transition | None:
        with self._transaction(f"update product {product_id}") as session:
            product = self._locked(session, product_id)
            if product is None:
                return None
            before = _to_read(product)
            after = merge(before)
            for field in UPDATABLE_FIELDS:
                value = getattr(after, field)
                if getattr(product, field) != value:
                    setattr(product, field, value)
            session.flush()
            session.refresh(product)
            return before, _to_read(product)

    def adjust_stock(
        self, product_id: int, quantity: int, *, absolute: bool = False
    ) -> Transition | None:
        with self._transaction(f"update stock for product {product_id}") as session:
            product = self._locked(session, product_id)
            if product is None:
                return None
            before = _to_read(product)

            if absolute:
                if quantity < 0:
                    raise InsufficientStockError(product_id, quantity, absolute=True)
                new_value = quantity
                condition = Product.id == product_id
            else:
                new_value = Product.stock_quantity + quantity
                condition = Product.stock_quantity + quantity >= 0

            stmt = (
                update(Product)
                .where(Product.id == product_id, ~Product.is_deleted, condition)
                .values(stock_quantity=new_value, updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            if result.rowcount == 0:
                raise InsufficientStockError(product_id, quantity, absolute=absolute)

            session.refresh(product)
            return before, _to_read(product)

    def delete(self, product_id: int) -> ProductRead | None:
        with self._transaction(f"delete product {product_id}") as session:
            product = self._locked(session, product_id)
            if product is None:
                return None
            before = _to_read(product)
            product.is_deleted = True
            return before

    def aggregate(self, threshold: int) -> InventoryAggregate:
        stmt = select(Product.price, Product.stock_quantity, Product.is_active).where(
            ~Product.is_deleted
        )
        with self._transaction("compute inventory statistics") as session:
            rows = session.execute(stmt).all()
        return InventoryAggregate.from_levels(
            (StockLevel(row.price, row.stock_quantity, row.is_active) for row in rows),
            threshold,
        )

    def list_low_stock(self, threshold: int) -> list[ProductRead]:
        stmt = (
            _visible()
            .where(Product.stock_quantity <= threshold)
            .order_by(Product.stock_quantity.asc(), Product.id.asc())
        )
        with self._transaction("list low-stock products") as session:
            return [_to_read(p) for p in session.scalars(stmt).all()]
