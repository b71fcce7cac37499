"""Database models package."""
from inventory_api.db.models.category import Category
from inventory_api.db.models.product import Product

__all__ = ["Category", "Product"]
