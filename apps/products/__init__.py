"""
Product aggregate: domain model, persisted row and repository.
"""

from .models import Product, ProductPo, ProductProperty, ProductType
from .repository import ProductRepository

__all__ = ["Product", "ProductPo", "ProductProperty", "ProductType", "ProductRepository"]
