"""Catalog repositories package."""

from modules.catalog.repositories.django_repository import (
    CategoryDjangoRepository,
    ProductDjangoRepository,
    SubcategoryDjangoRepository,
)
from modules.catalog.repositories.interfaces import (
    ICategoryRepository,
    IProductRepository,
    ISubcategoryRepository,
)

__all__ = [
    "CategoryDjangoRepository",
    "ICategoryRepository",
    "IProductRepository",
    "ISubcategoryRepository",
    "ProductDjangoRepository",
    "SubcategoryDjangoRepository",
]
