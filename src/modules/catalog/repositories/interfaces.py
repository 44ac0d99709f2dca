"""Catalog repository interfaces.

One contract per node kind.  Beyond the generic CRUD contract they expose
the bulk and locking operations required by the cascade engine, the cart
and order engines (stock arithmetic) and the referential guard (child
counts).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Category, Product, Subcategory


class ICategoryRepository(IRepository["Category"]):
    """Repository contract for Category."""

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Category]:
        """Retrieve a category with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def get_by_name(self, name: str) -> Optional[Category]:
        """Retrieve a category by its (unique) name."""

    @abstractmethod
    def set_active(self, id: Any, active: bool) -> int:
        """Set the flag on a single category; returns rows changed."""

    @abstractmethod
    def stats(self, id: Any) -> Dict[str, Any]:
        """Aggregate subcategory/product counts, units in stock and inventory value."""


class ISubcategoryRepository(IRepository["Subcategory"]):
    """Repository contract for Subcategory."""

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Subcategory]:
        """Retrieve a subcategory with a row-level lock."""

    @abstractmethod
    def get_by_name(self, category_id: Any, name: str) -> Optional[Subcategory]:
        """Retrieve a subcategory by name within a category."""

    @abstractmethod
    def set_active(self, id: Any, active: bool) -> int:
        """Set the flag on a single subcategory; returns rows changed."""

    @abstractmethod
    def deactivate_by_category(self, category_id: Any) -> int:
        """Deactivate every active subcategory of a category; returns rows flipped."""

    @abstractmethod
    def count_by_category(self, category_id: Any) -> int:
        """Number of subcategories owned by a category."""

    @abstractmethod
    def stats(self, id: Any) -> Dict[str, Any]:
        """Aggregate product counts, units in stock and inventory value."""


class IProductRepository(IRepository["Product"]):
    """Repository contract for Product."""

    @abstractmethod
    def get_with_chain(self, id: Any) -> Optional[Product]:
        """Retrieve a product with its subcategory and category loaded."""

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Product]:
        """Retrieve a product (chain loaded) with a row-level lock on the product."""

    @abstractmethod
    def lock_many(self, ids: Iterable[Any]) -> Dict[Any, Product]:
        """Lock products (SELECT FOR UPDATE, primary-key order) keyed by id."""

    @abstractmethod
    def set_active(self, id: Any, active: bool) -> int:
        """Set the flag on a single product; returns rows changed."""

    @abstractmethod
    def deactivate_by_category(self, category_id: Any) -> int:
        """Deactivate every active product under a category's subcategories."""

    @abstractmethod
    def deactivate_by_subcategory(self, subcategory_id: Any) -> int:
        """Deactivate every active product of a subcategory."""

    @abstractmethod
    def count_by_category(self, category_id: Any) -> int:
        """Number of products under a category."""

    @abstractmethod
    def count_by_subcategory(self, subcategory_id: Any) -> int:
        """Number of products owned by a subcategory."""

    @abstractmethod
    def decrement_stock(self, id: Any, quantity: int) -> bool:
        """Atomic conditional decrement; ``False`` when stock < quantity."""

    @abstractmethod
    def increment_stock(self, id: Any, quantity: int) -> bool:
        """Atomic increment; ``False`` when the product no longer exists."""
