"""Generic repository interface (Dependency Inversion Principle).

Provides ``IRepository[T]``, the base abstract class that every
domain-specific repository interface extends.  Engines (cascade, cart,
order, referential guard) depend on these abstractions and receive the
Django ORM implementations through their constructors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    Look-ups follow the Null Object pattern: a missing row (or a malformed
    id) yields ``None``, never an exception.  Translating absence into a
    ``NotFound`` error is the service's decision.
    """

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[T]:
        """Retrieve an entity by its primary key."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """List entities with optional ORM look-up filters."""

    @abstractmethod
    def save(self, entity: T, update_fields: Optional[List[str]] = None) -> T:
        """Persist (create or update) an entity.

        ``update_fields`` restricts an update to the named columns.
        """

    @abstractmethod
    def delete(self, id: Any) -> bool:
        """Physically remove an entity; ``False`` when it does not exist."""
