"""Cart repository interface.

The Order Engine consumes the same contract when converting a cart into
an order (``lock_for_user`` + ``clear``).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.cart.models import CartLine


class ICartRepository(IRepository["CartLine"]):
    @abstractmethod
    def get_line(self, user_id: Any, product_id: Any) -> Optional[CartLine]:
        """Retrieve the line for a (user, product) pair."""

    @abstractmethod
    def get_line_for_update(self, user_id: Any, product_id: Any) -> Optional[CartLine]:
        """Retrieve the line for a (user, product) pair with a row lock."""

    @abstractmethod
    def list_for_user(self, user_id: Any) -> List[CartLine]:
        """All lines of a user's cart, product loaded."""

    @abstractmethod
    def lock_for_user(self, user_id: Any) -> List[CartLine]:
        """Lock a user's cart lines, ordered by product id."""

    @abstractmethod
    def remove(self, user_id: Any, product_id: Any) -> int:
        """Delete one line; returns rows deleted (0 when absent)."""

    @abstractmethod
    def clear(self, user_id: Any) -> int:
        """Delete every line of a user's cart; returns rows deleted."""
