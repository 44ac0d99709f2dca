"""Referential guard: RESTRICT semantics for catalog and order deletes.

Hard deletes are only allowed for leaf rows without history:

- Category: no subcategories (and no products).
- Subcategory: no products.
- Product: not referenced by any order line.  Its image is released after
  the delete commits; a failed release is logged, never raised.
- Order: never (cancellation is the only removal path).

Callers blocked by ``HasDependents`` / ``ReferencedByOrders`` should
deactivate the node instead (``CascadeService.set_active``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

import structlog
from django.db import transaction

from modules.catalog.constants import NodeKind
from modules.core.exceptions import (
    FieldValidationError,
    HasDependents,
    NotFound,
    ReferencedByOrders,
    UnsupportedOperation,
)

if TYPE_CHECKING:
    from modules.catalog.repositories.interfaces import (
        ICategoryRepository,
        IProductRepository,
        ISubcategoryRepository,
    )
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

ORDER_KIND = "order"


def _default_release(ref: str) -> Any:
    from modules.catalog.tasks import release_stored_file

    return release_stored_file.delay(ref)


def release_after_commit(
    ref: str, release: Optional[Callable[[str], Any]] = None
) -> None:
    """Release a stored file once the current transaction commits.

    The callback never propagates errors: the primary change is already
    committed when it runs.
    """
    if not ref:
        return
    release = release or _default_release

    def _release() -> None:
        try:
            release(ref)
        except Exception as exc:
            logger.warning("catalog.image_release_failed", ref=ref, error=str(exc))

    transaction.on_commit(_release)


class ReferentialGuard:
    """Checks and performs hard deletes for catalog nodes and orders."""

    def __init__(
        self,
        category_repository: ICategoryRepository,
        subcategory_repository: ISubcategoryRepository,
        product_repository: IProductRepository,
        order_repository: IOrderRepository,
        release_file: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._category_repo = category_repository
        self._subcategory_repo = subcategory_repository
        self._product_repo = product_repository
        self._order_repo = order_repository
        self._release_file = release_file

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @transaction.atomic
    def can_delete(self, entity_kind: str, id: Any) -> bool:
        """Return ``True`` when ``delete`` would succeed.

        Raises:
            NotFound: the entity does not exist.
            FieldValidationError: unknown entity kind.
        """
        try:
            self._check(entity_kind, id)
        except (HasDependents, ReferencedByOrders, UnsupportedOperation):
            return False
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def delete(self, entity_kind: str, id: Any) -> None:
        """Physically delete a catalog node after the dependency checks.

        Raises:
            NotFound: the entity does not exist.
            HasDependents: category/subcategory still has children.
            ReferencedByOrders: product appears in order history.
            UnsupportedOperation: orders are never deleted.
        """
        entity = self._check(entity_kind, id)
        log = logger.bind(entity_kind=entity_kind, entity_id=str(id))

        if entity_kind == NodeKind.CATEGORY:
            self._category_repo.delete(id)
        elif entity_kind == NodeKind.SUBCATEGORY:
            self._subcategory_repo.delete(id)
        else:
            image_ref = entity.image_ref
            self._product_repo.delete(id)
            release_after_commit(image_ref, self._release_file)

        log.info("catalog.deleted")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check(self, entity_kind: str, id: Any) -> Any:
        if entity_kind == ORDER_KIND:
            raise UnsupportedOperation(
                "Orders cannot be deleted; cancel the order instead."
            )

        if entity_kind == NodeKind.CATEGORY:
            category = self._category_repo.get_for_update(id)
            if not category:
                raise NotFound(f"Category {id} not found.")
            count = self._subcategory_repo.count_by_category(
                id
            ) or self._product_repo.count_by_category(id)
            if count:
                raise HasDependents(
                    f"Category has {count} dependent record(s); "
                    "deactivate it instead of deleting it.",
                    count=count,
                )
            return category

        if entity_kind == NodeKind.SUBCATEGORY:
            subcategory = self._subcategory_repo.get_for_update(id)
            if not subcategory:
                raise NotFound(f"Subcategory {id} not found.")
            count = self._product_repo.count_by_subcategory(id)
            if count:
                raise HasDependents(
                    f"Subcategory has {count} product(s); "
                    "deactivate it instead of deleting it.",
                    count=count,
                )
            return subcategory

        if entity_kind == NodeKind.PRODUCT:
            product = self._product_repo.get_by_id(id)
            if not product:
                raise NotFound(f"Product {id} not found.")
            if self._order_repo.has_lines_for_product(id):
                raise ReferencedByOrders(
                    f"Product {id} is referenced by orders; "
                    "deactivate it instead of deleting it."
                )
            return product

        raise FieldValidationError(errors={"entity_kind": f"Unknown kind '{entity_kind}'."})
