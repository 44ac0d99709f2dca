"""Active-flag cascade over the catalog hierarchy.

Deactivation flows downwards inside one transaction; reactivation flips a
single node and leaves its descendants as they are.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from django.db import transaction

from modules.catalog.constants import NodeKind
from modules.catalog.dtos import AffectedCounts
from modules.core.exceptions import FieldValidationError, NotFound

if TYPE_CHECKING:
    from modules.catalog.repositories.interfaces import (
        ICategoryRepository,
        IProductRepository,
        ISubcategoryRepository,
    )

logger = structlog.get_logger(__name__)


class CascadeService:
    def __init__(
        self,
        category_repository: ICategoryRepository,
        subcategory_repository: ISubcategoryRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._category_repo = category_repository
        self._subcategory_repo = subcategory_repository
        self._product_repo = product_repository

    @transaction.atomic
    def set_active(self, node_kind: str, node_id: Any, active: bool) -> AffectedCounts:
        """Set the ``active`` flag of a catalog node.

        Returns the number of descendant rows whose flag actually flipped.

        Raises:
            NotFound: the node does not exist.
            FieldValidationError: unknown node kind.
        """
        log = logger.bind(node_kind=node_kind, node_id=str(node_id), active=active)

        if node_kind == NodeKind.CATEGORY:
            if not self._category_repo.get_for_update(node_id):
                raise NotFound(f"Category {node_id} not found.")
            self._category_repo.set_active(node_id, active)
            if active:
                counts = AffectedCounts()
            else:
                counts = AffectedCounts(
                    subcategories=self._subcategory_repo.deactivate_by_category(node_id),
                    products=self._product_repo.deactivate_by_category(node_id),
                )

        elif node_kind == NodeKind.SUBCATEGORY:
            if not self._subcategory_repo.get_for_update(node_id):
                raise NotFound(f"Subcategory {node_id} not found.")
            self._subcategory_repo.set_active(node_id, active)
            if active:
                counts = AffectedCounts()
            else:
                counts = AffectedCounts(
                    products=self._product_repo.deactivate_by_subcategory(node_id)
                )

        elif node_kind == NodeKind.PRODUCT:
            if not self._product_repo.get_by_id(node_id):
                raise NotFound(f"Product {node_id} not found.")
            self._product_repo.set_active(node_id, active)
            counts = AffectedCounts()

        else:
            raise FieldValidationError(
                errors={"node_kind": f"Unknown kind '{node_kind}'."}
            )

        log.info(
            "catalog.cascade_applied",
            subcategories=counts.subcategories,
            products=counts.products,
        )
        return counts
