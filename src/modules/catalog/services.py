"""Catalog service layer (Use Cases).

Orchestrates the Category → Subcategory → Product hierarchy, delegating
persistence to the injected repositories.

Business rules enforced here:
- Category names are unique; subcategory names are unique per category.
- A subcategory can only be created under an existing, active category.
- A product can only be created under an existing, active subcategory whose
  category is active; its category always matches the subcategory's.
- Replacing a product image releases the previous file after commit.
- Manual stock decreases never take stock below zero.

Updates lock the row and write only the columns they change, so a
concurrent checkout or cascade is never overwritten.  ``active`` is never
changed here; see ``modules.catalog.cascade``.
"""

from __future__ import annotations

from typing import IO, TYPE_CHECKING, Any, Callable, Dict, List, Optional

import structlog
from django.db import IntegrityError, transaction

from modules.catalog.constants import StockOperation
from modules.catalog.dtos import (
    CategoryStatsDTO,
    StockAdjustmentDTO,
    SubcategoryStatsDTO,
)
from modules.catalog.guard import release_after_commit
from modules.catalog.models import Category, Product, Subcategory
from modules.core.exceptions import (
    FieldValidationError,
    Inactive,
    InsufficientStock,
    NotFound,
)

if TYPE_CHECKING:
    from modules.catalog.dtos import (
        AdjustStockDTO,
        CreateCategoryDTO,
        CreateProductDTO,
        CreateSubcategoryDTO,
        UpdateCategoryDTO,
        UpdateProductDTO,
        UpdateSubcategoryDTO,
    )
    from modules.catalog.repositories.interfaces import (
        ICategoryRepository,
        IProductRepository,
        ISubcategoryRepository,
    )
    from modules.catalog.storage import IFileStorage

logger = structlog.get_logger(__name__)


class CatalogService:
    """Application service for catalog use-cases.

    Receives its repositories and file storage via constructor injection.
    """

    def __init__(
        self,
        category_repository: ICategoryRepository,
        subcategory_repository: ISubcategoryRepository,
        product_repository: IProductRepository,
        file_storage: Optional[IFileStorage] = None,
        release_file: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._category_repo = category_repository
        self._subcategory_repo = subcategory_repository
        self._product_repo = product_repository
        self._storage = file_storage
        self._release_file = release_file

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_category(self, dto: CreateCategoryDTO) -> Category:
        """Create a category.

        Raises:
            FieldValidationError: the name is already taken.
        """
        self._ensure_category_name_free(dto.name)
        category = Category(name=dto.name, description=dto.description)
        category = self._save_unique(self._category_repo, category)
        logger.info("category.created", category_id=str(category.id))
        return category

    @transaction.atomic
    def update_category(self, id: Any, dto: UpdateCategoryDTO) -> Category:
        category = self._category_repo.get_for_update(id)
        if not category:
            raise NotFound(f"Category {id} not found.")

        changed: List[str] = []
        if dto.name is not None and dto.name != category.name:
            self._ensure_category_name_free(dto.name)
            category.name = dto.name
            changed.append("name")
        if dto.description is not None:
            category.description = dto.description
            changed.append("description")
        if changed:
            category = self._save_unique(self._category_repo, category, changed)
        logger.info("category.updated", category_id=str(id), fields=changed)
        return category

    def get_category(self, id: Any) -> Category:
        category = self._category_repo.get_by_id(id)
        if not category:
            raise NotFound(f"Category {id} not found.")
        return category

    def list_categories(self, filters: Optional[Dict[str, Any]] = None) -> List[Category]:
        return self._category_repo.list(filters)

    def category_stats(self, id: Any) -> CategoryStatsDTO:
        """Counts of active/inactive children and the stock value of a category."""
        category = self.get_category(id)
        return CategoryStatsDTO(
            category_id=category.id, **self._category_repo.stats(category.id)
        )

    # ------------------------------------------------------------------
    # Subcategories
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_subcategory(self, dto: CreateSubcategoryDTO) -> Subcategory:
        """Create a subcategory under an active category.

        Raises:
            NotFound: the category does not exist.
            Inactive: the category is inactive.
            FieldValidationError: the name is taken within the category.
        """
        category = self._category_repo.get_by_id(dto.category_id)
        if not category:
            raise NotFound(f"Category {dto.category_id} not found.")
        if not category.active:
            raise Inactive(f"Category {dto.category_id} is inactive.")

        self._ensure_subcategory_name_free(category.id, dto.name)
        subcategory = Subcategory(
            category=category, name=dto.name, description=dto.description
        )
        subcategory = self._save_unique(self._subcategory_repo, subcategory)
        logger.info(
            "subcategory.created",
            subcategory_id=str(subcategory.id),
            category_id=str(category.id),
        )
        return subcategory

    @transaction.atomic
    def update_subcategory(self, id: Any, dto: UpdateSubcategoryDTO) -> Subcategory:
        subcategory = self._subcategory_repo.get_for_update(id)
        if not subcategory:
            raise NotFound(f"Subcategory {id} not found.")

        changed: List[str] = []
        if dto.name is not None and dto.name != subcategory.name:
            self._ensure_subcategory_name_free(subcategory.category_id, dto.name)
            subcategory.name = dto.name
            changed.append("name")
        if dto.description is not None:
            subcategory.description = dto.description
            changed.append("description")
        if changed:
            subcategory = self._save_unique(self._subcategory_repo, subcategory, changed)
        logger.info("subcategory.updated", subcategory_id=str(id), fields=changed)
        return subcategory

    def get_subcategory(self, id: Any) -> Subcategory:
        subcategory = self._subcategory_repo.get_by_id(id)
        if not subcategory:
            raise NotFound(f"Subcategory {id} not found.")
        return subcategory

    def list_subcategories(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[Subcategory]:
        return self._subcategory_repo.list(filters)

    def subcategory_stats(self, id: Any) -> SubcategoryStatsDTO:
        """Counts of active/inactive products, units in stock and stock value."""
        subcategory = self.get_subcategory(id)
        return SubcategoryStatsDTO(
            subcategory_id=subcategory.id, **self._subcategory_repo.stats(subcategory.id)
        )

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a product under an active subcategory.

        Raises:
            NotFound: the subcategory does not exist.
            FieldValidationError: ``category_id`` disagrees with the subcategory.
            Inactive: the subcategory or its category is inactive.
        """
        subcategory = self._subcategory_repo.get_by_id(dto.subcategory_id)
        if not subcategory:
            raise NotFound(f"Subcategory {dto.subcategory_id} not found.")
        if dto.category_id and dto.category_id != subcategory.category_id:
            raise FieldValidationError(
                errors={
                    "subcategory_id": "Subcategory does not belong to the selected category."
                }
            )
        self._ensure_parent_active(subcategory)

        product = Product(
            name=dto.name,
            description=dto.description,
            price=dto.price,
            stock=dto.stock,
            image_ref=dto.image_ref,
            subcategory=subcategory,
            category_id=subcategory.category_id,
        )
        product = self._product_repo.save(product)
        logger.info("product.created", product_id=str(product.id))
        return product

    @transaction.atomic
    def update_product(self, id: Any, dto: UpdateProductDTO) -> Product:
        """Update the supplied fields of a product.

        Moving a product to another subcategory also moves it to that
        subcategory's category; the target must be active.  An explicit
        ``stock`` overwrites the current value; use ``adjust_stock`` for
        relative changes.
        """
        product = self._product_repo.get_for_update(id)
        if not product:
            raise NotFound(f"Product {id} not found.")
        log = logger.bind(product_id=str(id))

        changed: List[str] = []
        for field in ("name", "description", "price", "stock"):
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)
                changed.append(field)

        if dto.subcategory_id is not None and dto.subcategory_id != product.subcategory_id:
            subcategory = self._subcategory_repo.get_by_id(dto.subcategory_id)
            if not subcategory:
                raise NotFound(f"Subcategory {dto.subcategory_id} not found.")
            self._ensure_parent_active(subcategory)
            product.subcategory = subcategory
            product.category = subcategory.category
            changed.extend(["subcategory", "category"])
            log = log.bind(subcategory_id=str(subcategory.id))

        if changed:
            product = self._product_repo.save(product, update_fields=changed)
        log.info("product.updated", fields=changed)
        return product

    @transaction.atomic
    def adjust_stock(self, id: Any, dto: AdjustStockDTO) -> StockAdjustmentDTO:
        """Add, remove or overwrite units of stock.

        Increases and decreases go through the same conditional ``F()``
        updates as checkout and cancellation.

        Raises:
            NotFound: the product does not exist.
            InsufficientStock: a decrease larger than the current stock.
        """
        product = self._product_repo.get_for_update(id)
        if not product:
            raise NotFound(f"Product {id} not found.")
        previous = product.stock

        if dto.operation == StockOperation.INCREASE:
            self._product_repo.increment_stock(product.id, dto.quantity)
            stock = previous + dto.quantity
        elif dto.operation == StockOperation.DECREASE:
            if not self._product_repo.decrement_stock(product.id, dto.quantity):
                logger.warning(
                    "product.stock_decrease_rejected",
                    product_id=str(id),
                    requested=dto.quantity,
                    available=previous,
                )
                raise InsufficientStock(
                    f"Requested {dto.quantity}, available {previous}.",
                    product_id=product.id,
                    requested=dto.quantity,
                    available=previous,
                )
            stock = previous - dto.quantity
        else:
            product.stock = dto.quantity
            self._product_repo.save(product, update_fields=["stock"])
            stock = dto.quantity

        logger.info(
            "product.stock_adjusted",
            product_id=str(id),
            operation=dto.operation,
            previous_stock=previous,
            stock=stock,
        )
        return StockAdjustmentDTO(
            product_id=product.id,
            operation=dto.operation,
            previous_stock=previous,
            stock=stock,
        )

    @transaction.atomic
    def set_product_image(self, id: Any, name: str, content: IO[bytes]) -> Product:
        """Store a new image for a product and release the previous one.

        The previous file is released only after the transaction commits.

        Raises:
            NotFound: the product does not exist.
            FieldValidationError: the file extension is not allowed.
        """
        product = self._product_repo.get_for_update(id)
        if not product:
            raise NotFound(f"Product {id} not found.")
        if self._storage is None:
            from modules.catalog.storage import DjangoFileStorage

            self._storage = DjangoFileStorage()

        previous = product.image_ref
        product.image_ref = self._storage.save(name, content)
        product = self._product_repo.save(product, update_fields=["image_ref"])
        if previous and previous != product.image_ref:
            release_after_commit(previous, self._release_file)

        logger.info("product.image_replaced", product_id=str(id), ref=product.image_ref)
        return product

    def get_product(self, id: Any) -> Product:
        product = self._product_repo.get_with_chain(id)
        if not product:
            raise NotFound(f"Product {id} not found.")
        return product

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        return self._product_repo.list(filters)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_category_name_free(self, name: str) -> None:
        if self._category_repo.get_by_name(name):
            logger.warning("category.duplicate_name", name=name)
            raise FieldValidationError(
                errors={"name": f"Category '{name.strip()}' already exists."}
            )

    def _ensure_subcategory_name_free(self, category_id: Any, name: str) -> None:
        if self._subcategory_repo.get_by_name(category_id, name):
            logger.warning(
                "subcategory.duplicate_name", name=name, category_id=str(category_id)
            )
            raise FieldValidationError(
                errors={"name": f"Subcategory '{name.strip()}' already exists in this category."}
            )

    @staticmethod
    def _ensure_parent_active(subcategory: Subcategory) -> None:
        if not subcategory.active:
            raise Inactive(f"Subcategory {subcategory.id} is inactive.")
        if not subcategory.category.active:
            raise Inactive(f"Category {subcategory.category_id} is inactive.")

    @staticmethod
    def _save_unique(
        repository: Any, entity: Any, update_fields: Optional[List[str]] = None
    ) -> Any:
        # A concurrent insert can pass the lookup and still hit the constraint.
        try:
            return repository.save(entity, update_fields=update_fields)
        except IntegrityError as exc:
            raise FieldValidationError(errors={"name": "Name already exists."}) from exc
