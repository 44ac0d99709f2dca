"""Unit tests for the active-flag cascade.

Covers:
- Category deactivation flips subcategories and products below it.
- Subcategory deactivation flips its direct products only.
- Reactivation never propagates downwards.
- Counts include only rows whose flag actually changed.
- Unknown nodes and failures roll back the whole toggle.
"""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock

import pytest

from modules.catalog.cascade import CascadeService
from modules.catalog.constants import NodeKind
from modules.catalog.models import Category, Product, Subcategory
from modules.core.exceptions import FieldValidationError, NotFound

pytestmark = pytest.mark.unit


@pytest.fixture()
def catalog_tree(beverages, soda, juice, make_product):
    """Beverages > {Soda: Cola, Lemon Soda; Juice: Orange Juice}."""
    return {
        "cola": make_product(name="Cola"),
        "lemon": make_product(name="Lemon Soda"),
        "orange": make_product(name="Orange Juice", subcategory=juice),
    }


def _active(model, obj) -> bool:
    return model.objects.get(pk=obj.pk).active


class TestCategoryCascade:
    def test_deactivating_category_deactivates_everything_below(
        self, cascade_service, beverages, soda, juice, catalog_tree
    ):
        counts = cascade_service.set_active(NodeKind.CATEGORY, beverages.id, False)

        assert counts.subcategories == 2
        assert counts.products == 3
        assert not _active(Category, beverages)
        assert not _active(Subcategory, soda)
        assert not _active(Subcategory, juice)
        assert Product.objects.filter(active=True).count() == 0

    def test_counts_only_rows_actually_flipped(
        self, cascade_service, beverages, juice, catalog_tree
    ):
        juice.active = False
        juice.save()
        Product.objects.filter(pk=catalog_tree["cola"].pk).update(active=False)

        counts = cascade_service.set_active(NodeKind.CATEGORY, beverages.id, False)

        assert counts.subcategories == 1
        assert counts.products == 2

    def test_deactivating_twice_reports_zero(self, cascade_service, beverages, catalog_tree):
        cascade_service.set_active(NodeKind.CATEGORY, beverages.id, False)
        counts = cascade_service.set_active(NodeKind.CATEGORY, beverages.id, False)
        assert (counts.subcategories, counts.products) == (0, 0)

    def test_reactivating_category_leaves_descendants_inactive(
        self, cascade_service, beverages, soda, catalog_tree
    ):
        cascade_service.set_active(NodeKind.CATEGORY, beverages.id, False)

        counts = cascade_service.set_active(NodeKind.CATEGORY, beverages.id, True)

        assert (counts.subcategories, counts.products) == (0, 0)
        assert _active(Category, beverages)
        assert not _active(Subcategory, soda)
        assert not _active(Product, catalog_tree["cola"])

    def test_other_categories_untouched(self, cascade_service, beverages, catalog_tree):
        snacks = Category.objects.create(name="Snacks")
        chips = Subcategory.objects.create(category=snacks, name="Chips")

        cascade_service.set_active(NodeKind.CATEGORY, beverages.id, False)

        assert _active(Category, snacks)
        assert _active(Subcategory, chips)


class TestSubcategoryCascade:
    def test_deactivating_subcategory_deactivates_its_products(
        self, cascade_service, beverages, soda, catalog_tree
    ):
        counts = cascade_service.set_active(NodeKind.SUBCATEGORY, soda.id, False)

        assert counts.subcategories == 0
        assert counts.products == 2
        assert not _active(Product, catalog_tree["cola"])
        assert _active(Product, catalog_tree["orange"])
        assert _active(Category, beverages)

    def test_reactivating_subcategory_does_not_touch_products(
        self, cascade_service, soda, catalog_tree
    ):
        cascade_service.set_active(NodeKind.SUBCATEGORY, soda.id, False)
        cascade_service.set_active(NodeKind.SUBCATEGORY, soda.id, True)

        assert _active(Subcategory, soda)
        assert not _active(Product, catalog_tree["cola"])


class TestProductToggle:
    def test_product_toggle_flips_only_that_product(self, cascade_service, catalog_tree):
        counts = cascade_service.set_active(
            NodeKind.PRODUCT, catalog_tree["cola"].id, False
        )

        assert (counts.subcategories, counts.products) == (0, 0)
        assert not _active(Product, catalog_tree["cola"])
        assert _active(Product, catalog_tree["lemon"])

    def test_product_reactivation(self, cascade_service, catalog_tree):
        cola = catalog_tree["cola"]
        cascade_service.set_active(NodeKind.PRODUCT, cola.id, False)
        cascade_service.set_active(NodeKind.PRODUCT, cola.id, True)
        assert _active(Product, cola)


class TestErrors:
    @pytest.mark.parametrize(
        "kind", [NodeKind.CATEGORY, NodeKind.SUBCATEGORY, NodeKind.PRODUCT]
    )
    def test_unknown_node_raises_not_found(self, cascade_service, kind):
        with pytest.raises(NotFound):
            cascade_service.set_active(kind, uuid.uuid4(), False)

    def test_malformed_id_raises_not_found(self, cascade_service):
        with pytest.raises(NotFound):
            cascade_service.set_active(NodeKind.CATEGORY, "not-a-uuid", False)

    def test_unknown_kind_rejected(self, cascade_service, beverages):
        with pytest.raises(FieldValidationError):
            cascade_service.set_active("order", beverages.id, False)

    def test_failure_rolls_back_whole_toggle(self, repositories, beverages, soda, catalog_tree):
        product_repo = MagicMock(wraps=repositories["product"])
        product_repo.deactivate_by_category.side_effect = RuntimeError("boom")
        service = CascadeService(
            category_repository=repositories["category"],
            subcategory_repository=repositories["subcategory"],
            product_repository=product_repo,
        )

        with pytest.raises(RuntimeError):
            service.set_active(NodeKind.CATEGORY, beverages.id, False)

        assert _active(Category, beverages)
        assert _active(Subcategory, soda)
        assert _active(Product, catalog_tree["cola"])
