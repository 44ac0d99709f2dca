"""Catalog domain constants."""

from django.db import models


class NodeKind(models.TextChoices):
    CATEGORY = "category", "Category"
    SUBCATEGORY = "subcategory", "Subcategory"
    PRODUCT = "product", "Product"


ALLOWED_IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif")

CATEGORY_NAME_MIN_LENGTH = 2
CATEGORY_NAME_MAX_LENGTH = 100
PRODUCT_NAME_MIN_LENGTH = 2
PRODUCT_NAME_MAX_LENGTH = 200


class StockOperation(models.TextChoices):
    INCREASE = "increase", "Increase"
    DECREASE = "decrease", "Decrease"
    SET = "set", "Set"
