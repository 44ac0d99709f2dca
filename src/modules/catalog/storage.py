"""File storage collaborator for product images.

``IFileStorage`` is what the catalog depends on; ``DjangoFileStorage``
adapts Django's configured ``default_storage`` (filesystem locally, any
``STORAGES["default"]`` backend in deployment).
"""

from __future__ import annotations

from typing import IO, Protocol

import structlog
from django.core.files.storage import Storage, default_storage
from django.utils import timezone
from django.utils.text import get_valid_filename

from modules.catalog.models import IMAGE_REF_PATTERN
from modules.core.exceptions import FieldValidationError

logger = structlog.get_logger(__name__)

IMAGE_UPLOAD_DIR = "products"


class IFileStorage(Protocol):
    def save(self, name: str, content: IO[bytes]) -> str: ...

    def delete(self, ref: str) -> None: ...


class DjangoFileStorage:
    """Stores images through a Django ``Storage`` backend."""

    def __init__(self, storage: Storage | None = None) -> None:
        self._storage = storage or default_storage

    def save(self, name: str, content: IO[bytes]) -> str:
        """Persist *content* and return a stable reference string.

        Raises:
            FieldValidationError: the file name has a disallowed extension.
        """
        if not IMAGE_REF_PATTERN.search(name or ""):
            raise FieldValidationError(
                errors={"image": "Image must be a JPG, JPEG, PNG or GIF file."}
            )
        stamped = f"{timezone.now():%Y%m%d%H%M%S%f}-{get_valid_filename(name)}"
        ref = self._storage.save(f"{IMAGE_UPLOAD_DIR}/{stamped}", content)
        logger.info("storage.file_saved", ref=ref)
        return ref

    def delete(self, ref: str) -> None:
        self._storage.delete(ref)
        logger.info("storage.file_deleted", ref=ref)
