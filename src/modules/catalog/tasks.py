"""Asynchronous catalog tasks."""

import structlog
from celery import shared_task

from modules.catalog.storage import DjangoFileStorage

logger = structlog.get_logger(__name__)


@shared_task(name="catalog.release_stored_file")
def release_stored_file(ref: str) -> dict:
    """Delete a stored product image.

    Best-effort: the catalog row is already gone when this runs, so a
    storage failure is logged and reported in the result, never re-raised.
    """
    try:
        DjangoFileStorage().delete(ref)
    except Exception as exc:
        logger.warning("catalog.image_release_failed", ref=ref, error=str(exc))
        return {"status": "failed", "ref": ref}
    return {"status": "released", "ref": ref}
