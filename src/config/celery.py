"""
Celery application for the catalog & ordering service.

DJANGO_SETTINGS_MODULE is set before the app is created so Celery reads
the Django settings (``CELERY_`` prefix).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("catalog_ordering")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up modules.catalog.tasks (best-effort image release).
app.autodiscover_tasks()
