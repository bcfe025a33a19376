"""
Celery configuration for the gift-shop storefront.

``DJANGO_SETTINGS_MODULE`` is set before the app is created so Celery reads
the Django settings (``CELERY_`` prefix).  The only task family today is the
checkout reconciliation saga (``checkout.reconcile_sale``).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("giftshop")

# Read Django settings with the CELERY_ prefix
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discover tasks.py in every installed app
app.autodiscover_tasks()
