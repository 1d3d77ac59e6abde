"""
Celery application for the Storefront project.

Workers are started with:
    celery -A Storefront worker -l info
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'Storefront.settings')

app = Celery('Storefront')

# All CELERY_* keys in Django settings configure the app
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
