"""
Catalog app configuration.
"""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Configuration for the Catalog app."""
    
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'catalog'
    verbose_name = 'Product Catalog'
