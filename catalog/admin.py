"""
Admin configuration for the Catalog app.
"""

from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin configuration for Product model."""
    
    list_display = ('title', 'price', 'is_active', 'updated_at')
    list_filter = ('is_active',)
    search_fields = ('title', 'id')
    readonly_fields = ('id', 'created_at', 'updated_at')
    ordering = ('-created_at',)
