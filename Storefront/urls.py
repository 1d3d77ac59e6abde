"""
URL configuration for the Storefront project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.1/topics/http/urls/
"""

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/wallet/', include('wallet.urls', namespace='wallet')),
    # DRF browsable API auth (login/logout)
    path('api-auth/', include('rest_framework.urls', namespace='rest_framework')),
]

# Serve generated receipts in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
