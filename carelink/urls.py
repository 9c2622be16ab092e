"""
URL configuration for the CareLink backend project.

The `urlpatterns` list routes URLs to views. This module includes the
Django admin, the API and page routes provided by the clinic app, and
the OpenAPI documentation at ``/swagger/`` and ``/redoc/``.
"""
from django.contrib import admin
from django.urls import path, include

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

api_info = openapi.Info(
    title="CareLink API",
    default_version='v1',
    description="Profiles, teleconsultation sessions and clinical records for the CareLink portals.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
    authentication_classes=(),
)

urlpatterns = [
    # Django admin site (useful for development); /admin/ belongs to the admin dashboard page
    path('django-admin/', admin.site.urls),
    path('', include('clinic.routers')),
    # Swagger and ReDoc
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
