"""URL configuration for the fleet availability engine.

Only the Django admin is routed; quotes and reservations are driven
through the command handlers and Celery tasks.
"""
from django.contrib import admin  # type: ignore
from django.urls import path  # type: ignore

urlpatterns = [
    path('admin/', admin.site.urls),
]
