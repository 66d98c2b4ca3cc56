"""
URL configuration for the fantasy league project.

Only the Django admin is routed here; the public API is served elsewhere
and talks to the engine through `league.processing`.
"""
from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
