"""Root URL configuration for linkstats_tool."""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('linkstats.urls')),
]
