"""URL configuration for the linkstats app.

This module defines the URL patterns for the app's JSON API. It also
specifies the ``app_name`` to allow namespacing from the project URL
configuration.
"""

from django.urls import path

from . import views

app_name = 'linkstats'

urlpatterns = [
    path('seo-stats/', views.seo_stats, name='seo_stats'),
    path('seo-stats/calculate-links/', views.calculate_links, name='calculate_links'),
]
