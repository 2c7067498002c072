"""
URL configuration for the socialapi project.

The ``social`` app owns every ``/api/`` route; the admin is kept for staff.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("social.urls")),
]

handler404 = "social.views.not_found"
handler500 = "social.views.server_error"
