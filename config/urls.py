from django.contrib import admin
from django.urls import path

from core import views_health


admin.site.site_header = "Deskbook"
admin.site.site_title = "Deskbook"

urlpatterns = [
    # Health check (safe for monitors)
    path("health/", views_health.health, name="health"),
    path("admin/", admin.site.urls),
]
