from django.contrib import admin

from core.admin_mixins import IncludeSoftDeletedAdminMixin

from .models import Client


@admin.register(Client)
class ClientAdmin(IncludeSoftDeletedAdminMixin, admin.ModelAdmin):
    list_display = ("display_name", "client_type", "email", "phone", "deleted_at")
    list_filter = ("client_type",)
    search_fields = ("company_name", "first_name", "last_name", "email")
