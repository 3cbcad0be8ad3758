from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "external_id", "role", "is_active")
    list_filter = ("role", "is_active")
    search_fields = ("username", "email", "external_id")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Identity", {"fields": ("external_id", "image_url", "role")}),
    )
