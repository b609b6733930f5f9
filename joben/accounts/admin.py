from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User, Profile


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (
        ("Joben", {"fields": ("role", "full_name", "company_name")}),
    )
    list_display = ("email", "role", "full_name", "company_name", "is_active", "is_staff")
    search_fields = ("email", "full_name", "company_name")


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("email", "role", "full_name", "company_name", "created_at")
    list_filter = ("role",)
    search_fields = ("email", "full_name", "company_name")
    readonly_fields = ("created_at", "updated_at")
