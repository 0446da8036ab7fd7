from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'is_active', 'date_joined']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['email', 'name', 'username']
    ordering = ['-date_joined']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Loja', {
            'fields': ('name', 'role')
        }),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Loja', {
            'fields': ('email', 'name', 'role')
        }),
    )
