from django.contrib import admin

from .models import DownloadLog


@admin.register(DownloadLog)
class DownloadLogAdmin(admin.ModelAdmin):
    list_display = ['order_item', 'user', 'order', 'file', 'ip', 'downloaded_at']
    list_filter = ['downloaded_at']
    search_fields = ['user__email', 'order__id', 'ip']
    date_hierarchy = 'downloaded_at'
    list_select_related = ['user', 'order', 'order_item', 'file']
    readonly_fields = ['user', 'order', 'order_item', 'file', 'ip', 'user_agent', 'downloaded_at']

    def has_add_permission(self, request):
        return False
