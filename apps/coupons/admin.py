from django.contrib import admin

from .models import Coupon, CouponRedemption


class CouponRedemptionInline(admin.TabularInline):
    model = CouponRedemption
    extra = 0
    fields = ['order', 'user', 'amount_discounted', 'used_at']
    readonly_fields = ['order', 'user', 'amount_discounted', 'used_at']
    can_delete = False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = [
        'code', 'type', 'value', 'applies_to', 'used_count',
        'max_uses', 'is_active', 'starts_at', 'ends_at'
    ]
    list_filter = ['type', 'applies_to', 'is_active']
    list_editable = ['is_active']
    search_fields = ['code']
    readonly_fields = ['used_count', 'created_by', 'created_at', 'updated_at']
    filter_horizontal = ['products', 'variations']
    inlines = [CouponRedemptionInline]

    fieldsets = (
        (None, {
            'fields': ('code', 'type', 'value', 'is_active', 'stackable')
        }),
        ('Limites', {
            'fields': ('min_subtotal', 'max_uses', 'max_uses_per_user', 'used_count')
        }),
        ('Validade', {
            'fields': ('starts_at', 'ends_at')
        }),
        ('Aplicação', {
            'fields': ('applies_to', 'products', 'variations')
        }),
        ('Datas', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def save_model(self, request, obj, form, change):
        if not change:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(CouponRedemption)
class CouponRedemptionAdmin(admin.ModelAdmin):
    list_display = ['coupon', 'order', 'user', 'amount_discounted', 'used_at']
    list_filter = ['coupon']
    search_fields = ['coupon__code', 'user__email']
    readonly_fields = ['coupon', 'order', 'user', 'amount_discounted', 'used_at']
