from django.contrib import admin
from import_export import resources, fields
from import_export.admin import ExportMixin

from .models import Order, OrderItem, OrderStatus
from .services import OrderService


class OrderResource(resources.ModelResource):
    """Export-only resource for the finance spreadsheet."""

    coupon_code = fields.Field(column_name='coupon', attribute='coupon__code')
    items_count = fields.Field(column_name='items')

    class Meta:
        model = Order
        fields = (
            'id', 'email', 'status', 'payment_provider', 'payment_status',
            'subtotal', 'discount_amount', 'total', 'coupon_code', 'items_count',
            'created_at', 'paid_at'
        )
        export_order = fields

    def dehydrate_items_count(self, order):
        return order.items.count()


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['name', 'product', 'variation', 'price', 'quantity', 'total']
    readonly_fields = ['name', 'product', 'variation', 'price', 'quantity', 'total']
    can_delete = False


@admin.register(Order)
class OrderAdmin(ExportMixin, admin.ModelAdmin):
    resource_class = OrderResource
    list_display = [
        'short_id', 'email', 'status', 'payment_provider',
        'payment_status', 'total', 'created_at', 'paid_at'
    ]
    list_filter = ['status', 'payment_provider', 'created_at']
    search_fields = ['id', 'email', 'payment_id', 'stripe_payment_intent_id']
    date_hierarchy = 'created_at'
    readonly_fields = [
        'id', 'user', 'email', 'subtotal', 'discount_amount', 'total',
        'currency', 'payment_provider', 'payment_id', 'stripe_payment_intent_id',
        'payment_status', 'coupon', 'paid_at', 'confirmation_sent_at',
        'created_at', 'updated_at'
    ]
    inlines = [OrderItemInline]
    actions = ['mark_completed', 'mark_cancelled', 'resend_confirmation']

    fieldsets = (
        (None, {
            'fields': ('id', 'user', 'email', 'status')
        }),
        ('Valores', {
            'fields': ('subtotal', 'discount_amount', 'total', 'currency', 'coupon')
        }),
        ('Pagamento', {
            'fields': (
                'payment_provider', 'payment_id', 'stripe_payment_intent_id',
                'payment_status', 'paid_at', 'confirmation_sent_at'
            )
        }),
        ('Datas', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    @admin.display(description='Pedido')
    def short_id(self, obj):
        return f"#{obj.short_id}"

    def save_model(self, request, obj, form, change):
        # Status edits go through the same side effects as webhooks
        if change and 'status' in form.changed_data:
            new_status = obj.status
            obj.status = form.initial.get('status')
            OrderService.update_status(obj, new_status)
            return
        super().save_model(request, obj, form, change)

    @admin.action(description='Marcar como concluído')
    def mark_completed(self, request, queryset):
        changed = sum(OrderService.update_status(order, OrderStatus.COMPLETED) for order in queryset)
        self.message_user(request, f'{changed} pedido(s) concluído(s).')

    @admin.action(description='Marcar como cancelado')
    def mark_cancelled(self, request, queryset):
        changed = sum(OrderService.update_status(order, OrderStatus.CANCELLED) for order in queryset)
        self.message_user(request, f'{changed} pedido(s) cancelado(s).')

    @admin.action(description='Reenviar e-mail de confirmação')
    def resend_confirmation(self, request, queryset):
        sent = sum(
            OrderService.send_confirmation_safely(order)
            for order in queryset if order.is_paid
        )
        self.message_user(request, f'{sent} e-mail(s) enviado(s).')
