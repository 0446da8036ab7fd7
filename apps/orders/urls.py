from django.urls import path

from . import views

urlpatterns = [
    path('orders/my-orders/', views.my_orders, name='my_orders'),
    path('orders/status/', views.order_status, name='order_status'),
    path('orders/by-payment-intent/', views.order_by_payment_intent, name='order_by_payment_intent'),
    path('orders/cancel/', views.cancel_order, name='order_cancel'),
    path('orders/send-confirmation/', views.send_confirmation, name='order_send_confirmation'),
    path('orders/<uuid:order_id>/', views.order_detail, name='order_detail'),

    # Admin
    path('admin/orders/', views.admin_orders, name='admin_orders'),
    path('admin/orders/<uuid:order_id>/', views.admin_order_detail, name='admin_order_detail'),
]
