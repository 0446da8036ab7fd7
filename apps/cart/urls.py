from django.urls import path

from . import views

urlpatterns = [
    path('cart/', views.cart_detail, name='cart_detail'),
    path('cart/items/', views.cart_add, name='cart_add'),
    path('cart/items/<str:item_key>/', views.cart_item, name='cart_item'),
]
