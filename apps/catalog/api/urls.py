from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    ProductViewSet,
    CategoryViewSet,
    AdminProductViewSet,
    AdminAttributeViewSet,
    AdminCategoryViewSet,
    AdminImageView,
)

router = DefaultRouter()
router.register(r'products', ProductViewSet, basename='product')
router.register(r'categories', CategoryViewSet, basename='category')
router.register(r'admin/products', AdminProductViewSet, basename='admin-product')
router.register(r'admin/attributes', AdminAttributeViewSet, basename='admin-attribute')
router.register(r'admin/categories', AdminCategoryViewSet, basename='admin-category')

urlpatterns = [
    path('admin/media/images/', AdminImageView.as_view(), name='admin-media-images'),
    path('', include(router.urls)),
]
