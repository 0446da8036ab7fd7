from django.urls import path, include
from rest_framework.routers import SimpleRouter

from . import views

router = SimpleRouter()
router.register(r'admin/coupons', views.AdminCouponViewSet, basename='admin-coupon')

urlpatterns = [
    path('coupons/validate/', views.validate_coupon, name='coupon_validate'),
    path('', include(router.urls)),
]
