from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('apps.accounts.urls')),
    path('api/', include('apps.catalog.api.urls')),
    path('api/', include('apps.cart.urls')),
    path('api/', include('apps.coupons.urls')),
    path('api/', include('apps.orders.urls')),
    path('api/', include('apps.payments.urls')),
    path('api/', include('apps.downloads.urls')),
    path('api/', include('apps.dashboard.urls')),
]
