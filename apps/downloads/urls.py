from django.urls import path

from . import views

urlpatterns = [
    path('downloads/generate-link/', views.generate_link, name='download_generate_link'),
    path('orders/download/', views.order_download, name='order_download'),

    # Admin
    path('admin/files/', views.admin_files, name='admin_files'),
]
