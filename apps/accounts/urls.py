from django.urls import path

from . import views

urlpatterns = [
    path('auth/register/', views.register, name='register'),
    path('auth/login/', views.login_view, name='login'),
    path('auth/logout/', views.logout_view, name='logout'),
    path('auth/me/', views.me, name='me'),

    # Admin
    path('admin/users/', views.admin_users, name='admin_users'),
    path('admin/users/promote/', views.admin_promote_user, name='admin_promote_user'),
]
