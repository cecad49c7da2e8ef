"""
URL routing for account API endpoints.
"""
from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    # Customers
    path('auth/register/', views.CustomerRegisterView.as_view(), name='customer-register'),
    path('auth/login/', views.CustomerLoginView.as_view(), name='customer-login'),
    path('auth/me/', views.CustomerMeView.as_view(), name='customer-me'),
    path('user/', views.CustomerProfileView.as_view(), name='customer-profile'),

    # Store admins
    path('admin/auth/register/', views.StoreAdminRegisterView.as_view(), name='admin-register'),
    path('admin/auth/login/', views.StoreAdminLoginView.as_view(), name='admin-login'),
    path('admin/auth/me/', views.StoreAdminMeView.as_view(), name='admin-me'),
    path('admin/auth/store/me/', views.StoreAdminStoreView.as_view(), name='admin-store'),

    # Couriers
    path('delivery/auth/register/', views.CourierRegisterView.as_view(), name='courier-register'),
    path('delivery/auth/login/', views.CourierLoginView.as_view(), name='courier-login'),
    path('delivery/auth/me/', views.CourierMeView.as_view(), name='courier-me'),
]
