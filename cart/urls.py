"""
URL routing for cart API endpoints.
"""
from django.urls import path
from . import views

app_name = 'cart'

urlpatterns = [
    path('carts/', views.CartListCreateView.as_view(), name='cart-list'),
    path('carts/<int:pk>/', views.CartItemDetailView.as_view(), name='cart-detail'),
]
