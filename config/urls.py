"""
URL configuration for the grocery marketplace API.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    """Health check endpoint for container orchestration."""
    return JsonResponse({'status': 'healthy', 'service': 'grocery-marketplace-api'})


def not_found(request, exception=None):
    return JsonResponse(
        {'success': False, 'error': True, 'status': 404, 'message': '404 Not Found'},
        status=404,
    )


def server_error(request):
    return JsonResponse(
        {'success': False, 'error': True, 'status': 500, 'message': 'Internal Server Error'},
        status=500,
    )


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health-check'),
    path('api/', include('accounts.urls')),
    path('api/', include('catalog.urls')),
    path('api/', include('cart.urls')),
    path('api/', include('orders.urls')),
]

handler404 = 'config.urls.not_found'
handler500 = 'config.urls.server_error'
