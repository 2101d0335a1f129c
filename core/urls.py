# core/urls.py
from django.contrib import admin
from django.db import connection
from django.http import JsonResponse
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from bots.services.runtime import get_runtime
from bots.views import BotViewSet
from copy_trading.views import UserCopyViewSet


def health_check(request):
    """Health check endpoint for monitoring"""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except Exception as e:
        return JsonResponse({'status': 'unhealthy', 'error': str(e)}, status=500)

    runtime = get_runtime()
    return JsonResponse({
        'status': 'healthy',
        'database': 'ok',
        'simulator': 'running' if runtime is not None else 'stopped',
        'price_feed': 'connected' if runtime is not None and runtime.feed.is_connected() else 'disconnected',
    })


router = DefaultRouter()

# Bots
router.register(r'bots', BotViewSet, basename='bot')

# Copy Trading
router.register(r'copies', UserCopyViewSet, basename='copy')

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health_check'),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'),
         name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'),
         name='redoc'),

    # Authentication
    path('api/v1/auth/login/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/v1/auth/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # API Routes
    path('api/v1/', include(router.urls)),
]
