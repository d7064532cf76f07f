"""
URL configuration for formparity project.
"""

from django.http import JsonResponse
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView


def health_check(request):
    """Simple health check endpoint"""
    return JsonResponse({"status": "ok"})


urlpatterns = [
    path('health/', health_check, name='health_check'),
    path('api/', include('dynamic_forms.urls')),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
]
