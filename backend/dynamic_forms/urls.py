from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import FormValidationViewSet

router = SimpleRouter()
router.register(r'forms', FormValidationViewSet, basename='forms')

urlpatterns = [
    path('', include(router.urls)),
]
