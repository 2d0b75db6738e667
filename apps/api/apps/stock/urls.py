"""Stock URLs."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from .views import InventoryMovementViewSet

router = DefaultRouter()
router.register(r'movements', InventoryMovementViewSet, basename='inventory-movement')

urlpatterns = [
    path('', include(router.urls)),
]
