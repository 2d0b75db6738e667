"""Finance URLs."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from .views import FinancialNoteViewSet

router = DefaultRouter()
router.register(r'notes', FinancialNoteViewSet, basename='financial-note')

urlpatterns = [
    path('', include(router.urls)),
]
