"""Finance views - credit and debit notes."""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import IsReturnsApproverOrAdmin, IsReturnsOperatorOrAdmin
from apps.core.views import OrganizationScopedMixin
from apps.returns.exceptions import ReturnsError
from apps.returns.views import error_response

from .models import FinancialNote
from .serializers import FinancialNoteSerializer
from .services import apply_note, cancel_note


class FinancialNoteViewSet(OrganizationScopedMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for credit/debit notes.

    Additional endpoints:
    - POST /notes/{id}/apply/ - issued -> applied
    - POST /notes/{id}/cancel/ - issued -> cancelled

    Query params:
    - note_type: sales|purchase
    - status: draft|issued|applied|cancelled
    """
    queryset = FinancialNote.objects.select_related('source_return', 'counterparty').all()
    serializer_class = FinancialNoteSerializer
    permission_classes = [IsReturnsOperatorOrAdmin]
    search_fields = ['note_number', 'source_return__return_number']
    ordering = ['-created_at']

    def get_permissions(self):
        if self.action in ('apply', 'cancel'):
            return [IsReturnsApproverOrAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        for field in ('note_type', 'status'):
            value = params.get(field)
            if value:
                queryset = queryset.filter(**{field: value})
        return queryset

    def _transition(self, request, service, location):
        note = self.get_object()
        try:
            note = service(note.pk, organization=note.organization)
        except ReturnsError as e:
            return error_response(e, location)
        return Response(self.get_serializer(note).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'], url_path='apply')
    def apply(self, request, pk=None):
        """Mark an issued note as applied; 409 from any other status."""
        return self._transition(request, apply_note, 'finance.apply')

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel(self, request, pk=None):
        """Cancel an issued note; 409 from any other status."""
        return self._transition(request, cancel_note, 'finance.cancel')
