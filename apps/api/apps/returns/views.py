"""Returns views."""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django.core.exceptions import ValidationError

from apps.authz.permissions import IsReturnsApproverOrAdmin, IsReturnsOperatorOrAdmin
from apps.core.observability import metrics, get_sanitized_logger
from apps.core.views import OrganizationScopedMixin
from apps.finance.serializers import FinancialNoteSerializer
from apps.stock.serializers import InventoryMovementSerializer

from .exceptions import ReturnsError
from .models import Return
from .serializers import (
    ReturnApproveSerializer,
    ReturnCreateSerializer,
    ReturnRejectSerializer,
    ReturnSerializer,
)
from .services import approve_return, create_return, delete_pending_return, reject_return

logger = get_sanitized_logger(__name__)


def error_response(exc, location):
    """
    Map an engine error onto an HTTP response.

    ValidationError -> 400, NotFound -> 404, AlreadyDecided and
    InvalidTransition -> 409, StorageError -> 503.
    """
    if isinstance(exc, ValidationError):
        if hasattr(exc, 'error_dict'):
            detail = exc.message_dict
        else:
            detail = exc.messages
        return Response(
            {
                'error': detail,
                'error_type': getattr(exc, 'code', None) or 'invalid',
                'message': '; '.join(exc.messages),
            },
            status=status.HTTP_400_BAD_REQUEST
        )

    metrics.exceptions_total.labels(exception_type=exc.__class__.__name__, location=location).inc()
    body = {
        'error': exc.message,
        'error_type': exc.code,
        'message': exc.message,
    }
    current_status = getattr(exc, 'current_status', None)
    if current_status:
        body['current_status'] = current_status
    return Response(body, status=exc.http_status)


class TenantRequiredMixin:
    """Writes need a concrete organization, even for superusers."""

    def get_write_organization(self):
        organization = self.get_organization()
        if organization is None:
            raise ValidationError(
                {'organization': 'Acting user must belong to an organization'},
                code='invalid'
            )
        return organization


class ReturnViewSet(
    OrganizationScopedMixin,
    TenantRequiredMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for sale and purchase returns.

    Additional endpoints:
    - POST /returns/{id}/approve/ - Approve (ledger + note, atomically)
    - POST /returns/{id}/reject/ - Reject

    Query params:
    - kind: sale|purchase
    - status: pending|approved|rejected
    """
    queryset = Return.objects.all().prefetch_related('lines')
    serializer_class = ReturnSerializer
    permission_classes = [IsReturnsOperatorOrAdmin]
    search_fields = ['return_number', 'reason']
    ordering = ['-created_at']

    def get_permissions(self):
        if self.action in ('approve', 'reject'):
            return [IsReturnsApproverOrAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        for field in ('kind', 'status'):
            value = params.get(field)
            if value:
                queryset = queryset.filter(**{field: value})
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = ReturnCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            ret = create_return(
                organization=self.get_write_organization(),
                created_by=request.user,
                **serializer.to_service_kwargs()
            )
        except (ValidationError, ReturnsError) as e:
            return error_response(e, 'returns.create')

        return Response(ReturnSerializer(ret).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        ret = self.get_object()
        try:
            delete_pending_return(ret.pk, organization=ret.organization)
        except (ValidationError, ReturnsError) as e:
            return error_response(e, 'returns.delete')
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='approve')
    def approve(self, request, pk=None):
        """
        Approve a pending return.

        Returns the approved return, its ledger movements and the note.
        409 when the return was already decided (e.g. a double click).
        """
        ret = self.get_object()
        serializer = ReturnApproveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = approve_return(
                ret.pk,
                organization=ret.organization,
                actor=request.user,
                damaged_stock_policy=serializer.validated_data.get('damaged_stock_policy'),
            )
        except (ValidationError, ReturnsError) as e:
            logger.warning(
                'Return approval failed',
                extra={
                    'return_id': str(ret.pk),
                    'error_type': e.__class__.__name__,
                }
            )
            return error_response(e, 'returns.approve')

        return Response(
            {
                'return': ReturnSerializer(result.return_obj).data,
                'movements': InventoryMovementSerializer(result.movements, many=True).data,
                'note': FinancialNoteSerializer(result.note).data,
            },
            status=status.HTTP_200_OK
        )

    @action(detail=True, methods=['post'], url_path='reject')
    def reject(self, request, pk=None):
        """Reject a pending return; 409 when already decided."""
        ret = self.get_object()
        serializer = ReturnRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            ret = reject_return(
                ret.pk,
                organization=ret.organization,
                actor=request.user,
                reason=serializer.validated_data.get('reason', ''),
            )
        except (ValidationError, ReturnsError) as e:
            return error_response(e, 'returns.reject')

        return Response(ReturnSerializer(ret).data, status=status.HTTP_200_OK)
