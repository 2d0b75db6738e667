"""
Core views - tenant scoping shared by the API viewsets.
"""
from rest_framework.exceptions import PermissionDenied

from .observability.correlation import bind_actor


class OrganizationScopedMixin:
    """
    Restrict a viewset queryset to the requesting user's organization.

    Superusers without an organization see every tenant; any other user
    without an organization is refused.
    """

    organization_field = 'organization'

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        # JWT auth runs inside the view, after the correlation middleware
        bind_actor(request.user)

    def get_organization(self):
        user = self.request.user
        organization = getattr(user, 'organization', None)
        if organization is None and not user.is_superuser:
            raise PermissionDenied('User is not assigned to an organization.')
        return organization

    def get_queryset(self):
        queryset = super().get_queryset()
        if getattr(self, 'swagger_fake_view', False):
            # drf-spectacular schema generation
            return queryset.none()
        organization = self.get_organization()
        if organization is None:
            return queryset
        return queryset.filter(**{self.organization_field: organization})
