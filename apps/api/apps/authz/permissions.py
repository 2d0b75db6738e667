"""
DRF Permission classes for returns and financial notes RBAC.

Roles:
- Sales, Inventory: create/delete pending returns, read notes and ledger
- Manager: everything (operate + decide)
- Accounting: approve/reject returns, apply/cancel notes
- Superuser: Full access
"""
from rest_framework import permissions

OPERATOR_GROUPS = ('Sales', 'Inventory', 'Manager')
APPROVER_GROUPS = ('Manager', 'Accounting')


def user_in_groups(user, group_names):
    """Check if user is authenticated and member of any of the given groups."""
    if not user or not user.is_authenticated:
        return False

    if user.is_superuser:
        return True

    return user.groups.filter(name__in=group_names).exists()


class IsReturnsOperatorOrAdmin(permissions.BasePermission):
    """
    Allow access to users who handle returns day to day, and superusers.
    """

    message = 'Returns access requires Sales, Inventory or Manager role.'

    def has_permission(self, request, view):
        return user_in_groups(request.user, OPERATOR_GROUPS + APPROVER_GROUPS)


class IsReturnsApproverOrAdmin(permissions.BasePermission):
    """
    Allow decisions (approve, reject, apply, cancel) only to approvers.
    """

    message = 'This action requires Manager or Accounting role.'

    def has_permission(self, request, view):
        return user_in_groups(request.user, APPROVER_GROUPS)
