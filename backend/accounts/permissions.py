from rest_framework import permissions

# Which roles may do what; superusers are always allowed.
PERMISSION_MATRIX = {
    'access_quotations': {'admin', 'manager', 'sales', 'finance'},
    'manage_quotations': {'admin', 'manager', 'sales'},
    'view_all_quotations': {'admin', 'manager', 'finance'},
    'view_audit': {'admin', 'manager'},
}


def normalize_role(role) -> str:
    return (role or '').strip().lower()


def has_permission(user, permission: str) -> bool:
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    allowed = PERMISSION_MATRIX.get(permission, set())
    return normalize_role(getattr(user, 'role', '')) in allowed


class CanAccessQuotations(permissions.BasePermission):
    """
    Read access to quotations.
    """
    def has_permission(self, request, view):
        return has_permission(request.user, 'access_quotations')


class CanManageQuotations(permissions.BasePermission):
    """
    Create and update quotations.
    """
    def has_permission(self, request, view):
        return has_permission(request.user, 'manage_quotations')


class CanViewAllQuotations(permissions.BasePermission):
    """
    Allow seeing quotations created by other users.
    """
    def has_permission(self, request, view):
        return has_permission(request.user, 'view_all_quotations')


class CanViewAudit(permissions.BasePermission):
    """
    Only managers and admins may read the audit trail.
    """
    def has_permission(self, request, view):
        return has_permission(request.user, 'view_audit')
