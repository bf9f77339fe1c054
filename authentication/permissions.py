from rest_framework import permissions

from core.utils.roles import Capabilities, has_capability


class HasCapability(permissions.BasePermission):
    """
    Allow only users whose role grants `capability`.
    Subclass and set `capability`, or use `HasCapability.for_capability(...)`.
    """
    capability = None
    message = 'Insufficient permissions for this action.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return has_capability(request.user.role, self.capability)

    @classmethod
    def for_capability(cls, capability):
        return type(f"Has_{capability}", (cls,), {'capability': capability})


class CanManageUsers(HasCapability):
    """
    Permission to only allow users who may manage other users (brandon, owner, admin by default).
    """
    capability = Capabilities.MANAGE_USERS


class HasOrganization(permissions.BasePermission):
    message = 'You must belong to an organization to perform this action.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.organization_id is not None
