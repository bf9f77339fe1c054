from dataclasses import dataclass
from typing import Optional

from core.utils.roles import Roles


@dataclass(frozen=True)
class OrgBranchScope:
    """
    The access scope of one caller: who they are, which organization and
    branch they belong to, and their role. Ids are strings.
    """
    user_id: str
    org_id: Optional[str] = None
    branch_id: Optional[str] = None
    user_role: Optional[str] = None

    @classmethod
    def from_user(cls, user):
        return cls(
            user_id=str(user.pk),
            org_id=str(user.organization_id) if user.organization_id else None,
            branch_id=str(user.branch_id) if user.branch_id else None,
            user_role=Roles.from_string(getattr(user, 'role', None)).value,
        )

    @property
    def role(self):
        return Roles.from_string(self.user_role)


def get_request_scope(request) -> OrgBranchScope:
    """Build the scope of the authenticated user behind `request`."""
    return OrgBranchScope.from_user(request.user)
