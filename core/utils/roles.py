from enum import Enum

from django.conf import settings


class Roles(Enum):
    BRANDON = 'brandon'
    OWNER = 'owner'
    ADMIN = 'admin'
    USER = 'user'

    @classmethod
    def choices(cls):
        return [(role.value, role.value.title()) for role in cls]

    @staticmethod
    def from_string(role):
        """
        Match a role by name or value. Anything unknown (including None) is a plain user.
        """
        if isinstance(role, Roles):
            return role
        for candidate in Roles:
            if role is not None and (candidate.name == str(role).upper() or candidate.value == role):
                return candidate
        return Roles.USER


class Capabilities:
    CROSS_BRANCH = 'cross_branch'
    MANAGE_ORGANIZATIONS = 'manage_organizations'
    DELETE_ORGANIZATION = 'delete_organization'
    MANAGE_BRANCHES = 'manage_branches'
    DELETE_BRANCH = 'delete_branch'
    MANAGE_CONTENT = 'manage_content'
    MANAGE_USERS = 'manage_users'


DEFAULT_ROLE_CAPABILITIES = {
    Roles.BRANDON.value: {
        Capabilities.CROSS_BRANCH,
        Capabilities.MANAGE_ORGANIZATIONS,
        Capabilities.DELETE_ORGANIZATION,
        Capabilities.MANAGE_BRANCHES,
        Capabilities.DELETE_BRANCH,
        Capabilities.MANAGE_CONTENT,
        Capabilities.MANAGE_USERS,
    },
    Roles.OWNER.value: {
        Capabilities.CROSS_BRANCH,
        Capabilities.MANAGE_BRANCHES,
        Capabilities.DELETE_BRANCH,
        Capabilities.MANAGE_CONTENT,
        Capabilities.MANAGE_USERS,
    },
    Roles.ADMIN.value: {
        Capabilities.CROSS_BRANCH,
        Capabilities.MANAGE_BRANCHES,
        Capabilities.MANAGE_CONTENT,
        Capabilities.MANAGE_USERS,
    },
    Roles.USER.value: set(),
}


def get_capabilities(role) -> set:
    """Capabilities granted to a role. settings.ROLE_CAPABILITIES overrides the defaults per role."""
    role_value = Roles.from_string(role).value
    overrides = getattr(settings, 'ROLE_CAPABILITIES', None) or {}
    if role_value in overrides:
        return set(overrides[role_value])
    return set(DEFAULT_ROLE_CAPABILITIES.get(role_value, set()))


def has_capability(role, capability: str) -> bool:
    return capability in get_capabilities(role)
