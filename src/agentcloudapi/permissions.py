"""Team capability bitmask and role templates."""

from enum import Enum, IntEnum


class Permissions(IntEnum):
    """Bit positions of the capabilities a team member can hold."""

    # Org and team ownership
    ORG_OWNER = 0
    ORG_ADMIN = 1
    TEAM_OWNER = 2
    TEAM_ADMIN = 3

    # Team membership
    ADD_TEAM_MEMBER = 10
    EDIT_TEAM_MEMBER = 11
    REMOVE_TEAM_MEMBER = 12

    # Resources
    CREATE_APP = 20
    EDIT_APP = 21
    DELETE_APP = 22
    CREATE_AGENT = 23
    EDIT_AGENT = 24
    DELETE_AGENT = 25
    CREATE_TASK = 26
    EDIT_TASK = 27
    DELETE_TASK = 28
    CREATE_TOOL = 29
    EDIT_TOOL = 30
    DELETE_TOOL = 31
    CREATE_MODEL = 32
    EDIT_MODEL = 33
    DELETE_MODEL = 34
    CREATE_DATASOURCE = 35
    EDIT_DATASOURCE = 36
    DELETE_DATASOURCE = 37
    SYNC_DATASOURCE = 38
    UPLOAD_ASSET = 39


class TeamRole(str, Enum):
    """Roles a member can hold within a team."""

    TEAM_OWNER = "TEAM_OWNER"
    TEAM_ADMIN = "TEAM_ADMIN"
    TEAM_MEMBER = "TEAM_MEMBER"


class PermissionSet:
    """A set of capabilities packed into an integer bitmask."""

    def __init__(self, mask: int = 0):
        self.mask = int(mask or 0)

    @classmethod
    def of(cls, *permissions: Permissions) -> "PermissionSet":
        result = cls()
        for permission in permissions:
            result.set(permission)
        return result

    def has(self, permission: Permissions) -> bool:
        return bool(self.mask & (1 << permission))

    def has_any(self, *permissions: Permissions) -> bool:
        return any(self.has(p) for p in permissions)

    def set(self, permission: Permissions) -> "PermissionSet":
        self.mask |= 1 << permission
        return self

    def unset(self, permission: Permissions) -> "PermissionSet":
        self.mask &= ~(1 << permission)
        return self

    def names(self) -> list[str]:
        """Names of every capability held, in bit order."""
        return [p.name for p in Permissions if self.has(p)]

    def __or__(self, other: "PermissionSet") -> "PermissionSet":
        return PermissionSet(self.mask | other.mask)

    def __eq__(self, other) -> bool:
        return isinstance(other, PermissionSet) and self.mask == other.mask

    def __repr__(self) -> str:
        return f"PermissionSet({', '.join(self.names())})"


_RESOURCE_PERMISSIONS = [
    Permissions.CREATE_APP,
    Permissions.EDIT_APP,
    Permissions.DELETE_APP,
    Permissions.CREATE_AGENT,
    Permissions.EDIT_AGENT,
    Permissions.DELETE_AGENT,
    Permissions.CREATE_TASK,
    Permissions.EDIT_TASK,
    Permissions.DELETE_TASK,
    Permissions.CREATE_TOOL,
    Permissions.EDIT_TOOL,
    Permissions.DELETE_TOOL,
    Permissions.CREATE_MODEL,
    Permissions.EDIT_MODEL,
    Permissions.DELETE_MODEL,
    Permissions.CREATE_DATASOURCE,
    Permissions.EDIT_DATASOURCE,
    Permissions.DELETE_DATASOURCE,
    Permissions.SYNC_DATASOURCE,
    Permissions.UPLOAD_ASSET,
]

_MEMBER_MANAGEMENT = [
    Permissions.ADD_TEAM_MEMBER,
    Permissions.EDIT_TEAM_MEMBER,
    Permissions.REMOVE_TEAM_MEMBER,
]

ROLE_TEMPLATES: dict[TeamRole, PermissionSet] = {
    TeamRole.TEAM_MEMBER: PermissionSet.of(*_RESOURCE_PERMISSIONS),
    TeamRole.TEAM_ADMIN: PermissionSet.of(
        Permissions.TEAM_ADMIN, *_MEMBER_MANAGEMENT, *_RESOURCE_PERMISSIONS
    ),
    TeamRole.TEAM_OWNER: PermissionSet.of(
        Permissions.TEAM_OWNER,
        Permissions.TEAM_ADMIN,
        *_MEMBER_MANAGEMENT,
        *_RESOURCE_PERMISSIONS,
    ),
}


def permissions_for_role(role: str) -> PermissionSet:
    """Return a fresh copy of the template mask for a team role."""
    try:
        template = ROLE_TEMPLATES[TeamRole(role)]
    except ValueError:
        return PermissionSet()
    return PermissionSet(template.mask)


def resolve_permissions(
    member_mask: int, role: str, is_org_owner: bool = False
) -> PermissionSet:
    """Combine a member's stored mask with its role template.

    Org owners additionally hold ORG_OWNER and ORG_ADMIN in every team of the org.
    """
    resolved = PermissionSet(member_mask) | permissions_for_role(role)
    if is_org_owner:
        resolved.set(Permissions.ORG_OWNER).set(Permissions.ORG_ADMIN)
    return resolved
