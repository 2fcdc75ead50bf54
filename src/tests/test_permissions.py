from agentcloudapi.permissions import (
    Permissions,
    PermissionSet,
    TeamRole,
    permissions_for_role,
    resolve_permissions,
)


def test_set_and_unset():
    perms = PermissionSet()
    perms.set(Permissions.CREATE_TASK)
    assert perms.has(Permissions.CREATE_TASK)
    assert not perms.has(Permissions.DELETE_TASK)
    assert perms.has_any(Permissions.DELETE_TASK, Permissions.CREATE_TASK)

    perms.unset(Permissions.CREATE_TASK)
    assert perms.mask == 0


def test_names_follow_bit_order():
    perms = PermissionSet.of(Permissions.EDIT_APP, Permissions.TEAM_ADMIN)
    assert perms.names() == ["TEAM_ADMIN", "EDIT_APP"]


def test_role_templates():
    member = permissions_for_role(TeamRole.TEAM_MEMBER)
    admin = permissions_for_role(TeamRole.TEAM_ADMIN)
    owner = permissions_for_role(TeamRole.TEAM_OWNER)

    assert member.has(Permissions.CREATE_TASK)
    assert not member.has(Permissions.ADD_TEAM_MEMBER)
    assert admin.has(Permissions.ADD_TEAM_MEMBER)
    assert not admin.has(Permissions.TEAM_OWNER)
    assert owner.has(Permissions.TEAM_OWNER)


def test_role_template_copies_are_independent():
    perms = permissions_for_role(TeamRole.TEAM_MEMBER)
    perms.unset(Permissions.CREATE_TASK)
    assert permissions_for_role(TeamRole.TEAM_MEMBER).has(Permissions.CREATE_TASK)


def test_unknown_role_has_nothing():
    assert permissions_for_role("GUEST") == PermissionSet()


def test_resolve_adds_org_ownership():
    extra = PermissionSet.of(Permissions.ADD_TEAM_MEMBER).mask
    resolved = resolve_permissions(extra, "TEAM_MEMBER", is_org_owner=True)
    assert resolved.has(Permissions.ADD_TEAM_MEMBER)
    assert resolved.has(Permissions.CREATE_APP)
    assert resolved.has(Permissions.ORG_OWNER)
    assert not resolve_permissions(0, "TEAM_MEMBER").has(Permissions.ORG_OWNER)
