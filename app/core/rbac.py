# app/core/rbac.py
"""
Campaign role model.

Roles are ordered owner > contributor > viewer. Every permission decision goes
through `can()` / `require()`; call sites never compare role strings.
"""
from __future__ import annotations

import enum
from typing import Dict, FrozenSet, Optional, Union

from app.core.config import settings
from app.core.errors import InvalidRequest, Unauthorized


class Role(str, enum.Enum):
    OWNER = "owner"
    CONTRIBUTOR = "contributor"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @classmethod
    def parse(cls, value: Union["Role", str, None]) -> "Role":
        if isinstance(value, Role):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise InvalidRequest(f"Unknown role: {value!r}")


_RANK = {Role.OWNER: 3, Role.CONTRIBUTOR: 2, Role.VIEWER: 1}


class Capability(str, enum.Enum):
    VIEW = "view"
    EDIT_CONTENT = "edit_content"  # items / players / transactions
    SEND_INVITES = "send_invites"
    CHANGE_ROLES = "change_roles"
    REMOVE_MEMBERS = "remove_members"
    RENAME_CAMPAIGN = "rename_campaign"
    DELETE_CAMPAIGN = "delete_campaign"
    LEAVE_CAMPAIGN = "leave_campaign"


_BASE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.OWNER: frozenset(
        {
            Capability.VIEW,
            Capability.EDIT_CONTENT,
            Capability.SEND_INVITES,
            Capability.CHANGE_ROLES,
            Capability.REMOVE_MEMBERS,
            Capability.RENAME_CAMPAIGN,
            Capability.DELETE_CAMPAIGN,
            # owners delete the campaign instead of leaving it
        }
    ),
    Role.CONTRIBUTOR: frozenset(
        {
            Capability.VIEW,
            Capability.EDIT_CONTENT,
            Capability.SEND_INVITES,
            Capability.LEAVE_CAMPAIGN,
        }
    ),
    Role.VIEWER: frozenset({Capability.VIEW, Capability.LEAVE_CAMPAIGN}),
}

# Roles the member-management path may hand out. Owner only comes from
# campaign creation.
ASSIGNABLE_ROLES: FrozenSet[Role] = frozenset({Role.CONTRIBUTOR, Role.VIEWER})


def capabilities_for(role: Union[Role, str], *, contributors_can_rename: Optional[bool] = None) -> FrozenSet[Capability]:
    r = Role.parse(role)
    caps = set(_BASE_CAPABILITIES[r])
    if contributors_can_rename is None:
        contributors_can_rename = settings.CONTRIBUTORS_CAN_RENAME
    if r is Role.CONTRIBUTOR and contributors_can_rename:
        caps.add(Capability.RENAME_CAMPAIGN)
    return frozenset(caps)


def can(role: Union[Role, str, None], capability: Capability, **kwargs) -> bool:
    """False for a missing or unrecognized role; never raises."""
    if role is None:
        return False
    try:
        caps = capabilities_for(role, **kwargs)
    except InvalidRequest:
        return False
    return capability in caps


def require(role: Union[Role, str, None], capability: Capability, **kwargs) -> None:
    """Raise Unauthorized unless `role` grants `capability`."""
    if not can(role, capability, **kwargs):
        raise Unauthorized(f"Your role does not allow: {capability.value.replace('_', ' ')}.")


# -----------------------------
# Invite-time vocabulary
# -----------------------------
# The invite UI speaks "player" / "dm"; memberships speak owner / contributor /
# viewer. Both "player" and "dm" become contributor: owner is never granted
# through an invite.
INVITE_LABEL_TO_ROLE: Dict[str, Role] = {
    "player": Role.CONTRIBUTOR,
    "dm": Role.CONTRIBUTOR,
    "contributor": Role.CONTRIBUTOR,
    "viewer": Role.VIEWER,
}


def role_from_invite_label(label: Optional[str]) -> Role:
    key = (label or "").strip().lower()
    role = INVITE_LABEL_TO_ROLE.get(key)
    if role is None:
        raise InvalidRequest(
            f"Invites can offer one of: {', '.join(sorted(INVITE_LABEL_TO_ROLE))} (got {label!r})."
        )
    return role


def role_display_name(role: Union[Role, str]) -> str:
    return Role.parse(role).value.capitalize()
