# backend/app/services/roles.py
"""
Role transitions and the derived registration status.

Registration may only move an invited account out of INIT. The admin
role-change path only swaps between the two registered roles.
"""
from __future__ import annotations

import enum
from typing import Dict, FrozenSet, Mapping

from app.core.errors import RoleTransitionError
from app.models import User, UserRole


class UserStatus(str, enum.Enum):
    UNREGISTERED = "UNREGISTERED"
    REGISTERED = "REGISTERED"


REGISTRATION_TRANSITIONS: Dict[UserRole, FrozenSet[UserRole]] = {
    UserRole.INIT: frozenset({UserRole.USER, UserRole.ADMIN}),
    UserRole.USER: frozenset(),
    UserRole.ADMIN: frozenset(),
}

ROLE_CHANGE_TRANSITIONS: Dict[UserRole, FrozenSet[UserRole]] = {
    UserRole.INIT: frozenset(),
    UserRole.USER: frozenset({UserRole.ADMIN}),
    UserRole.ADMIN: frozenset({UserRole.USER}),
}

REGISTERED_ROLES = frozenset({UserRole.USER, UserRole.ADMIN})


def role_for(is_admin: bool) -> UserRole:
    return UserRole.ADMIN if is_admin else UserRole.USER


def can_transition(
    current: UserRole,
    target: UserRole,
    table: Mapping[UserRole, FrozenSet[UserRole]] = REGISTRATION_TRANSITIONS,
) -> bool:
    return target in table.get(current, frozenset())


def validate_transition(
    current: UserRole,
    target: UserRole,
    table: Mapping[UserRole, FrozenSet[UserRole]] = REGISTRATION_TRANSITIONS,
) -> None:
    """Raise RoleTransitionError unless `current -> target` is listed in `table`."""
    if not can_transition(current, target, table):
        allowed = sorted(r.value for r in table.get(current, frozenset()))
        raise RoleTransitionError(
            f"Cannot change role from '{current.value}' to '{target.value}'. "
            f"Allowed from '{current.value}': {allowed}"
        )


def is_registered(user: User) -> bool:
    return UserRole(user.role) in REGISTERED_ROLES


def is_admin(user: User) -> bool:
    return UserRole(user.role) == UserRole.ADMIN


def extract_user_status(user: User) -> UserStatus:
    return UserStatus.REGISTERED if is_registered(user) else UserStatus.UNREGISTERED
