# modules/security/perms.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from modules.common.errors import Forbidden
from .model import UserRole


@dataclass(frozen=True)
class Principal:
    id: int
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Action(str, Enum):
    SEARCH_AVAILABILITY = "availability.search"
    VIEW_ROOMS = "rooms.view"
    MANAGE_CATALOG = "catalog.manage"
    CREATE_BOOKING = "booking.create"
    UPDATE_BOOKING = "booking.update"
    CANCEL_BOOKING = "booking.cancel"
    LIST_USER_BOOKINGS = "booking.list_user"
    LIST_ALL_BOOKINGS = "booking.list_all"


CLIENT_ACTIONS: FrozenSet[Action] = frozenset({
    Action.SEARCH_AVAILABILITY,
    Action.VIEW_ROOMS,
    Action.CREATE_BOOKING,
    Action.UPDATE_BOOKING,
    Action.CANCEL_BOOKING,
    Action.LIST_USER_BOOKINGS,
})

ROLE_ACTIONS: Dict[UserRole, FrozenSet[Action]] = {
    UserRole.CLIENT: CLIENT_ACTIONS,
    UserRole.ADMIN: frozenset(Action),
}

# actions a Client may only perform on records they own
OWNER_SCOPED: FrozenSet[Action] = frozenset({
    Action.UPDATE_BOOKING,
    Action.CANCEL_BOOKING,
    Action.LIST_USER_BOOKINGS,
})


def is_allowed(principal: Optional[Principal], action: Action, owner_id: Optional[int] = None) -> bool:
    if principal is None:
        return False
    if action not in ROLE_ACTIONS.get(principal.role, frozenset()):
        return False
    if principal.is_admin:
        return True
    if action in OWNER_SCOPED:
        return owner_id is not None and owner_id == principal.id
    return True


def authorize(principal: Optional[Principal], action: Action, owner_id: Optional[int] = None,
              message: str = "Unauthorized") -> None:
    if not is_allowed(principal, action, owner_id):
        raise Forbidden(message)
