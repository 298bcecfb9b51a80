"""
Design (policy.py)
- Purpose: Static role -> permitted-action table consulted by the UI before it offers a
           mutating control. FleetRepo performs no authorization; this is a UI-level filter.
- Inputs: Role (or the logged-in User, or None) and an Action.
- Outputs: bool.
- Side effects: None.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from .models import Role, User


class Action(str, Enum):
    CREATE_SHIP = "create_ship"
    EDIT_SHIP = "edit_ship"
    DELETE_SHIP = "delete_ship"
    CREATE_COMPONENT = "create_component"
    EDIT_COMPONENT = "edit_component"
    DELETE_COMPONENT = "delete_component"
    CREATE_JOB = "create_job"
    EDIT_JOB = "edit_job"
    DELETE_JOB = "delete_job"
    UPDATE_JOB_STATUS = "update_job_status"


_EVERYTHING = frozenset(Action)

PERMISSIONS: Dict[Role, FrozenSet[Action]] = {
    Role.ADMIN: _EVERYTHING,
    Role.INSPECTOR: _EVERYTHING,
    Role.ENGINEER: frozenset({Action.UPDATE_JOB_STATUS}),
}


def can(who: Optional[Union[Role, User]], action: Action) -> bool:
    if who is None:
        return False
    role = who.role if isinstance(who, User) else Role(who)
    return Action(action) in PERMISSIONS.get(role, frozenset())
