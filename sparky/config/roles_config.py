"""
Role Hierarchy Configuration
This config defines the fixed management hierarchy (admin > supervisor > manager > user)
and the pure functions the routes use to decide who may manage or be assigned to whom.

Both rules derive from ROLE_LEVELS:
- management: the manager's level is strictly above the target's
- assignment: the assignor sits exactly one level above the assignee
so every valid assignment is also a permitted management relation.
"""

from typing import Dict, List, Optional

ADMIN = "admin"
SUPERVISOR = "supervisor"
MANAGER = "manager"
USER = "user"

# Lower number = higher authority
ROLE_LEVELS: Dict[str, int] = {
    ADMIN: 1,
    SUPERVISOR: 2,
    MANAGER: 3,
    USER: 4,
}

UNKNOWN_ROLE_LEVEL = 5

ROLES: List[str] = sorted(ROLE_LEVELS, key=ROLE_LEVELS.get)

MANAGEMENT_ROLES: List[str] = [ADMIN, SUPERVISOR, MANAGER]

DEFAULT_ROLE = USER


def _build_management_table() -> Dict[str, List[str]]:
    return {
        role: [target for target in ROLES if ROLE_LEVELS[target] > level]
        for role, level in ROLE_LEVELS.items()
    }


def _build_assignment_pairs() -> List[Dict[str, str]]:
    pairs = []
    for assignee, level in ROLE_LEVELS.items():
        for assignor, assignor_level in ROLE_LEVELS.items():
            if assignor_level == level - 1:
                pairs.append({"assignee": assignee, "assignor": assignor})
    return pairs


# admin -> [supervisor, manager, user], supervisor -> [manager, user], manager -> [user], user -> []
MANAGEMENT_TABLE: Dict[str, List[str]] = _build_management_table()

# (user, manager), (manager, supervisor), (supervisor, admin)
VALID_ASSIGNMENTS: List[Dict[str, str]] = _build_assignment_pairs()


def is_known_role(role: Optional[str]) -> bool:
    return role in ROLE_LEVELS


def get_role_hierarchy_level(role: Optional[str]) -> int:
    """Hierarchy level of a role; unknown roles rank below everyone."""
    return ROLE_LEVELS.get(role, UNKNOWN_ROLE_LEVEL)


def can_see_management_panels(role: Optional[str]) -> bool:
    return role in MANAGEMENT_ROLES


def can_manage_user(manager_role: Optional[str], target_role: Optional[str]) -> bool:
    """True if manager_role sits strictly above target_role in the hierarchy"""
    return target_role in MANAGEMENT_TABLE.get(manager_role, [])


def is_valid_assignment(assignee_role: Optional[str], assignor_role: Optional[str]) -> bool:
    """True only when the assignor is the assignee's direct superior role"""
    return any(
        pair["assignee"] == assignee_role and pair["assignor"] == assignor_role
        for pair in VALID_ASSIGNMENTS
    )


def get_role_matrix() -> Dict[str, object]:
    """Return the hierarchy for API responses."""
    return {
        "roles": [{"name": role, "level": ROLE_LEVELS[role]} for role in ROLES],
        "management": MANAGEMENT_TABLE,
        "assignments": VALID_ASSIGNMENTS,
    }
