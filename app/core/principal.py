"""Roles and the authenticated principal passed into every operation."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    MANAGER = "MANAGER"
    OPERATOR = "OPERATOR"
    PROJECT_MANAGER = "PROJECT_MANAGER"


MANAGEMENT_ROLES = (Role.MANAGER, Role.PROJECT_MANAGER)


def is_management(role) -> bool:
    """MANAGER and PROJECT_MANAGER share the management capability."""
    try:
        return Role(role) in MANAGEMENT_ROLES
    except ValueError:
        return False


@dataclass(frozen=True)
class Principal:
    id: int
    role: Role
    email: str

    @property
    def is_management(self) -> bool:
        return is_management(self.role)
