"""
Role hierarchy used by every authorization guard
"""

from enum import IntEnum
from typing import Union

from utils.errors import AuthorizationError


class Role(IntEnum):
    """Ordered roles: TOUR < MEMBER < VALIDATOR < ADMIN."""

    TOUR = 0
    MEMBER = 1
    VALIDATOR = 2
    ADMIN = 3

    @classmethod
    def parse(cls, value: Union[str, "Role", None]) -> "Role":
        """Parse a session role string; anything unknown is treated as TOUR."""
        if isinstance(value, Role):
            return value
        if not value:
            return cls.TOUR
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            return cls.TOUR

    def satisfies(self, required: "Role") -> bool:
        return self >= required


def require_role(current: Union[str, Role, None], required: Role) -> Role:
    """Return the parsed role or raise AuthorizationError if it ranks below `required`."""
    role = Role.parse(current)
    if not role.satisfies(required):
        raise AuthorizationError.insufficient_role(required.name, role.name)
    return role
