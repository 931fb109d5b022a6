"""
Access Control: caller identity and roles

Privileged operations check a Role on the CallerContext passed to them
instead of comparing a shared admin token.
"""

from dataclasses import dataclass, field
from enum import Enum

from stakeledger.core.errors import UnauthorizedError


class Role(str, Enum):
    """Caller roles"""

    GOVERNOR = "governor"
    STAKER = "staker"


@dataclass(frozen=True)
class CallerContext:
    """Identity of the caller of a ledger operation."""

    caller_id: str
    roles: frozenset[Role] = field(default_factory=frozenset)

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    @classmethod
    def staker(cls, caller_id: str) -> "CallerContext":
        return cls(caller_id=caller_id, roles=frozenset({Role.STAKER}))

    @classmethod
    def governor(cls, caller_id: str) -> "CallerContext":
        return cls(caller_id=caller_id, roles=frozenset({Role.GOVERNOR}))


def require_role(caller: CallerContext, role: Role) -> None:
    """
    Raises:
        UnauthorizedError: If the caller does not hold the role
    """
    if not caller.has_role(role):
        raise UnauthorizedError(
            f"caller {caller.caller_id!r} lacks role {role.value!r}"
        )
