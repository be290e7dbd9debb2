"""Role checks for gated strategy operations."""

import logging
from dataclasses import dataclass
from enum import Enum

from .errors import AuthorizationError

logger = logging.getLogger(__name__)


class Role(Enum):
    """Roles a caller can hold on a strategy."""
    OWNER = "owner"
    KEEPER = "keeper"
    MANAGER = "manager"  # owner or keeper
    VAULT = "vault"
    STRATEGIST = "strategist"


@dataclass
class RoleSet:
    """
    Addresses holding each role on one strategy.

    Attributes:
        owner: Privileged owner (timelock in production); bypasses withdrawal fee
        keeper: Operator allowed to pause, panic and tune fees
        vault: The only address allowed to withdraw and retire
        strategist: Receives the strategist fee and may hand the role over
    """
    owner: str
    keeper: str
    vault: str
    strategist: str

    def holds(self, caller: str, role: Role) -> bool:
        if role is Role.MANAGER:
            return caller in (self.owner, self.keeper)
        return caller == getattr(self, role.value)


def require_role(roles: RoleSet, caller: str, role: Role, operation: str = "") -> None:
    """
    Fail fast if `caller` does not hold `role`.

    Raises:
        AuthorizationError: If the caller lacks the role
    """
    if not roles.holds(caller, role):
        logger.warning(f"Rejected {operation or 'call'} from {caller}: requires {role.value}")
        raise AuthorizationError(caller, role.value, operation)


def require_any_role(roles: RoleSet, caller: str, *required: Role, operation: str = "") -> None:
    """Fail fast unless `caller` holds at least one of `required`."""
    if not any(roles.holds(caller, role) for role in required):
        names = " or ".join(role.value for role in required)
        logger.warning(f"Rejected {operation or 'call'} from {caller}: requires {names}")
        raise AuthorizationError(caller, names, operation)
