"""Auto-compounding strategy engine."""

from .core.chain import Chain, ManualClock
from .core.ledger import TokenLedger, MAX_UINT256
from .core.roles import Role, RoleSet
from .engine.context import HarvestPolicy
from .engine.fees import FeeSchedule, FeeSplitter, FeeSplit
from .engine.harvest import HarvestResult
from .strategy import Strategy
from .vault import Vault
from .keeper import HarvestKeeper

__all__ = [
    "Chain",
    "ManualClock",
    "TokenLedger",
    "MAX_UINT256",
    "Role",
    "RoleSet",
    "HarvestPolicy",
    "FeeSchedule",
    "FeeSplitter",
    "FeeSplit",
    "HarvestResult",
    "Strategy",
    "Vault",
    "HarvestKeeper",
]
