"""
Compounding engine components:
- FeeSplitter
- BalanceAccountant
- LifecycleGuard
- HarvestEngine
"""

from .accountant import BalanceAccountant
from .fees import FeeSchedule, FeeSplit, FeeSplitter
from .harvest import HarvestEngine, HarvestResult
from .lifecycle import LifecycleGuard

__all__ = [
    "BalanceAccountant",
    "FeeSchedule",
    "FeeSplit",
    "FeeSplitter",
    "HarvestEngine",
    "HarvestResult",
    "LifecycleGuard",
]
