"""Farm adapters."""

from .base import FarmAdapter
from .masterchef import MasterChefFarm
from .reward_pool import RewardPoolFarm

__all__ = ["FarmAdapter", "MasterChefFarm", "RewardPoolFarm"]
