"""
Strategy Topologies

Deployment helpers for the three supported strategy shapes:
- single_asset: plain token staked in a farm pool
- chef_lp: LP token staked in a MasterChef pool
- reward_pool_lp: LP token staked in a single-pool reward contract
"""

from strategies.params import StrategyParamsFile, TOPOLOGIES
from strategies.single_asset import deploy_single_asset
from strategies.chef_lp import deploy_chef_lp
from strategies.reward_pool_lp import deploy_reward_pool_lp

DEPLOYERS = {
    "single_asset": deploy_single_asset,
    "chef_lp": deploy_chef_lp,
    "reward_pool_lp": deploy_reward_pool_lp,
}

__all__ = [
    "StrategyParamsFile",
    "TOPOLOGIES",
    "DEPLOYERS",
    "deploy_single_asset",
    "deploy_chef_lp",
    "deploy_reward_pool_lp",
]
