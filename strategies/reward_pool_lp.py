"""
Reward pool LP strategy

Stakes an LP token in a single-pool StakingRewards-style contract. The pool
has no pool ids, so the strategy always uses RewardPoolFarm.POOL_ID, and the
pending view is `earned`. Harvests are allowed while paused by default,
as the reward pool variant never blocked them.
"""

import logging
from dataclasses import replace
from typing import Optional

from compounder.core.chain import Chain
from compounder.core.errors import RouteConfigError
from compounder.engine.context import HarvestPolicy
from compounder.engine.fees import FeeSchedule
from compounder.logging_config import ActivityLogger
from compounder.strategy import Strategy
from integrations.farms.reward_pool import RewardPoolFarm
from integrations.routers.base import RouterAdapter
from strategies.params import StrategyParamsFile

logger = logging.getLogger(__name__)


DEFAULT_PENDING_FUNCTION = "earned"


def deploy_reward_pool_lp(
    chain: Chain,
    farm: RewardPoolFarm,
    router: RouterAdapter,
    params: StrategyParamsFile,
    fee_schedule: Optional[FeeSchedule] = None,
    policy: Optional[HarvestPolicy] = None,
    activity: Optional[ActivityLogger] = None,
) -> Strategy:
    """
    Deploy an LP strategy on a reward pool.

    Raises:
        RouteConfigError: If either LP leg route is missing
    """
    if params.native_to_lp0 is None or params.native_to_lp1 is None:
        raise RouteConfigError("reward_pool_lp strategies need native_to_lp0 and native_to_lp1")
    if params.pool_id not in (None, RewardPoolFarm.POOL_ID):
        logger.warning(f"Ignoring pool_id {params.pool_id!r}: reward pools have a single pool")
    params = replace(params, pool_id=RewardPoolFarm.POOL_ID)

    strategy = Strategy(
        chain=chain,
        farm=farm,
        router=router,
        want=params.want,
        pool_id=params.pool_id,
        roles=params.roles(),
        treasury=params.treasury,
        output_to_native=params.output_to_native,
        native_to_lp0=params.native_to_lp0,
        native_to_lp1=params.native_to_lp1,
        fee_schedule=fee_schedule,
        policy=policy or HarvestPolicy(allow_when_paused=True),
        harvest_on_deposit=params.harvest_on_deposit,
        pending_rewards_function=params.pending_rewards_function or DEFAULT_PENDING_FUNCTION,
        address=params.strategy_address,
        activity=activity,
    )
    logger.info(f"Deployed reward pool LP strategy {strategy.address} for {params.want} on {farm.address}")
    return strategy
