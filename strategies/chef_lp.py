"""
MasterChef LP strategy

Stakes an LP token in a MasterChef pool. Rewards are sold for native, fees
are taken, and the rest is split between the two LP legs and added back as
liquidity. Chef forks name their pending view after the reward token
(pendingCake, pendingShare, ...), so the name is configurable.
"""

import logging
from typing import Optional

from compounder.core.chain import Chain
from compounder.core.errors import RouteConfigError
from compounder.engine.context import HarvestPolicy
from compounder.engine.fees import FeeSchedule
from compounder.logging_config import ActivityLogger
from compounder.strategy import Strategy
from integrations.farms.masterchef import MasterChefFarm
from integrations.routers.base import RouterAdapter
from strategies.params import StrategyParamsFile

logger = logging.getLogger(__name__)


DEFAULT_PENDING_FUNCTION = "pending_reward"


def deploy_chef_lp(
    chain: Chain,
    farm: MasterChefFarm,
    router: RouterAdapter,
    params: StrategyParamsFile,
    fee_schedule: Optional[FeeSchedule] = None,
    policy: Optional[HarvestPolicy] = None,
    activity: Optional[ActivityLogger] = None,
) -> Strategy:
    """
    Deploy an LP strategy on a MasterChef pool.

    Raises:
        RouteConfigError: If either LP leg route is missing
    """
    if params.native_to_lp0 is None or params.native_to_lp1 is None:
        raise RouteConfigError("chef_lp strategies need native_to_lp0 and native_to_lp1")

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
        policy=policy,
        harvest_on_deposit=params.harvest_on_deposit,
        pending_rewards_function=params.pending_rewards_function or DEFAULT_PENDING_FUNCTION,
        address=params.strategy_address,
        activity=activity,
    )
    lp0, lp1 = strategy.lp_legs
    logger.info(f"Deployed chef LP strategy {strategy.address} for {params.want} ({lp0}/{lp1}) on pool {params.pool_id}")
    return strategy
