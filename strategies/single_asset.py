"""
Single-asset strategy

Stakes a plain token in a farm pool and compounds rewards straight back
into that token through native_to_want. When want is the native token
itself the compounding swap is skipped.
"""

import logging
from typing import Optional

from compounder.core.chain import Chain
from compounder.core.errors import RouteConfigError
from compounder.engine.context import HarvestPolicy
from compounder.engine.fees import FeeSchedule
from compounder.logging_config import ActivityLogger
from compounder.strategy import Strategy
from integrations.farms.base import FarmAdapter
from integrations.routers.base import RouterAdapter
from strategies.params import StrategyParamsFile

logger = logging.getLogger(__name__)


DEFAULT_PENDING_FUNCTION = "pending_rewards"


def deploy_single_asset(
    chain: Chain,
    farm: FarmAdapter,
    router: RouterAdapter,
    params: StrategyParamsFile,
    fee_schedule: Optional[FeeSchedule] = None,
    policy: Optional[HarvestPolicy] = None,
    activity: Optional[ActivityLogger] = None,
) -> Strategy:
    """
    Deploy a single-asset strategy.

    Raises:
        RouteConfigError: If LP routes are given or native_to_want is missing
    """
    if params.native_to_lp0 or params.native_to_lp1:
        raise RouteConfigError("single_asset strategies take native_to_want, not LP routes")
    if params.native_to_want is None and params.native != params.want:
        raise RouteConfigError(f"native_to_want is required: native {params.native} is not want {params.want}")

    strategy = Strategy(
        chain=chain,
        farm=farm,
        router=router,
        want=params.want,
        pool_id=params.pool_id,
        roles=params.roles(),
        treasury=params.treasury,
        output_to_native=params.output_to_native,
        native_to_want=params.native_to_want,
        fee_schedule=fee_schedule,
        policy=policy,
        harvest_on_deposit=params.harvest_on_deposit,
        pending_rewards_function=params.pending_rewards_function or DEFAULT_PENDING_FUNCTION,
        address=params.strategy_address,
        activity=activity,
    )
    logger.info(f"Deployed single-asset strategy {strategy.address} for {params.want}")
    return strategy
