"""
Simulated deployment

Builds the farm, router and pairs a parameter file's routes need on a
local Chain, deploys the vault and strategy, and applies the operator's
post-deployment settings from the environment. Shared by the deployment
script and the keeper runner.
"""

import logging
from dataclasses import replace
from typing import Tuple

from compounder.core.chain import Chain
from compounder.core.config import ConfigurationError, EnvironmentConfig
from compounder.engine.events import JsonAuditLog
from compounder.engine.fees import FeeSchedule
from compounder.vault import Vault
from integrations.farms.masterchef import MasterChefFarm
from integrations.farms.reward_pool import RewardPoolFarm
from integrations.routers.uniswap_v2 import FixedRateRouter
from strategies import DEPLOYERS
from strategies.params import StrategyParamsFile

logger = logging.getLogger(__name__)

SEED_LIQUIDITY = 10 ** 24
REWARD_PER_SECOND = 10 ** 15


def build_market(chain: Chain, params: StrategyParamsFile) -> FixedRateRouter:
    """Router with a 1:1 rate for every hop the routes use, plus the LP pair if any."""
    router = FixedRateRouter(chain, address="unirouter")
    routes = [params.output_to_native, params.native_to_want, params.native_to_lp0, params.native_to_lp1]
    for route in routes:
        for token_in, token_out in zip(route or [], (route or [])[1:]):
            router.set_rate(token_in, token_out)

    if params.topology != "single_asset":
        legs = params.extra.get("lp_legs")
        if not legs or len(legs) != 2:
            raise ConfigurationError("LP topologies need simulation.lp_legs [token0, token1]")
        router.seed_pair(legs[0], legs[1], SEED_LIQUIDITY, SEED_LIQUIDITY, lp_token=params.want)
    return router


def build_farm(chain: Chain, params: StrategyParamsFile):
    """Farm matching the topology; returns (farm, params with the simulated pool id)."""
    if params.topology == "reward_pool_lp":
        farm = RewardPoolFarm(chain, staking_token=params.want, reward_token=params.output)
        funding = REWARD_PER_SECOND * farm.rewards_duration
        chain.ledger.mint(params.output, "reward_distributor", funding)
        farm.notify_reward_amount(funding, "reward_distributor")
        return farm, params

    farm = MasterChefFarm(
        chain,
        reward_token=params.output,
        pending_function=params.pending_rewards_function or "pending_reward",
    )
    pool_id = farm.add_pool(params.want, REWARD_PER_SECOND)
    return farm, replace(params, pool_id=pool_id)


def deploy_vault(
    chain: Chain,
    params: StrategyParamsFile,
    config: EnvironmentConfig,
) -> Tuple[Vault, StrategyParamsFile]:
    """
    Deploy a vault and strategy for `params` on a simulated market.

    Post-deployment steps, as the operator runs them:
    1. Subscribe the JSON audit log when AUDIT_LOG_PATH is set
    2. Set the pending-rewards view name from the parameter file
    3. Set the chain's call fee
    4. Turn harvest-on-deposit on when HARVEST_ON_DEPOSIT is set

    Args:
        chain: Chain to deploy on
        params: Deployment parameters
        config: Environment the fees and policy come from

    Returns:
        (vault, params with the simulated pool id)

    Raises:
        ConfigurationError: If the fee settings or LP legs are unusable
        StrategyError: If the deployer rejects the routes
    """
    router = build_market(chain, params)
    farm, params = build_farm(chain, params)

    deploy = DEPLOYERS[params.topology]
    schedule = config.build_fee_schedule()
    strategy = deploy(
        chain,
        farm,
        router,
        params,
        fee_schedule=schedule.with_call_fee(FeeSchedule.call_fee),
        policy=config.get_harvest_policy(),
    )
    vault = Vault(
        chain,
        strategy,
        owner=params.owner,
        name=params.vault_name,
        symbol=params.vault_symbol,
        address=params.vault_address,
    )

    audit_path = config.get_audit_log_path()
    if audit_path:
        strategy.events.subscribe(JsonAuditLog(audit_path))

    if params.pending_rewards_function:
        strategy.set_pending_rewards_function_name(params.pending_rewards_function, params.owner)
    strategy.set_call_fee(config.get_call_fee(), params.owner)
    if config.get_harvest_on_deposit() and not strategy.harvest_on_deposit:
        strategy.set_harvest_on_deposit(True, params.owner)

    logger.info(
        f"Deployed {vault.symbol} with {params.topology} strategy {strategy.address} "
        f"(harvest on deposit {strategy.harvest_on_deposit})"
    )
    return vault, params
