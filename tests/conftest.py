"""
Pytest configuration and shared fixtures for compounder testing.

Provides a simulated chain with a deterministic market:
- FixedRateRouter trading every configured hop 1:1 (prices never move)
- MasterChefFarm whose test pool emits nothing unless a test says so
- Strategy factories for single-asset and LP wants
"""

import os
import sys
from pathlib import Path

import pytest
from hypothesis import settings, Verbosity

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from compounder.core.chain import Chain, ManualClock
from compounder.core.roles import RoleSet
from compounder.engine.context import HarvestPolicy
from compounder.engine.fees import FeeSchedule
from compounder.strategy import Strategy
from compounder.vault import Vault
from integrations.farms.masterchef import MasterChefFarm
from integrations.routers.uniswap_v2 import FixedRateRouter
from tests.fixtures import (
    KEEPER,
    LP,
    NATIVE,
    OWNER,
    REWARD,
    SEED,
    STRATEGIST,
    TREASURY,
    USDC,
    VAULT,
    WANT,
)


# ============================================================================
# Hypothesis Configuration
# ============================================================================

settings.register_profile("default", max_examples=100, deadline=None)
settings.register_profile("ci", max_examples=1000, deadline=None)
settings.register_profile("dev", max_examples=20, verbosity=Verbosity.verbose)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


# ============================================================================
# Chain and market
# ============================================================================

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def chain(clock):
    return Chain(clock=clock)


@pytest.fixture
def ledger(chain):
    return chain.ledger


@pytest.fixture
def router(chain):
    """1:1 router for REWARD -> WNATIVE -> WANT/USDC, plus a seeded USDC/WNATIVE pair."""
    router = FixedRateRouter(chain, address="router")
    router.set_rate(REWARD, NATIVE)
    router.set_rate(NATIVE, WANT)
    router.set_rate(NATIVE, USDC)
    router.seed_pair(USDC, NATIVE, SEED, SEED, lp_token=LP)
    return router


@pytest.fixture
def farm(chain):
    return MasterChefFarm(chain, reward_token=REWARD, address="chef")


@pytest.fixture
def pool_id(farm):
    return farm.add_pool(WANT, reward_per_second=0)


@pytest.fixture
def lp_pool_id(farm, pool_id):
    return farm.add_pool(LP, reward_per_second=0)


@pytest.fixture
def roles():
    return RoleSet(owner=OWNER, keeper=KEEPER, vault=VAULT, strategist=STRATEGIST)


# ============================================================================
# Strategy factories
# ============================================================================

@pytest.fixture
def make_strategy(chain, farm, router, pool_id, roles):
    """
    Factory for single-asset strategies on the WANT pool.

    Example:
        strategy = make_strategy(fee_schedule=FeeSchedule(call_fee=111, ...))
    """
    def _make(**overrides):
        kwargs = dict(
            chain=chain,
            farm=farm,
            router=router,
            want=WANT,
            pool_id=pool_id,
            roles=RoleSet(roles.owner, roles.keeper, roles.vault, roles.strategist),
            treasury=TREASURY,
            output_to_native=(REWARD, NATIVE),
            native_to_want=(NATIVE, WANT),
            fee_schedule=FeeSchedule(),
            policy=HarvestPolicy(),
            address="strategy",
        )
        kwargs.update(overrides)
        return Strategy(**kwargs)
    return _make


@pytest.fixture
def strategy(make_strategy):
    return make_strategy()


@pytest.fixture
def make_lp_strategy(chain, farm, router, lp_pool_id, roles):
    """Factory for USDC/WNATIVE LP strategies on the LP pool."""
    def _make(**overrides):
        kwargs = dict(
            chain=chain,
            farm=farm,
            router=router,
            want=LP,
            pool_id=lp_pool_id,
            roles=RoleSet(roles.owner, roles.keeper, roles.vault, roles.strategist),
            treasury=TREASURY,
            output_to_native=(REWARD, NATIVE),
            native_to_lp0=(NATIVE, USDC),
            native_to_lp1=(NATIVE,),
            fee_schedule=FeeSchedule(),
            address="lp_strategy",
        )
        kwargs.update(overrides)
        return Strategy(**kwargs)
    return _make


@pytest.fixture
def lp_strategy(make_lp_strategy):
    return make_lp_strategy()


@pytest.fixture
def want_farm(chain):
    """MasterChef paying its rewards in WANT, so output is want."""
    return MasterChefFarm(chain, reward_token=WANT, address="want_chef")


@pytest.fixture
def want_reward_strategy(want_farm, router, make_strategy):
    pool_id = want_farm.add_pool(WANT, reward_per_second=0)
    router.set_rate(WANT, NATIVE)
    return make_strategy(
        farm=want_farm,
        pool_id=pool_id,
        output_to_native=(WANT, NATIVE),
        address="want_reward_strategy",
    )


@pytest.fixture
def stake(ledger):
    """Put `amount` of want into a strategy and stake it."""
    def _stake(strategy, amount):
        ledger.mint(strategy.want, strategy.address, amount)
        strategy.deposit()
        return strategy
    return _stake


@pytest.fixture
def vault(chain, strategy):
    return Vault(chain, strategy, owner=OWNER, name="Moo Want", symbol="mooWANT", address=VAULT)


@pytest.fixture
def fund(ledger):
    """Mint want to a user and approve the vault."""
    def _fund(user, amount, token=WANT, spender=VAULT):
        ledger.mint(token, user, amount)
        ledger.approve(token, user, spender, amount)
    return _fund
