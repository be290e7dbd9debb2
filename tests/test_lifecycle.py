"""Tests for pause, unpause, panic and retire."""

import pytest

from compounder.core.errors import (
    AuthorizationError,
    NotPausedError,
    PausedError,
    StrategyRetiredError,
)
from compounder.core.ledger import MAX_UINT256
from compounder.engine.events import LifecycleChanged

from tests.fixtures import ALICE, KEEPER, NATIVE, OWNER, REWARD, USDC, VAULT, WANT


class TestPause:
    """Manager pause and unpause."""

    def test_pause_requires_manager(self, strategy):
        with pytest.raises(AuthorizationError):
            strategy.pause(ALICE)
        assert not strategy.paused

    def test_pause_revokes_allowances_and_blocks_deposit(self, strategy, stake, ledger):
        stake(strategy, 1000)

        strategy.pause(KEEPER)

        assert strategy.paused
        assert ledger.allowance(WANT, strategy.address, "chef") == 0
        assert ledger.allowance(REWARD, strategy.address, "router") == 0
        ledger.mint(WANT, strategy.address, 100)
        with pytest.raises(PausedError):
            strategy.deposit()
        assert strategy.balance_of_want() == 100

    def test_double_pause_rejected(self, strategy):
        strategy.pause(OWNER)
        with pytest.raises(PausedError):
            strategy.pause(OWNER)

    def test_unpause_regrants_and_stakes_idle(self, strategy, stake, ledger):
        stake(strategy, 1000)
        strategy.pause(KEEPER)
        ledger.mint(WANT, strategy.address, 250)

        strategy.unpause(KEEPER)

        assert not strategy.paused
        assert strategy.balance_of_want() == 0
        assert strategy.balance_of_pool() == 1250
        assert ledger.allowance(WANT, strategy.address, "chef") == MAX_UINT256
        assert ledger.allowance(NATIVE, strategy.address, "router") == MAX_UINT256

    def test_unpause_when_active_rejected(self, strategy):
        with pytest.raises(NotPausedError):
            strategy.unpause(KEEPER)

    def test_lifecycle_events(self, strategy):
        strategy.pause(KEEPER)
        strategy.unpause(OWNER)

        event = strategy.events.last(LifecycleChanged)
        assert event.action == "unpause"
        assert event.caller == OWNER


class TestPanic:
    """Emergency exit from the farm."""

    def test_panic_recovers_principal(self, strategy, stake, ledger):
        stake(strategy, 500)

        recovered = strategy.panic(KEEPER)

        assert recovered == 500
        assert strategy.balance_of_want() >= 495
        assert strategy.balance_of_pool() == 0
        assert strategy.paused
        with pytest.raises(PausedError):
            strategy.deposit()

    def test_panic_forfeits_pending_rewards(self, chain, farm, pool_id, strategy, stake, ledger):
        stake(strategy, 500)
        farm.set_reward_per_second(pool_id, 10)
        chain.sleep(100)

        strategy.panic(KEEPER)

        assert ledger.balance_of(REWARD, strategy.address) == 0
        assert strategy.rewards_available() == 0

    def test_panic_when_already_paused(self, strategy, stake):
        stake(strategy, 500)
        strategy.pause(KEEPER)

        assert strategy.panic(KEEPER) == 500
        assert strategy.paused

    def test_panic_requires_manager(self, strategy, stake):
        stake(strategy, 500)
        with pytest.raises(AuthorizationError):
            strategy.panic(ALICE)
        assert strategy.balance_of_pool() == 500


class TestRetire:
    """Vault-only terminal unwind."""

    def test_retire_sends_everything_to_vault(self, strategy, stake, ledger):
        stake(strategy, 700)
        ledger.mint(WANT, strategy.address, 30)

        forwarded = strategy.retire_strat(VAULT)

        assert forwarded == 730
        assert ledger.balance_of(WANT, VAULT) == 730
        assert strategy.balance_of() == 0
        assert strategy.retired

    def test_retire_only_once(self, strategy):
        strategy.retire_strat(VAULT)
        with pytest.raises(StrategyRetiredError):
            strategy.retire_strat(VAULT)

    def test_retire_requires_vault(self, strategy, stake):
        stake(strategy, 700)
        with pytest.raises(AuthorizationError):
            strategy.retire_strat(OWNER)
        assert not strategy.retired
        assert strategy.balance_of_pool() == 700


class TestAllowances:
    """Allowances the active strategy holds."""

    def test_lp_strategy_approves_both_legs(self, lp_strategy, ledger):
        for token in (REWARD, NATIVE, USDC):
            assert ledger.allowance(token, lp_strategy.address, "router") == MAX_UINT256
        assert ledger.allowance(lp_strategy.want, lp_strategy.address, "chef") == MAX_UINT256

    def test_required_allowances_are_unique(self, lp_strategy):
        grants = lp_strategy.guard.required_allowances()
        assert len(grants) == len(set(grants))
