"""Tests for the strategy's vault surface, reads and settings."""

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from compounder.core.errors import (
    AuthorizationError,
    ConfigError,
    ExternalCallError,
    FarmError,
    FeeConfigError,
    RouteConfigError,
)
from compounder.engine.events import FeeConfigChanged, Withdraw
from compounder.engine.fees import FeeSchedule

from tests.fixtures import ALICE, KEEPER, NATIVE, OWNER, REWARD, STRATEGIST, USDC, VAULT, WANT


class TestConstruction:
    """Route and pool checks at deploy time."""

    def test_pool_must_stake_want(self, make_strategy, farm):
        other = farm.add_pool("OTHER", reward_per_second=0)
        with pytest.raises(RouteConfigError):
            make_strategy(pool_id=other)

    def test_output_must_be_farm_reward(self, make_strategy):
        with pytest.raises(RouteConfigError):
            make_strategy(output_to_native=(USDC, NATIVE))

    def test_route_must_reach_want(self, make_strategy):
        with pytest.raises(RouteConfigError):
            make_strategy(native_to_want=(NATIVE, USDC))

    def test_harvest_on_deposit_zeroes_withdrawal_fee(self, make_strategy):
        strategy = make_strategy(harvest_on_deposit=True)
        assert strategy.fee_schedule.withdrawal_fee == 0

    def test_active_after_deploy(self, strategy):
        assert not strategy.paused
        assert not strategy.retired
        assert strategy.last_harvest == 0


class TestWithdraw:
    """Vault withdrawals and the withdrawal fee."""

    def test_withdraw_requires_vault(self, strategy, stake):
        stake(strategy, 10_000)
        with pytest.raises(AuthorizationError):
            strategy.withdraw(1000, ALICE)

    def test_fee_charged_to_users(self, strategy, stake, ledger):
        stake(strategy, 100_000)

        delivered = strategy.withdraw(10_000, VAULT, origin=ALICE)

        assert delivered == 9_990
        assert ledger.balance_of(WANT, VAULT) == 9_990
        # The fee stays with the remaining depositors
        assert strategy.balance_of() == 90_010
        assert strategy.events.last(Withdraw).tvl == 90_010

    def test_owner_pays_no_fee(self, strategy, stake, ledger):
        stake(strategy, 100_000)
        assert strategy.withdraw(10_000, VAULT, origin=OWNER) == 10_000

    def test_no_fee_while_paused(self, strategy, stake):
        stake(strategy, 100_000)
        strategy.pause(KEEPER)
        assert strategy.withdraw(10_000, VAULT, origin=ALICE) == 10_000

    def test_idle_want_used_first(self, strategy, stake, ledger):
        stake(strategy, 1000)
        ledger.mint(WANT, strategy.address, 500)

        strategy.withdraw(400, VAULT, origin=OWNER)

        assert strategy.balance_of_pool() == 1000
        assert strategy.balance_of_want() == 100

    def test_over_withdraw_fails_cleanly(self, strategy, stake, ledger):
        stake(strategy, 1000)
        with pytest.raises(FarmError):
            strategy.withdraw(5000, VAULT)
        assert strategy.balance_of_pool() == 1000
        assert ledger.balance_of(WANT, VAULT) == 0

    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(amount=st.integers(min_value=1, max_value=10 ** 6))
    def test_fee_is_floor_of_bps(self, strategy, stake, amount):
        stake(strategy, amount)
        delivered = strategy.withdraw(amount, VAULT, origin=ALICE)
        assert delivered == amount - amount * 10 // 10000


class TestBeforeDeposit:
    """Harvest-on-deposit hook."""

    def test_noop_when_disabled(self, strategy, ledger):
        ledger.mint(REWARD, strategy.address, 1000)
        assert strategy.before_deposit(VAULT) is None
        assert ledger.balance_of(REWARD, strategy.address) == 1000

    def test_harvests_when_enabled(self, make_strategy, stake, ledger):
        strategy = stake(make_strategy(harvest_on_deposit=True), 1000)
        ledger.mint(REWARD, strategy.address, 1000)

        result = strategy.before_deposit(VAULT, origin=ALICE)

        assert result.harvested
        assert result.harvester == ALICE
        assert ledger.balance_of(NATIVE, ALICE) == 5

    def test_vault_only_when_enabled(self, make_strategy):
        strategy = make_strategy(harvest_on_deposit=True)
        with pytest.raises(AuthorizationError):
            strategy.before_deposit(ALICE)


class TestRewardReads:
    """rewards_available and call_reward estimates."""

    def test_pending_rewards(self, chain, farm, pool_id, strategy, stake):
        stake(strategy, 1000)
        farm.set_reward_per_second(pool_id, 10)
        chain.sleep(100)

        assert strategy.rewards_available() == 1000
        # 1000 REWARD quotes 1000 native; default call fee is 5/1000
        assert strategy.call_reward() == 5

    def test_held_output_counts(self, strategy, ledger):
        ledger.mint(REWARD, strategy.address, 2000)
        assert strategy.call_reward() == 10

    def test_idle_principal_excluded_when_want_is_native(self, make_strategy, farm, ledger):
        pid = farm.add_pool(NATIVE, reward_per_second=0)
        strategy = make_strategy(want=NATIVE, pool_id=pid, native_to_want=None, address="native_strategy")
        ledger.mint(NATIVE, strategy.address, 5000)

        assert strategy.call_reward() == 0

        ledger.mint(REWARD, strategy.address, 2000)
        assert strategy.call_reward() == 10

    def test_idle_principal_excluded_when_want_is_reward(self, chain, want_farm, want_reward_strategy, stake, ledger):
        strategy = stake(want_reward_strategy, 1000)
        ledger.mint(WANT, strategy.address, 5000)

        assert strategy.call_reward() == 0

        want_farm.set_reward_per_second(strategy.ctx.params.pool_id, 20)
        chain.sleep(100)
        # Only the 2000 pending counts, not the 5000 idle
        assert strategy.call_reward() == 10

    def test_unknown_view_reads_zero(self, chain, farm, pool_id, strategy, stake):
        stake(strategy, 1000)
        farm.set_reward_per_second(pool_id, 10)
        chain.sleep(100)

        strategy.set_pending_rewards_function_name("pendingNothing", OWNER)

        assert strategy.rewards_available() == 0
        assert strategy.call_reward() == 0

    def test_failing_view_reads_zero(self, farm, strategy, monkeypatch):
        def broken(pool_id, who):
            raise FarmError("view reverted")

        monkeypatch.setattr(farm, "pending_rewards", broken)
        assert strategy.rewards_available() == 0

    def test_failing_quote_reads_held_native_only(self, router, strategy, ledger, monkeypatch):
        def broken(amount_in, route):
            raise ExternalCallError("quote reverted")

        ledger.mint(REWARD, strategy.address, 1000)
        ledger.mint(NATIVE, strategy.address, 2000)
        monkeypatch.setattr(router, "quote_out", broken)

        assert strategy.call_reward() == 10

    def test_balance_read_failure_propagates(self, farm, strategy, monkeypatch):
        def broken(pool_id, who):
            raise FarmError("farm unavailable")

        monkeypatch.setattr(farm, "staked_balance", broken)
        with pytest.raises(FarmError):
            strategy.balance_of()


class TestSettings:
    """Manager-gated fee and role setters."""

    def test_set_call_fee(self, strategy):
        strategy.set_call_fee(11, KEEPER)

        assert strategy.fee_schedule.call_fee == 11
        assert strategy.events.last(FeeConfigChanged).call_fee == 11

    def test_call_fee_cap_keeps_old_schedule(self, strategy):
        with pytest.raises(FeeConfigError):
            strategy.set_call_fee(112, OWNER)
        assert strategy.fee_schedule == FeeSchedule()

    def test_setters_require_manager(self, strategy):
        with pytest.raises(AuthorizationError):
            strategy.set_call_fee(11, ALICE)
        with pytest.raises(AuthorizationError):
            strategy.set_keeper(ALICE, ALICE)

    def test_harvest_on_deposit_toggles_withdrawal_fee(self, strategy):
        strategy.set_harvest_on_deposit(True, KEEPER)
        assert strategy.harvest_on_deposit
        assert strategy.fee_schedule.withdrawal_fee == 0

        strategy.set_harvest_on_deposit(False, KEEPER)
        assert strategy.fee_schedule.withdrawal_fee == 10

    def test_withdrawal_fee_blocked_by_harvest_on_deposit(self, strategy):
        strategy.set_harvest_on_deposit(True, KEEPER)
        with pytest.raises(FeeConfigError):
            strategy.set_withdrawal_fee(5, KEEPER)
        strategy.set_withdrawal_fee(0, KEEPER)

    def test_withdrawal_fee_survives_harvest_on_deposit_toggle(self, strategy):
        strategy.set_withdrawal_fee(20, OWNER)

        strategy.set_harvest_on_deposit(True, KEEPER)
        assert strategy.fee_schedule.withdrawal_fee == 0
        strategy.set_harvest_on_deposit(False, KEEPER)

        assert strategy.fee_schedule.withdrawal_fee == 20

    def test_withdrawal_fee_cap(self, strategy):
        strategy.set_withdrawal_fee(50, OWNER)
        with pytest.raises(FeeConfigError):
            strategy.set_withdrawal_fee(51, OWNER)
        assert strategy.fee_schedule.withdrawal_fee == 50

    def test_strategist_hands_over(self, strategy):
        strategy.set_strategist("new_strategist", STRATEGIST)
        assert strategy.roles.strategist == "new_strategist"

        with pytest.raises(AuthorizationError):
            strategy.set_strategist(ALICE, ALICE)

        strategy.set_strategist(STRATEGIST, OWNER)
        assert strategy.roles.strategist == STRATEGIST

    def test_set_keeper(self, strategy):
        strategy.set_keeper("new_keeper", OWNER)
        assert strategy.roles.keeper == "new_keeper"
        with pytest.raises(AuthorizationError):
            strategy.pause(KEEPER)

    def test_empty_pending_name_rejected(self, strategy):
        with pytest.raises(ConfigError):
            strategy.set_pending_rewards_function_name("", OWNER)
        assert strategy.state.pending_rewards_function == "pending_rewards"
