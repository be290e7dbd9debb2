"""
End-to-end vault lifecycle: users deposit and withdraw through the vault
while the strategy harvests, panics and is upgraded underneath them.
"""

import pytest

from compounder.core.errors import AuthorizationError, ConfigError, InsufficientAllowanceError, PausedError, VaultError
from compounder.core.roles import RoleSet
from compounder.vault import PRICE_PRECISION, Vault

from tests.fixtures import ALICE, BOB, KEEPER, LP, NATIVE, OWNER, REWARD, STRATEGIST, TREASURY, USDC, VAULT, WANT


class TestDepositWithdraw:
    """User share accounting."""

    def test_deposit_mints_shares(self, vault, fund, ledger):
        fund(ALICE, 1000)

        shares = vault.deposit(1000, ALICE)

        assert shares == 1000
        assert vault.shares_of(ALICE) == 1000
        assert vault.strategy.balance_of_pool() == 1000
        assert vault.get_price_per_full_share() == PRICE_PRECISION

    def test_withdraw_pays_less_withdrawal_fee(self, vault, fund, ledger):
        fund(ALICE, 1000)
        vault.deposit(1000, ALICE)

        paid = vault.withdraw_all(ALICE)

        assert paid == 999
        assert ledger.balance_of(WANT, ALICE) == 999
        assert vault.total_supply() == 0

    def test_deposit_without_approval_fails(self, vault, ledger):
        ledger.mint(WANT, ALICE, 1000)
        with pytest.raises(InsufficientAllowanceError):
            vault.deposit(1000, ALICE)
        assert ledger.balance_of(WANT, ALICE) == 1000
        assert vault.total_supply() == 0

    def test_withdraw_from_empty_vault_fails(self, vault):
        with pytest.raises(VaultError):
            vault.withdraw_all(ALICE)
        with pytest.raises(VaultError):
            vault.withdraw(100, ALICE)

    def test_withdraw_zero_shares_fails(self, vault, fund):
        fund(ALICE, 1000)
        vault.deposit(1000, ALICE)

        with pytest.raises(VaultError):
            vault.withdraw_all(BOB)
        assert vault.shares_of(ALICE) == 1000

    def test_deposit_into_unbacked_shares_fails(self, vault, fund, ledger):
        fund(ALICE, 1000)
        vault.deposit(1000, ALICE)
        vault.strategy.panic(OWNER)
        ledger.burn(WANT, vault.strategy.address, 1000)
        vault.strategy.unpause(OWNER)

        fund(BOB, 1000)
        with pytest.raises(VaultError):
            vault.deposit(1000, BOB)
        assert ledger.balance_of(WANT, BOB) == 1000
        assert vault.shares_of(BOB) == 0

    def test_strategy_must_belong_to_vault(self, chain, strategy):
        with pytest.raises(ConfigError):
            Vault(chain, strategy, owner=OWNER, address="another_vault")


class TestPricePerShare:
    """Harvests raise the share price; new deposits never lower it."""

    def test_harvest_increases_price(self, vault, fund, ledger):
        fund(ALICE, 10_000)
        vault.deposit(10_000, ALICE)
        before = vault.get_price_per_full_share()

        ledger.mint(REWARD, vault.strategy.address, 1000)
        vault.strategy.harvest(KEEPER)

        assert vault.get_price_per_full_share() > before
        assert vault.balance() == 10_955

    def test_new_deposit_does_not_dilute(self, vault, fund, ledger):
        fund(ALICE, 10_000)
        vault.deposit(10_000, ALICE)
        ledger.mint(REWARD, vault.strategy.address, 1000)
        vault.strategy.harvest(KEEPER)
        price = vault.get_price_per_full_share()

        fund(BOB, 5000)
        shares = vault.deposit(5000, BOB)

        assert shares == 5000 * 10_000 // 10_955
        assert vault.get_price_per_full_share() >= price


class TestPanicThroughVault:
    """An emergency blocks deposits but never withdrawals."""

    def test_panic_blocks_deposit_allows_withdraw(self, vault, fund, ledger):
        fund(ALICE, 1000)
        vault.deposit(1000, ALICE)

        vault.strategy.panic(KEEPER)

        fund(BOB, 1000)
        with pytest.raises(PausedError):
            vault.deposit(1000, BOB)
        assert ledger.balance_of(WANT, BOB) == 1000
        assert vault.shares_of(BOB) == 0

        # No withdrawal fee while paused
        assert vault.withdraw_all(ALICE) == 1000


class TestUpgrade:
    """Owner-driven strategy replacement."""

    def test_upgrade_moves_funds(self, vault, fund, make_strategy):
        fund(ALICE, 1000)
        vault.deposit(1000, ALICE)
        old = vault.strategy
        new = make_strategy(address="strategy2")

        vault.upgrade_strat(new, OWNER)

        assert vault.strategy is new
        assert old.retired
        assert old.balance_of() == 0
        assert new.balance_of_pool() == 1000
        assert vault.balance() == 1000

    def test_upgrade_keep_idle(self, vault, fund, make_strategy):
        fund(ALICE, 1000)
        vault.deposit(1000, ALICE)
        new = make_strategy(address="strategy2")

        vault.upgrade_strat(new, OWNER, keep_idle=True)

        assert vault.available() == 1000
        assert new.balance_of() == 0

    def test_upgrade_requires_owner(self, vault, make_strategy):
        with pytest.raises(AuthorizationError):
            vault.upgrade_strat(make_strategy(address="strategy2"), ALICE)

    def test_replacement_must_match(self, vault, make_strategy):
        stranger = make_strategy(
            address="strategy3",
            roles=RoleSet(OWNER, KEEPER, "other_vault", STRATEGIST),
        )
        with pytest.raises(ConfigError):
            vault.upgrade_strat(stranger, OWNER)
        assert not vault.strategy.retired


class TestHarvestOnDeposit:
    """Deposits harvest first, so pending yield goes to existing holders."""

    @pytest.fixture
    def hod_vault(self, chain, make_strategy):
        strategy = make_strategy(harvest_on_deposit=True)
        return Vault(chain, strategy, owner=OWNER, address=VAULT)

    def test_deposit_harvests_first(self, hod_vault, fund, ledger):
        fund(ALICE, 1000)
        hod_vault.deposit(1000, ALICE)
        ledger.mint(REWARD, hod_vault.strategy.address, 1000)

        fund(BOB, 1000)
        shares = hod_vault.deposit(1000, BOB)

        # The depositor triggered the harvest and earned the call fee
        assert ledger.balance_of(NATIVE, BOB) == 5
        assert shares == 1000 * 1000 // 1955
        assert hod_vault.strategy.last_harvest > 0

    def test_lp_vault_takes_repeated_deposits(self, chain, router, ledger, make_lp_strategy):
        strategy = make_lp_strategy(harvest_on_deposit=True)
        lp_vault = Vault(chain, strategy, owner=OWNER, address=VAULT)
        router.seed_pair(USDC, NATIVE, 30_000, 30_000, provider="lp_provider")
        for user in (ALICE, BOB, "carol"):
            ledger.transfer(LP, "lp_provider", user, 10_000)
            ledger.approve(LP, user, VAULT, 10_000)

        lp_vault.deposit(10_000, ALICE)
        ledger.mint(REWARD, strategy.address, 1000)
        # Harvests 1000: 477 LP compounded, 1 native left over
        lp_vault.deposit(10_000, BOB)
        # Only the left over native is held; nothing to harvest
        lp_vault.deposit(10_000, "carol")

        assert lp_vault.balance() == 30_477
        assert ledger.balance_of(NATIVE, strategy.address) == 1
        assert ledger.balance_of(NATIVE, TREASURY) == 35
        bob_shares = 10_000 * 10_000 // 10_477
        assert lp_vault.shares_of(BOB) == bob_shares
        assert lp_vault.shares_of("carol") == 10_000 * (10_000 + bob_shares) // 20_477

    def test_withdraw_has_no_fee(self, hod_vault, fund):
        fund(ALICE, 1000)
        hod_vault.deposit(1000, ALICE)
        assert hod_vault.withdraw_all(ALICE) == 1000
