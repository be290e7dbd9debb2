"""
Share vault in front of one strategy.

Users deposit want and receive vault shares; the vault forwards want to the
strategy and prices shares at (vault idle + strategy balance) / supply.
Shares are a ledger token named after the vault address.
"""

import logging
from typing import Optional

from compounder.core.chain import Chain, Stateful
from compounder.core.errors import AuthorizationError, ConfigError, VaultError
from compounder.strategy import Strategy

logger = logging.getLogger(__name__)


PRICE_PRECISION = 10 ** 18


class Vault(Stateful):
    """
    Minimal share vault.

    Features:
    - Deposit and withdraw with proportional share accounting
    - before_deposit hook (harvest-on-deposit) and realized-amount minting
    - Owner-driven strategy upgrade that retires the old strategy
    """

    def __init__(
        self,
        chain: Chain,
        strategy: Strategy,
        owner: str,
        name: str = "Moo Vault",
        symbol: str = "mooVault",
        address: str = "vault",
    ):
        if strategy.vault != address:
            raise ConfigError(f"Strategy {strategy.address} belongs to {strategy.vault}, not {address}")
        self.chain = chain
        self.ledger = chain.ledger
        self.strategy = strategy
        self.want = strategy.want
        self.owner = owner
        self.name = name
        self.symbol = symbol
        self.address = address
        chain.register(self)

        logger.info(f"Vault {symbol} ({address}) deployed for {self.want} with strategy {strategy.address}")

    # The strategy is a live component with its own snapshot; keep the reference.
    def snapshot(self) -> dict:
        return {"strategy": self.strategy}

    @property
    def share_token(self) -> str:
        return self.address

    def total_supply(self) -> int:
        return self.ledger.total_supply(self.share_token)

    def shares_of(self, holder: str) -> int:
        return self.ledger.balance_of(self.share_token, holder)

    def balance(self) -> int:
        """Want controlled by vault and strategy together."""
        return self.available() + self.strategy.balance_of()

    def available(self) -> int:
        """Want sitting idle in the vault."""
        return self.ledger.balance_of(self.want, self.address)

    def get_price_per_full_share(self) -> int:
        supply = self.total_supply()
        if supply == 0:
            return PRICE_PRECISION
        return self.balance() * PRICE_PRECISION // supply

    def earn(self):
        """Forward idle want to the strategy and stake it."""
        with self.chain.transaction():
            amount = self.available()
            if amount > 0:
                self.ledger.transfer(self.want, self.address, self.strategy.address, amount)
            self.strategy.deposit(self.address)

    def deposit(self, amount: int, caller: str) -> int:
        """
        Deposit `amount` of want from `caller`, who must have approved the vault.

        Returns:
            Shares minted

        Raises:
            PausedError: If the strategy is paused
            VaultError: If shares exist but the vault holds no want
        """
        with self.chain.transaction():
            self.strategy.before_deposit(self.address, origin=caller)

            pool = self.balance()
            if pool == 0 and self.total_supply() > 0:
                raise VaultError(f"{self.symbol} has outstanding shares but no want to price them")
            self.ledger.transfer_from(self.want, self.address, caller, self.address, amount)
            self.earn()
            realized = self.balance() - pool

            supply = self.total_supply()
            shares = realized if supply == 0 else realized * supply // pool
            self.ledger.mint(self.share_token, caller, shares)

        logger.info(f"{caller} deposited {realized} {self.want} into {self.symbol} for {shares} shares")
        return shares

    def deposit_all(self, caller: str) -> int:
        return self.deposit(self.ledger.balance_of(self.want, caller), caller)

    def withdraw(self, shares: int, caller: str) -> int:
        """
        Burn `shares` of `caller` and pay out their want.

        Returns:
            Want paid to the caller

        Raises:
            VaultError: If `shares` is not positive or no shares exist
        """
        with self.chain.transaction():
            supply = self.total_supply()
            if shares <= 0 or supply == 0:
                raise VaultError(f"Nothing to withdraw from {self.symbol}: {shares} of {supply} shares")
            owed = self.balance() * shares // supply
            self.ledger.burn(self.share_token, caller, shares)

            idle = self.available()
            if idle < owed:
                self.strategy.withdraw(owed - idle, self.address, origin=caller)
                received = self.available() - idle
                if received < owed - idle:
                    owed = idle + received

            self.ledger.transfer(self.want, self.address, caller, owed)

        logger.info(f"{caller} withdrew {owed} {self.want} from {self.symbol} ({shares} shares)")
        return owed

    def withdraw_all(self, caller: str) -> int:
        return self.withdraw(self.shares_of(caller), caller)

    def upgrade_strat(self, new_strategy: Strategy, caller: str, keep_idle: Optional[bool] = False):
        """
        Retire the current strategy and move all funds to `new_strategy`.

        Args:
            new_strategy: Replacement, same want and bound to this vault
            caller: Must be the vault owner
            keep_idle: Leave the returned want idle in the vault instead of
                investing it right away
        """
        if caller != self.owner:
            raise AuthorizationError(caller, "owner", "upgrade_strat")
        if new_strategy.want != self.want or new_strategy.vault != self.address:
            raise ConfigError(f"{new_strategy.address} is not a valid replacement for {self.strategy.address}")

        with self.chain.transaction():
            old = self.strategy
            old.retire_strat(self.address)
            self.strategy = new_strategy
            if not keep_idle:
                self.earn()

        logger.warning(f"Vault {self.symbol} upgraded from {old.address} to {new_strategy.address}")
