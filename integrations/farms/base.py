"""Farm adapter interface consumed by the compounding engine."""

from abc import ABC, abstractmethod


class FarmAdapter(ABC):
    """
    A yield farm that stakes a strategy's want and pays reward tokens.

    One concrete adapter exists per farm protocol. Pool identifiers are
    opaque to the engine; single-pool farms accept only their own id.
    State-changing calls raise an ExternalCallError subclass on failure and
    never swallow it.
    """

    address: str
    reward_token: str

    @abstractmethod
    def staking_token(self, pool_id) -> str:
        """Token accepted by `pool_id`."""
        pass

    @abstractmethod
    def deposit(self, pool_id, amount: int, on_behalf_of: str) -> None:
        """Pull `amount` of the staking token from `on_behalf_of` and stake it."""
        pass

    @abstractmethod
    def withdraw(self, pool_id, amount: int, on_behalf_of: str) -> None:
        """Unstake `amount` and return it to `on_behalf_of`."""
        pass

    @abstractmethod
    def harvest_rewards(self, pool_id, recipient: str) -> None:
        """Claim every pending reward of `recipient` to `recipient`."""
        pass

    @abstractmethod
    def staked_balance(self, pool_id, who: str) -> int:
        pass

    @abstractmethod
    def pending_rewards(self, pool_id, who: str) -> int:
        """Read-only estimate of claimable rewards."""
        pass

    @abstractmethod
    def emergency_withdraw(self, pool_id, who: str) -> None:
        """Return all principal of `who`, forfeiting pending rewards."""
        pass
