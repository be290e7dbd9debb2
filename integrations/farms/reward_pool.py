"""
Single-token reward pool

StakingRewards-style farm: one staking token, one reward token, rewards
streamed at a fixed rate over a reward period funded by a distributor.
Zero-amount stakes and withdrawals are rejected, so callers must skip them.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict

from compounder.core.chain import Chain, Stateful
from compounder.core.errors import FarmError

from .base import FarmAdapter

logger = logging.getLogger(__name__)


PRECISION = 10 ** 18


@dataclass
class RewardPoolState:
    reward_rate: int = 0
    period_finish: int = 0
    last_update_time: int = 0
    reward_per_token_stored: int = 0
    total_supply: int = 0
    balances: Dict[str, int] = field(default_factory=dict)
    reward_per_token_paid: Dict[str, int] = field(default_factory=dict)
    rewards: Dict[str, int] = field(default_factory=dict)


class RewardPoolFarm(FarmAdapter, Stateful):
    """
    Reward pool farm adapter.

    The pool has exactly one pool id (`POOL_ID`); any other id is an error.
    Rewards are paid from tokens transferred in by `notify_reward_amount`.
    """

    POOL_ID = 0

    _snapshot_fields = ("state",)

    def __init__(
        self,
        chain: Chain,
        staking_token: str,
        reward_token: str,
        address: str = "reward_pool",
        rewards_duration: int = 7 * 24 * 3600,
    ):
        self.chain = chain
        self.ledger = chain.ledger
        self._staking_token = staking_token
        self.reward_token = reward_token
        self.address = address
        self.rewards_duration = rewards_duration
        self.state = RewardPoolState(last_update_time=chain.now())
        chain.register(self)

        logger.info(f"RewardPoolFarm {address} initialized ({staking_token} -> {reward_token})")

    def _check_pool(self, pool_id):
        if pool_id != self.POOL_ID:
            raise FarmError(f"{self.address} has a single pool {self.POOL_ID}, got {pool_id!r}")

    def _last_time_reward_applicable(self) -> int:
        return min(self.chain.now(), self.state.period_finish)

    def _reward_per_token(self) -> int:
        state = self.state
        if state.total_supply == 0:
            return state.reward_per_token_stored
        elapsed = max(0, self._last_time_reward_applicable() - state.last_update_time)
        return state.reward_per_token_stored + elapsed * state.reward_rate * PRECISION // state.total_supply

    def _earned(self, who: str) -> int:
        state = self.state
        paid = state.reward_per_token_paid.get(who, 0)
        balance = state.balances.get(who, 0)
        return balance * (self._reward_per_token() - paid) // PRECISION + state.rewards.get(who, 0)

    def _update_reward(self, who: str):
        state = self.state
        state.reward_per_token_stored = self._reward_per_token()
        state.last_update_time = self._last_time_reward_applicable()
        state.rewards[who] = self._earned(who)
        state.reward_per_token_paid[who] = state.reward_per_token_stored

    def notify_reward_amount(self, amount: int, funder: str):
        """
        Fund a new reward period of `rewards_duration` seconds.

        Leftover rewards of a running period roll into the new rate.
        """
        self._update_reward(funder)
        self.ledger.transfer(self.reward_token, funder, self.address, amount)
        now = self.chain.now()
        state = self.state
        if now >= state.period_finish:
            state.reward_rate = amount // self.rewards_duration
        else:
            leftover = (state.period_finish - now) * state.reward_rate
            state.reward_rate = (amount + leftover) // self.rewards_duration
        state.last_update_time = now
        state.period_finish = now + self.rewards_duration
        logger.info(f"Reward period funded with {amount} {self.reward_token}, rate {state.reward_rate}/s")

    def staking_token(self, pool_id) -> str:
        self._check_pool(pool_id)
        return self._staking_token

    def deposit(self, pool_id, amount: int, on_behalf_of: str) -> None:
        self._check_pool(pool_id)
        if amount <= 0:
            raise FarmError("Cannot stake 0")
        self._update_reward(on_behalf_of)
        self.ledger.transfer_from(self._staking_token, self.address, on_behalf_of, self.address, amount)
        state = self.state
        state.total_supply += amount
        state.balances[on_behalf_of] = state.balances.get(on_behalf_of, 0) + amount

    def withdraw(self, pool_id, amount: int, on_behalf_of: str) -> None:
        self._check_pool(pool_id)
        if amount <= 0:
            raise FarmError("Cannot withdraw 0")
        state = self.state
        balance = state.balances.get(on_behalf_of, 0)
        if balance < amount:
            raise FarmError(f"withdraw: {on_behalf_of} has {balance} staked, asked {amount}")
        self._update_reward(on_behalf_of)
        state.total_supply -= amount
        state.balances[on_behalf_of] = balance - amount
        self.ledger.transfer(self._staking_token, self.address, on_behalf_of, amount)

    def harvest_rewards(self, pool_id, recipient: str) -> None:
        self._check_pool(pool_id)
        self._update_reward(recipient)
        reward = self.state.rewards.get(recipient, 0)
        if reward > 0:
            self.state.rewards[recipient] = 0
            self.ledger.transfer(self.reward_token, self.address, recipient, reward)
            logger.debug(f"Paid {reward} {self.reward_token} to {recipient}")

    def staked_balance(self, pool_id, who: str) -> int:
        self._check_pool(pool_id)
        return self.state.balances.get(who, 0)

    def pending_rewards(self, pool_id, who: str) -> int:
        self._check_pool(pool_id)
        return self._earned(who)

    def earned(self, pool_id, who: str) -> int:
        return self.pending_rewards(pool_id, who)

    def emergency_withdraw(self, pool_id, who: str) -> None:
        self._check_pool(pool_id)
        self._update_reward(who)
        state = self.state
        amount = state.balances.get(who, 0)
        state.rewards[who] = 0
        if amount > 0:
            state.total_supply -= amount
            state.balances[who] = 0
            self.ledger.transfer(self._staking_token, self.address, who, amount)
        logger.warning(f"Emergency withdraw of {amount} from {self.address} for {who}")
