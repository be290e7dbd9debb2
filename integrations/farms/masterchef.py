"""
MasterChef-style farm

Multi-pool staking contract paying one reward token. Each pool emits a
fixed number of reward units per second, shared pro rata between stakers
with a reward-per-share accumulator. Deposits and withdrawals also pay out
pending rewards, as the on-chain chefs do.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from compounder.core.chain import Chain, Stateful
from compounder.core.errors import FarmError

from .base import FarmAdapter

logger = logging.getLogger(__name__)


ACC_PRECISION = 10 ** 12


@dataclass
class PoolInfo:
    """State of one chef pool."""
    staking_token: str
    reward_per_second: int
    last_reward_time: int
    acc_reward_per_share: int = 0
    total_staked: int = 0


@dataclass
class UserInfo:
    amount: int = 0
    reward_debt: int = 0


@dataclass
class ChefState:
    pools: List[PoolInfo] = field(default_factory=list)
    users: Dict[int, Dict[str, UserInfo]] = field(default_factory=dict)


class MasterChefFarm(FarmAdapter, Stateful):
    """
    MasterChef farm adapter.

    Features:
    - Any number of pools, identified by integer pool id
    - Per-pool emission rate, changeable by the chef operator
    - Rewards minted on claim
    - Configurable name for the pending-rewards view (pendingCake,
      pendingShare, ...), resolved by strategies at read time
    """

    _snapshot_fields = ("state",)

    def __init__(
        self,
        chain: Chain,
        reward_token: str,
        address: str = "masterchef",
        pending_function: str = "pending_reward",
    ):
        """
        Initialize MasterChef farm.

        Args:
            chain: Host chain
            reward_token: Token paid as reward
            address: Farm address on the ledger
            pending_function: Name under which the pending view is exposed
        """
        self.chain = chain
        self.ledger = chain.ledger
        self.reward_token = reward_token
        self.address = address
        self.state = ChefState()
        if pending_function != "pending_reward":
            setattr(self, pending_function, self.pending_reward)
        chain.register(self)

        logger.info(f"MasterChefFarm {address} initialized (reward: {reward_token})")

    def add_pool(self, staking_token: str, reward_per_second: int) -> int:
        """
        Add a pool and return its id.

        Args:
            staking_token: Token accepted by the pool
            reward_per_second: Reward units emitted per second
        """
        self.state.pools.append(PoolInfo(
            staking_token=staking_token,
            reward_per_second=reward_per_second,
            last_reward_time=self.chain.now(),
        ))
        pool_id = len(self.state.pools) - 1
        self.state.users[pool_id] = {}
        logger.info(f"Added pool {pool_id} for {staking_token} at {reward_per_second}/s")
        return pool_id

    def set_reward_per_second(self, pool_id: int, reward_per_second: int):
        self._update_pool(pool_id)
        self._pool(pool_id).reward_per_second = reward_per_second

    def _pool(self, pool_id) -> PoolInfo:
        if not isinstance(pool_id, int) or not 0 <= pool_id < len(self.state.pools):
            raise FarmError(f"Unknown pool id {pool_id!r} on {self.address}")
        return self.state.pools[pool_id]

    def _user(self, pool_id: int, who: str) -> UserInfo:
        users = self.state.users[pool_id]
        if who not in users:
            users[who] = UserInfo()
        return users[who]

    def _update_pool(self, pool_id: int):
        pool = self._pool(pool_id)
        now = self.chain.now()
        if now <= pool.last_reward_time:
            return
        if pool.total_staked > 0:
            elapsed = now - pool.last_reward_time
            reward = elapsed * pool.reward_per_second
            pool.acc_reward_per_share += reward * ACC_PRECISION // pool.total_staked
        pool.last_reward_time = now

    def _accrued(self, pool: PoolInfo, user: UserInfo, acc: int) -> int:
        return user.amount * acc // ACC_PRECISION - user.reward_debt

    def _pay_pending(self, pool_id: int, user: UserInfo, recipient: str):
        pool = self._pool(pool_id)
        pending = self._accrued(pool, user, pool.acc_reward_per_share)
        if pending > 0:
            self.ledger.mint(self.reward_token, recipient, pending)
            logger.debug(f"Paid {pending} {self.reward_token} to {recipient} from pool {pool_id}")

    def _sync_debt(self, pool_id: int, user: UserInfo):
        user.reward_debt = user.amount * self._pool(pool_id).acc_reward_per_share // ACC_PRECISION

    def staking_token(self, pool_id) -> str:
        return self._pool(pool_id).staking_token

    def deposit(self, pool_id, amount: int, on_behalf_of: str) -> None:
        pool = self._pool(pool_id)
        self._update_pool(pool_id)
        user = self._user(pool_id, on_behalf_of)
        self._pay_pending(pool_id, user, on_behalf_of)
        if amount > 0:
            self.ledger.transfer_from(pool.staking_token, self.address, on_behalf_of, self.address, amount)
            user.amount += amount
            pool.total_staked += amount
        self._sync_debt(pool_id, user)

    def withdraw(self, pool_id, amount: int, on_behalf_of: str) -> None:
        pool = self._pool(pool_id)
        user = self._user(pool_id, on_behalf_of)
        if user.amount < amount:
            raise FarmError(
                f"withdraw: {on_behalf_of} has {user.amount} staked in pool {pool_id}, asked {amount}"
            )
        self._update_pool(pool_id)
        self._pay_pending(pool_id, user, on_behalf_of)
        if amount > 0:
            user.amount -= amount
            pool.total_staked -= amount
            self.ledger.transfer(pool.staking_token, self.address, on_behalf_of, amount)
        self._sync_debt(pool_id, user)

    def harvest_rewards(self, pool_id, recipient: str) -> None:
        # Chefs claim through a zero-amount deposit.
        self.deposit(pool_id, 0, recipient)

    def staked_balance(self, pool_id, who: str) -> int:
        self._pool(pool_id)
        user = self.state.users[pool_id].get(who)
        return user.amount if user else 0

    def pending_reward(self, pool_id, who: str) -> int:
        pool = self._pool(pool_id)
        user = self.state.users[pool_id].get(who)
        if user is None:
            return 0
        acc = pool.acc_reward_per_share
        now = self.chain.now()
        if now > pool.last_reward_time and pool.total_staked > 0:
            reward = (now - pool.last_reward_time) * pool.reward_per_second
            acc += reward * ACC_PRECISION // pool.total_staked
        return self._accrued(pool, user, acc)

    def pending_rewards(self, pool_id, who: str) -> int:
        return self.pending_reward(pool_id, who)

    def emergency_withdraw(self, pool_id, who: str) -> None:
        pool = self._pool(pool_id)
        user = self._user(pool_id, who)
        amount = user.amount
        user.amount = 0
        user.reward_debt = 0
        pool.total_staked -= amount
        if amount > 0:
            self.ledger.transfer(pool.staking_token, self.address, who, amount)
        logger.warning(f"Emergency withdraw of {amount} from pool {pool_id} for {who}")
