"""Shared state handed to the accountant, lifecycle guard and harvest engine."""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from compounder.core.chain import Chain
from compounder.core.roles import RoleSet
from compounder.logging_config import ActivityLogger
from integrations.farms.base import FarmAdapter
from integrations.routers.base import RouterAdapter

from .events import EventBus
from .fees import FeeSchedule, FeeSplitter
from .routes import StrategyRoutes


@dataclass(frozen=True)
class StrategyParams:
    """
    Identity of a strategy, fixed at construction.

    Attributes:
        address: Strategy address on the ledger
        want: Token the strategy accumulates
        pool_id: Farm pool identifier
        routes: Validated conversion routes
        treasury: Recipient of the treasury fee
        lp_legs: (token0, token1) when want is an LP token
    """
    address: str
    want: str
    pool_id: Any
    routes: StrategyRoutes
    treasury: str
    lp_legs: Optional[Tuple[str, str]] = None

    @property
    def output(self) -> str:
        return self.routes.output

    @property
    def native(self) -> str:
        return self.routes.native


@dataclass(frozen=True)
class HarvestPolicy:
    """
    Harvest behavior that differs between deployments.

    Attributes:
        allow_when_paused: Whether harvest may run on a paused strategy
        swap_deadline: Seconds added to the current time for swap deadlines
    """
    allow_when_paused: bool = False
    swap_deadline: int = 600


@dataclass
class StrategyState:
    """Mutable strategy fields; snapshotted by the chain on every call."""
    roles: RoleSet
    fee_schedule: FeeSchedule
    standard_withdrawal_fee: int
    harvest_on_deposit: bool = False
    paused: bool = False
    retired: bool = False
    last_harvest: int = 0
    pending_rewards_function: str = "pending_rewards"
    # Farm rewards paid out as want by a deposit or withdraw, not yet harvested
    unharvested_want: int = 0
    # Native left over from the last compounding; its fees were already paid
    native_carry: int = 0


class StrategyContext:
    """Everything one strategy's components need, in one place."""

    def __init__(
        self,
        chain: Chain,
        farm: FarmAdapter,
        router: RouterAdapter,
        params: StrategyParams,
        state: StrategyState,
        policy: HarvestPolicy,
        events: EventBus,
        activity: ActivityLogger,
    ):
        self.chain = chain
        self.ledger = chain.ledger
        self.farm = farm
        self.router = router
        self.params = params
        self.state = state
        self.policy = policy
        self.events = events
        self.activity = activity

    @property
    def address(self) -> str:
        return self.params.address

    @property
    def splitter(self) -> FeeSplitter:
        return FeeSplitter(self.state.fee_schedule)

    def deadline(self) -> int:
        return self.chain.now() + self.policy.swap_deadline
