"""
Auto-compounding strategy.

A Strategy stakes one want token in one farm pool and periodically
compounds the farm's rewards back into want. It assembles:
- BalanceAccountant (balance reads and reward telemetry)
- LifecycleGuard (pause state machine, allowances, withdrawal fee policy)
- HarvestEngine (claim, fee split, conversion, redeposit)

Every state-changing entry point runs inside one chain transaction, so a
failing call leaves no partial state behind.
"""

import logging
from typing import Any, Optional, Sequence

from compounder.core.chain import Chain, Stateful
from compounder.core.errors import ConfigError, FeeConfigError, RouteConfigError
from compounder.core.roles import Role, RoleSet, require_any_role, require_role
from compounder.engine.accountant import BalanceAccountant
from compounder.engine.context import HarvestPolicy, StrategyContext, StrategyParams, StrategyState
from compounder.engine.events import Deposit, EventBus, FeeConfigChanged, Withdraw
from compounder.engine.fees import FeeSchedule
from compounder.engine.harvest import HarvestEngine, HarvestResult
from compounder.engine.lifecycle import LifecycleGuard
from compounder.engine.routes import StrategyRoutes
from compounder.logging_config import ActivityLogger, get_activity_logger
from integrations.farms.base import FarmAdapter
from integrations.routers.base import RouterAdapter

logger = logging.getLogger(__name__)


class Strategy(Stateful):
    """
    One (want, farm pool) compounding position.

    Vault surface: deposit, withdraw, before_deposit, balance_of, retire_strat.
    Manager surface: pause, unpause, panic, fee and role setters.
    Harvest surface: harvest, harvest_for, manager_harvest.
    """

    _snapshot_fields = ("state",)

    def __init__(
        self,
        chain: Chain,
        farm: FarmAdapter,
        router: RouterAdapter,
        want: str,
        pool_id: Any,
        roles: RoleSet,
        treasury: str,
        output_to_native: Sequence[str],
        native_to_want: Optional[Sequence[str]] = None,
        native_to_lp0: Optional[Sequence[str]] = None,
        native_to_lp1: Optional[Sequence[str]] = None,
        fee_schedule: Optional[FeeSchedule] = None,
        policy: Optional[HarvestPolicy] = None,
        harvest_on_deposit: bool = False,
        pending_rewards_function: str = "pending_rewards",
        address: str = "strategy",
        activity: Optional[ActivityLogger] = None,
    ):
        """
        Deploy a strategy.

        Args:
            chain: Host chain
            farm: Farm adapter holding the staked want
            router: Router used for every conversion
            want: Token the strategy accumulates
            pool_id: Farm pool staking `want`
            roles: Owner, keeper, vault and strategist addresses
            treasury: Treasury fee recipient
            output_to_native: Route selling the farm reward for native
            native_to_want: Route into want (single-asset want)
            native_to_lp0: Route into the first LP leg (LP want)
            native_to_lp1: Route into the second LP leg (LP want)
            fee_schedule: Fee shares (default: FeeSchedule())
            policy: Harvest policy (default: harvest blocked while paused)
            harvest_on_deposit: Harvest before every vault deposit
            pending_rewards_function: Name of the farm's pending-rewards view
            address: Strategy address on the ledger
            activity: Activity logger (default: shared instance)

        Raises:
            RouteConfigError: If a route or the farm pool does not match want
            FeeConfigError: If the fee schedule is invalid
        """
        if not output_to_native:
            raise RouteConfigError("output_to_native is required")

        lp_legs = None
        if native_to_lp0 is not None or native_to_lp1 is not None:
            lp_legs = tuple(router.lp_tokens(want))

        routes = StrategyRoutes.build(
            output=output_to_native[0],
            native=output_to_native[-1],
            want=want,
            output_to_native=output_to_native,
            native_to_want=native_to_want,
            native_to_lp0=native_to_lp0,
            native_to_lp1=native_to_lp1,
            lp_legs=lp_legs,
        )

        staking_token = farm.staking_token(pool_id)
        if staking_token != want:
            raise RouteConfigError(f"Pool {pool_id!r} of {farm.address} stakes {staking_token}, not {want}")
        if routes.output != farm.reward_token:
            raise RouteConfigError(
                f"output_to_native starts at {routes.output}, farm pays {farm.reward_token}"
            )

        schedule = fee_schedule or FeeSchedule()
        standard_withdrawal_fee = schedule.withdrawal_fee
        if harvest_on_deposit:
            schedule = schedule.with_withdrawal_fee(0)

        self.chain = chain
        self.state = StrategyState(
            roles=roles,
            fee_schedule=schedule,
            standard_withdrawal_fee=standard_withdrawal_fee,
            harvest_on_deposit=harvest_on_deposit,
            pending_rewards_function=pending_rewards_function,
        )
        params = StrategyParams(
            address=address,
            want=want,
            pool_id=pool_id,
            routes=routes,
            treasury=treasury,
            lp_legs=lp_legs,
        )
        self.events = EventBus(chain)
        self.ctx = StrategyContext(
            chain=chain,
            farm=farm,
            router=router,
            params=params,
            state=self.state,
            policy=policy or HarvestPolicy(),
            events=self.events,
            activity=activity or get_activity_logger(),
        )
        self.accountant = BalanceAccountant(self.ctx)
        self.guard = LifecycleGuard(self.ctx)
        self.engine = HarvestEngine(self.ctx, self.accountant, self.guard, self._deposit_idle)

        chain.register(self)
        self.guard.on_activate()

        logger.info(
            f"Strategy {address} deployed: want={want} pool={pool_id!r} "
            f"output={routes.output} native={routes.native} lp={lp_legs is not None}"
        )

    def restore(self, state: dict):
        # The context shares this object; update it instead of rebinding.
        self.state.__dict__.update(state["state"].__dict__)

    @property
    def address(self) -> str:
        return self.ctx.params.address

    @property
    def want(self) -> str:
        return self.ctx.params.want

    @property
    def output(self) -> str:
        return self.ctx.params.output

    @property
    def native(self) -> str:
        return self.ctx.params.native

    @property
    def routes(self) -> StrategyRoutes:
        return self.ctx.params.routes

    @property
    def lp_legs(self):
        return self.ctx.params.lp_legs

    @property
    def roles(self) -> RoleSet:
        return self.state.roles

    @property
    def vault(self) -> str:
        return self.state.roles.vault

    @property
    def fee_schedule(self) -> FeeSchedule:
        return self.state.fee_schedule

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def retired(self) -> bool:
        return self.state.retired

    @property
    def harvest_on_deposit(self) -> bool:
        return self.state.harvest_on_deposit

    @property
    def last_harvest(self) -> int:
        return self.state.last_harvest

    # Reads

    def balance_of(self) -> int:
        """Total want controlled: idle plus staked."""
        return self.accountant.total_controlled()

    def balance_of_want(self) -> int:
        return self.accountant.balance_of_want()

    def balance_of_pool(self) -> int:
        return self.accountant.balance_of_pool()

    def rewards_available(self) -> int:
        return self.accountant.rewards_available()

    def call_reward(self) -> int:
        return self.accountant.call_reward()

    # Vault surface

    def _deposit_idle(self) -> int:
        """
        Stake idle principal.

        Rewards the farm pays out as want stay idle for the next harvest,
        so their fees are still charged.

        Returns:
            Amount staked
        """
        ctx = self.ctx
        books = self.accountant
        amount = books.idle_principal()
        if amount > 0:
            remaining = books.balance_of_want() - amount
            ctx.farm.deposit(ctx.params.pool_id, amount, ctx.address)
            books.record_farm_payout(remaining)
        return amount

    def deposit(self, caller: Optional[str] = None) -> int:
        """
        Stake all idle want in the farm.

        Returns:
            Amount staked

        Raises:
            PausedError: If the strategy is paused
        """
        with self.chain.transaction():
            self.guard.require_not_paused("deposit")
            staked = self._deposit_idle()
            tvl = self.balance_of()
            self.events.emit(Deposit(strategy=self.address, timestamp=self.chain.now(), tvl=tvl))

        if staked:
            self.ctx.activity.log_deposit(self.address, staked, tvl)
        return staked

    def withdraw(self, amount: int, caller: str, origin: Optional[str] = None) -> int:
        """
        Send `amount` of want (less the withdrawal fee) to the vault.

        Args:
            amount: Want requested by the vault
            caller: Must be the vault
            origin: Account that started the withdrawal (default: caller);
                the owner pays no withdrawal fee

        Returns:
            Want delivered to the vault; the fee stays in the strategy
        """
        ctx = self.ctx
        origin = origin or caller
        with self.chain.transaction():
            require_role(self.state.roles, caller, Role.VAULT, "withdraw")

            books = self.accountant
            idle = books.idle_principal()
            if idle < amount:
                expected = books.balance_of_want() + amount - idle
                ctx.farm.withdraw(ctx.params.pool_id, amount - idle, ctx.address)
                books.record_farm_payout(expected)
                idle = books.idle_principal()
            amount = min(idle, amount)

            fee = self.guard.withdrawal_fee_for(amount, origin)
            delivered = amount - fee
            if delivered > 0:
                ctx.ledger.transfer(self.want, ctx.address, self.state.roles.vault, delivered)

            tvl = self.balance_of()
            self.events.emit(Withdraw(strategy=self.address, timestamp=self.chain.now(), tvl=tvl))

        ctx.activity.log_withdraw(self.address, delivered, fee, self.state.roles.vault, tvl)
        return delivered

    def before_deposit(self, caller: str, origin: Optional[str] = None) -> Optional[HarvestResult]:
        """Vault hook: harvest first when harvest-on-deposit is set."""
        if not self.state.harvest_on_deposit:
            return None
        require_role(self.state.roles, caller, Role.VAULT, "before_deposit")
        return self.engine.harvest(origin or caller)

    def retire_strat(self, caller: str) -> int:
        """Unwind everything to the vault. Vault only, once."""
        with self.chain.transaction():
            return self.guard.retire(caller)

    # Harvest surface

    def harvest(self, caller: str) -> HarvestResult:
        """Harvest and pay the call fee to the caller."""
        return self.engine.harvest(caller)

    def harvest_for(self, caller: str, call_fee_recipient: str) -> HarvestResult:
        """Harvest and pay the call fee to `call_fee_recipient`."""
        return self.engine.harvest(caller, call_fee_recipient)

    def manager_harvest(self, caller: str) -> HarvestResult:
        """Harvest restricted to managers; the call fee goes to the caller."""
        require_role(self.state.roles, caller, Role.MANAGER, "manager_harvest")
        return self.engine.harvest(caller)

    # Manager surface

    def pause(self, caller: str):
        """Manager only; see LifecycleGuard.pause."""
        with self.chain.transaction():
            self.guard.pause(caller)

    def unpause(self, caller: str):
        """Manager only; re-grants allowances and stakes idle principal."""
        with self.chain.transaction():
            self.guard.unpause(caller, self._deposit_idle)

    def panic(self, caller: str) -> int:
        """
        Emergency exit from the farm, then pause.

        Returns:
            Want recovered from the farm
        """
        with self.chain.transaction():
            return self.guard.panic(caller)

    def _set_fee_schedule(self, schedule: FeeSchedule):
        self.state.fee_schedule = schedule
        self.events.emit(FeeConfigChanged(
            strategy=self.address,
            timestamp=self.chain.now(),
            call_fee=schedule.call_fee,
            treasury_fee=schedule.treasury_fee,
            strategist_fee=schedule.strategist_fee,
            withdrawal_fee=schedule.withdrawal_fee,
        ))
        logger.info(f"Fee schedule of {self.address} set to {schedule}")

    def set_call_fee(self, call_fee: int, caller: str):
        """
        Change the call fee share of future harvests.

        Args:
            call_fee: Parts per MAX_FEE, at most MAX_CALL_FEE
            caller: Must be a manager

        Raises:
            AuthorizationError: If caller is not a manager
            FeeConfigError: If the new share breaks a cap
        """
        with self.chain.transaction():
            require_role(self.state.roles, caller, Role.MANAGER, "set_call_fee")
            self._set_fee_schedule(self.state.fee_schedule.with_call_fee(call_fee))

    def set_withdrawal_fee(self, withdrawal_fee: int, caller: str):
        """
        Change the withdrawal fee.

        The new rate also becomes the standard fee that turning
        harvest-on-deposit off restores.

        Args:
            withdrawal_fee: Parts per WITHDRAWAL_MAX, at most WITHDRAWAL_FEE_CAP
            caller: Must be a manager

        Raises:
            FeeConfigError: If above the cap, or nonzero while
                harvest-on-deposit is set
        """
        with self.chain.transaction():
            require_role(self.state.roles, caller, Role.MANAGER, "set_withdrawal_fee")
            if self.state.harvest_on_deposit and withdrawal_fee > 0:
                raise FeeConfigError("Withdrawal fee must stay 0 while harvest_on_deposit is set")
            self._set_fee_schedule(self.state.fee_schedule.with_withdrawal_fee(withdrawal_fee))
            if not self.state.harvest_on_deposit:
                self.state.standard_withdrawal_fee = withdrawal_fee

    def set_harvest_on_deposit(self, enabled: bool, caller: str):
        """
        Toggle harvesting before every vault deposit.

        Enabling forces the withdrawal fee to 0; disabling restores the
        standard fee (the last one set while the flag was off).

        Args:
            enabled: New flag value
            caller: Must be a manager
        """
        with self.chain.transaction():
            require_role(self.state.roles, caller, Role.MANAGER, "set_harvest_on_deposit")
            self.state.harvest_on_deposit = enabled
            fee = 0 if enabled else self.state.standard_withdrawal_fee
            self._set_fee_schedule(self.state.fee_schedule.with_withdrawal_fee(fee))

    def set_strategist(self, strategist: str, caller: str):
        """Replace the strategist fee recipient. The current strategist or a manager may call."""
        with self.chain.transaction():
            roles = self.state.roles
            if caller != roles.strategist:
                require_any_role(roles, caller, Role.MANAGER, operation="set_strategist")
            roles.strategist = strategist
        logger.info(f"Strategist of {self.address} set to {strategist}")

    def set_keeper(self, keeper: str, caller: str):
        """Replace the keeper. Manager only."""
        with self.chain.transaction():
            require_role(self.state.roles, caller, Role.MANAGER, "set_keeper")
            self.state.roles.keeper = keeper
        logger.info(f"Keeper of {self.address} set to {keeper}")

    def set_pending_rewards_function_name(self, name: str, caller: str):
        """
        Point `rewards_available` at another farm view.

        Args:
            name: Attribute of the farm adapter taking (pool_id, who)
            caller: Must be a manager

        Raises:
            ConfigError: If name is empty
        """
        with self.chain.transaction():
            require_role(self.state.roles, caller, Role.MANAGER, "set_pending_rewards_function_name")
            if not name:
                raise ConfigError("Pending rewards function name cannot be empty")
            self.state.pending_rewards_function = name
        logger.info(f"Pending rewards function of {self.address} set to {name}")
