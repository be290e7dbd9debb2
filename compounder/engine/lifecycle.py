"""
Pause / unpause / panic / retire state machine and allowance lifecycle.

States: Active <-> Paused, and Active|Paused -> Retired (one way).
Allowances for the farm and router exist only while Active; they are
granted by `on_activate` and revoked by `on_deactivate`.
"""

import logging
from contextlib import contextmanager
from typing import Callable, List, Tuple

from compounder.core.errors import NotPausedError, PausedError, StrategyRetiredError
from compounder.core.ledger import MAX_UINT256
from compounder.core.roles import Role, require_role

from .context import StrategyContext
from .events import LifecycleChanged

logger = logging.getLogger(__name__)


class LifecycleGuard:
    """
    Owns the pause flag, the retired flag and the strategy's allowances.

    Features:
    - Manager-only pause, unpause and panic
    - Vault-only retire
    - Withdrawal fee policy (owner and paused withdrawals are free)
    """

    def __init__(self, ctx: StrategyContext):
        self.ctx = ctx

    @property
    def paused(self) -> bool:
        return self.ctx.state.paused

    @property
    def retired(self) -> bool:
        return self.ctx.state.retired

    def farm_allowances(self) -> List[Tuple[str, str]]:
        """
        Allowances the farm needs to pull want on deposit.

        Returns:
            List of (token, spender) pairs
        """
        ctx = self.ctx
        return [(ctx.params.want, ctx.farm.address)]

    def router_allowances(self) -> List[Tuple[str, str]]:
        """
        Allowances the router needs for harvest conversions.

        Covers the reward token, native and, for LP want, both legs (for
        add_liquidity). Duplicates are dropped when tokens coincide.

        Returns:
            List of (token, spender) pairs
        """
        ctx = self.ctx
        params = ctx.params
        tokens = [params.output, params.native]
        if params.lp_legs:
            tokens.extend(params.lp_legs)
        grants = []
        for token in tokens:
            if (token, ctx.router.address) not in grants:
                grants.append((token, ctx.router.address))
        return grants

    def required_allowances(self) -> List[Tuple[str, str]]:
        """Every allowance an active strategy holds, farm grants first."""
        grants = self.farm_allowances()
        for grant in self.router_allowances():
            if grant not in grants:
                grants.append(grant)
        return grants

    def _set_allowances(self, grants: List[Tuple[str, str]], amount: int):
        ctx = self.ctx
        for token, spender in grants:
            ctx.ledger.approve(token, ctx.address, spender, amount)

    def on_activate(self):
        """Grant every allowance the active strategy needs."""
        self._set_allowances(self.required_allowances(), MAX_UINT256)
        logger.debug(f"Granted allowances for {self.ctx.address}")

    def on_deactivate(self):
        """Revoke every standing allowance."""
        self._set_allowances(self.required_allowances(), 0)
        logger.debug(f"Revoked allowances for {self.ctx.address}")

    @contextmanager
    def temporary_router_allowances(self):
        """Router allowances for the duration of one paused-state harvest."""
        grants = self.router_allowances()
        self._set_allowances(grants, MAX_UINT256)
        try:
            yield
        finally:
            self._set_allowances(grants, 0)

    def _record(self, action: str, caller: str, **context):
        ctx = self.ctx
        ctx.events.emit(LifecycleChanged(
            strategy=ctx.address,
            timestamp=ctx.chain.now(),
            action=action,
            caller=caller,
        ))
        ctx.activity.log_lifecycle(ctx.address, action, caller, **context)

    def require_not_paused(self, operation: str):
        """
        Gate for deposit and pause.

        Raises:
            PausedError: If the strategy is paused
        """
        if self.ctx.state.paused:
            raise PausedError(f"{self.ctx.address} is paused: {operation} rejected")

    def pause(self, caller: str):
        """
        Pause deposits (and, by policy, harvests) and revoke allowances.

        Raises:
            AuthorizationError: If caller is not a manager
            PausedError: If already paused
        """
        ctx = self.ctx
        require_role(ctx.state.roles, caller, Role.MANAGER, "pause")
        self.require_not_paused("pause")
        ctx.state.paused = True
        self.on_deactivate()
        self._record("pause", caller)

    def unpause(self, caller: str, deposit_idle: Callable[[], int]):
        """
        Resume: re-grant allowances, then stake any idle want.

        Raises:
            AuthorizationError: If caller is not a manager
            NotPausedError: If the strategy is active

        Args:
            caller: Must be a manager
            deposit_idle: Callback staking idle want, returns amount staked
        """
        ctx = self.ctx
        require_role(ctx.state.roles, caller, Role.MANAGER, "unpause")
        if not ctx.state.paused:
            raise NotPausedError(f"{ctx.address} is not paused")
        ctx.state.paused = False
        self.on_activate()
        staked = deposit_idle()
        self._record("unpause", caller, redeposited=staked)

    def panic(self, caller: str) -> int:
        """
        Pull everything out of the farm, forfeiting pending rewards, then pause.

        Works on an already paused strategy.

        Returns:
            Want recovered from the farm
        """
        ctx = self.ctx
        require_role(ctx.state.roles, caller, Role.MANAGER, "panic")
        before = ctx.ledger.balance_of(ctx.params.want, ctx.address)
        ctx.farm.emergency_withdraw(ctx.params.pool_id, ctx.address)
        recovered = ctx.ledger.balance_of(ctx.params.want, ctx.address) - before
        if not ctx.state.paused:
            ctx.state.paused = True
            self.on_deactivate()
        self._record("panic", caller, recovered=recovered)
        return recovered

    def retire(self, caller: str) -> int:
        """
        Terminal unwind: emergency-withdraw and send all want to the vault.

        Raises:
            AuthorizationError: If caller is not the vault
            StrategyRetiredError: On a second call

        Returns:
            Want forwarded to the vault
        """
        ctx = self.ctx
        roles = ctx.state.roles
        require_role(roles, caller, Role.VAULT, "retire_strat")
        if ctx.state.retired:
            raise StrategyRetiredError(f"{ctx.address} is already retired")
        ctx.farm.emergency_withdraw(ctx.params.pool_id, ctx.address)
        amount = ctx.ledger.balance_of(ctx.params.want, ctx.address)
        if amount > 0:
            ctx.ledger.transfer(ctx.params.want, ctx.address, roles.vault, amount)
        ctx.state.unharvested_want = 0
        ctx.state.retired = True
        self._record("retire", caller, forwarded=amount)
        return amount

    def withdrawal_fee_for(self, amount: int, origin: str) -> int:
        """
        Fee on a withdrawal of `amount` started by `origin`.

        Args:
            amount: Want leaving the strategy
            origin: Account that started the withdrawal

        Returns:
            0 for the owner or while paused, otherwise the scheduled fee
        """
        state = self.ctx.state
        if origin == state.roles.owner or state.paused:
            return 0
        return state.fee_schedule.withdrawal_fee_on(amount)
