"""
Balance accounting and reward telemetry.

`total_controlled()` is what the vault prices shares with. The reward
reads (`rewards_available`, `call_reward`) are estimates only: any failure
in the farm's pending view or the router quote is logged and reported as
zero, never raised.

The accountant also separates principal from reward value held by the
strategy. Two kinds of balance are not fee-bearing even though they sit in
tokens the harvest charges fees on:
- idle want principal, when want is also the reward or the native token
- native carried over from an earlier compounding, whose fees were paid
"""

import logging

from .context import StrategyContext
from .routes import needs_swap

logger = logging.getLogger(__name__)


class BalanceAccountant:
    """Reads a strategy's idle, deployed and pending balances."""

    def __init__(self, ctx: StrategyContext):
        self.ctx = ctx

    def balance_of_want(self) -> int:
        """
        Want held idle by the strategy.

        Returns:
            Raw want balance, including farm rewards paid out as want that
            the next harvest has not processed yet
        """
        ctx = self.ctx
        return ctx.ledger.balance_of(ctx.params.want, ctx.address)

    def balance_of_pool(self) -> int:
        """
        Want staked in the farm.

        Returns:
            The farm adapter's staked balance for this strategy's pool
        """
        ctx = self.ctx
        return ctx.farm.staked_balance(ctx.params.pool_id, ctx.address)

    def total_controlled(self) -> int:
        return self.balance_of_want() + self.balance_of_pool()

    def unharvested_want(self) -> int:
        """Want-denominated rewards waiting for a harvest, capped at the idle balance."""
        return min(self.ctx.state.unharvested_want, self.balance_of_want())

    def idle_principal(self) -> int:
        """
        Idle want that belongs to depositors.

        Returns:
            Idle want minus rewards the farm paid out as want outside a
            harvest
        """
        return self.balance_of_want() - self.unharvested_want()

    def native_carry(self) -> int:
        """
        Native left from the previous compounding, already net of fees.

        Returns:
            0 when native is want (leftover native is then principal)
        """
        ctx = self.ctx
        params = ctx.params
        if params.native == params.want:
            return 0
        return min(ctx.state.native_carry, ctx.ledger.balance_of(params.native, ctx.address))

    def fee_bearing(self, token: str, principal: int) -> int:
        """
        Balance of `token` the next fee split may charge.

        Args:
            token: Reward or native token
            principal: Idle want principal to exclude when `token` is want

        Returns:
            Held balance less want principal and less the native carry
        """
        ctx = self.ctx
        balance = ctx.ledger.balance_of(token, ctx.address)
        if token == ctx.params.want:
            balance -= principal
        if token == ctx.params.native:
            balance -= self.native_carry()
        return max(balance, 0)

    def record_farm_payout(self, expected_want: int) -> int:
        """
        Book want the farm paid beyond what a deposit or withdraw moved.

        Chef-style farms settle pending rewards on every deposit and
        withdraw. When the reward token is want, that payout lands in the
        idle balance and would otherwise pass for principal.

        Args:
            expected_want: Idle want the strategy should hold after the call

        Returns:
            Reward amount booked
        """
        received = self.balance_of_want() - expected_want
        if received <= 0:
            return 0
        ctx = self.ctx
        ctx.state.unharvested_want += received
        logger.debug(f"{ctx.address} received {received} {ctx.params.want} of rewards from the farm")
        return received

    def rewards_available(self) -> int:
        """
        Pending farm rewards, via the configured pending-rewards view.

        Returns:
            Pending reward amount, or 0 if the view is missing or fails
        """
        ctx = self.ctx
        name = ctx.state.pending_rewards_function
        try:
            view = getattr(ctx.farm, name)
            return int(view(ctx.params.pool_id, ctx.address))
        except Exception as e:
            logger.warning(f"rewards_available degraded to 0 for {ctx.address} ({name}): {e}")
            return 0

    def native_value_of_rewards(self) -> int:
        """
        Native the next harvest would split, at current router prices.

        Pending rewards plus fee-bearing output held are quoted through the
        output route; fee-bearing native is added as is. Principal and the
        native carry are left out.

        Returns:
            Estimated native amount, 0 when the quote fails
        """
        ctx = self.ctx
        params = ctx.params
        route = params.routes.output_to_native
        principal = self.idle_principal()

        output_amount = self.rewards_available() + self.fee_bearing(params.output, principal)
        native_amount = 0
        if output_amount > 0:
            if needs_swap(route):
                try:
                    native_amount = ctx.router.quote_out(output_amount, route)
                except Exception as e:
                    logger.warning(f"Reward quote degraded to 0 for {ctx.address}: {e}")
                    native_amount = 0
            else:
                native_amount = output_amount

        if params.native != params.output:
            native_amount += self.fee_bearing(params.native, principal)
        return native_amount

    def call_reward(self) -> int:
        """
        Estimated call fee paid to whoever harvests next.

        Returns:
            Call fee share of `native_value_of_rewards()`
        """
        return self.ctx.splitter.call_fee_of(self.native_value_of_rewards())
