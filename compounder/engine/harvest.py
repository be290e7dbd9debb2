"""
Harvest Engine

Runs one compounding cycle for a strategy:
- Claim farm rewards
- Convert rewards to the fee-bearing native token
- Pay call, treasury and strategist fees
- Convert the remainder into want (or both LP legs, then LP)
- Stake the new want

The whole cycle runs in one chain transaction. Any failure rolls every step
back and the original exception reaches the caller; no fees are charged and
nothing is retried here.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from compounder.core.errors import PausedError

from .accountant import BalanceAccountant
from .context import StrategyContext
from .events import ChargedFees, StratHarvest
from .fees import FeeSplit
from .lifecycle import LifecycleGuard
from .routes import needs_swap

logger = logging.getLogger(__name__)


@dataclass
class HarvestResult:
    """
    Outcome of one harvest call.

    `harvested` is False for the empty-farm no-op, in which case every
    amount is zero and no event was emitted.
    """
    harvested: bool
    harvester: str
    call_fee_recipient: str
    timestamp: int
    output_claimed: int = 0
    native_collected: int = 0
    fees: FeeSplit = field(default_factory=lambda: FeeSplit(0, 0, 0, 0))
    want_harvested: int = 0
    tvl: int = 0


class HarvestEngine:
    """
    Claim, split, convert and redeposit.

    Principal is never charged: idle want held before the claim is excluded
    from the fee-bearing balance even when want is also the reward or the
    native token. Native left over from the previous compounding is
    compounded again but not charged again.
    """

    def __init__(
        self,
        ctx: StrategyContext,
        accountant: BalanceAccountant,
        guard: LifecycleGuard,
        redeposit: Callable[[], int],
    ):
        """
        Initialize harvest engine.

        Args:
            ctx: Strategy context
            accountant: Separates principal and carry from fee-bearing balances
            guard: Lifecycle guard, used for the paused-harvest policy
            redeposit: Stakes all idle want, returns the amount staked
        """
        self.ctx = ctx
        self.accountant = accountant
        self.guard = guard
        self.redeposit = redeposit

    def harvest(self, harvester: str, call_fee_recipient: Optional[str] = None) -> HarvestResult:
        """
        Run one harvest cycle.

        Args:
            harvester: Address that triggered the harvest
            call_fee_recipient: Receiver of the call fee (default: harvester)

        Returns:
            HarvestResult describing what happened

        Raises:
            PausedError: If paused and the policy forbids paused harvests
            ExternalCallError: If any farm, router or token call fails
        """
        ctx = self.ctx
        recipient = call_fee_recipient or harvester

        if ctx.state.paused and not ctx.policy.allow_when_paused:
            raise PausedError(f"{ctx.address} is paused: harvest rejected")

        try:
            with ctx.chain.transaction():
                if ctx.state.paused:
                    with self.guard.temporary_router_allowances():
                        result = self._run(harvester, recipient)
                else:
                    result = self._run(harvester, recipient)
        except Exception as e:
            ctx.activity.log_harvest(ctx.address, harvester, success=False, error=f"{type(e).__name__}: {e}")
            logger.error(f"Harvest of {ctx.address} by {harvester} failed: {e}")
            raise

        if result.harvested:
            ctx.activity.log_harvest(
                ctx.address,
                harvester,
                success=True,
                want_harvested=result.want_harvested,
                tvl=result.tvl,
                call_fee=result.fees.call_fee,
            )
        else:
            logger.info(f"Nothing to harvest on {ctx.address}")
        return result

    def _run(self, harvester: str, recipient: str) -> HarvestResult:
        ctx = self.ctx
        params = ctx.params
        state = ctx.state
        books = self.accountant
        now = ctx.chain.now()
        deadline = ctx.deadline()
        principal = books.idle_principal()

        ctx.farm.harvest_rewards(params.pool_id, ctx.address)

        output_amount = books.fee_bearing(params.output, principal)
        native_amount = books.fee_bearing(params.native, principal)
        if output_amount == 0 and native_amount == 0:
            return HarvestResult(
                harvested=False,
                harvester=harvester,
                call_fee_recipient=recipient,
                timestamp=now,
            )

        carry = books.native_carry()
        route = params.routes.output_to_native
        if needs_swap(route) and output_amount > 0:
            ctx.router.swap_exact_in(output_amount, route, 0, ctx.address, deadline)
        # Want rewards are now native or about to be compounded
        state.unharvested_want = 0

        collected = books.fee_bearing(params.native, principal)
        split = ctx.splitter.split(collected)
        self._charge_fees(split, recipient, now)

        if split.compound_amount + carry > 0:
            self._compound(split.compound_amount + carry, deadline)
        state.native_carry = 0 if params.native == params.want else ctx.ledger.balance_of(params.native, ctx.address)

        want_harvested = ctx.ledger.balance_of(params.want, ctx.address) - principal
        if not state.paused:
            self.redeposit()

        state.last_harvest = now
        tvl = books.total_controlled()
        ctx.events.emit(StratHarvest(
            strategy=ctx.address,
            timestamp=now,
            harvester=harvester,
            want_harvested=want_harvested,
            tvl=tvl,
        ))

        logger.info(
            f"Harvested {ctx.address}: claimed {output_amount} {params.output}, "
            f"fees {split.total_fees} {params.native}, want +{want_harvested}"
        )
        return HarvestResult(
            harvested=True,
            harvester=harvester,
            call_fee_recipient=recipient,
            timestamp=now,
            output_claimed=output_amount,
            native_collected=collected,
            fees=split,
            want_harvested=want_harvested,
            tvl=tvl,
        )

    def _charge_fees(self, split: FeeSplit, recipient: str, now: int):
        ctx = self.ctx
        native = ctx.params.native
        payouts = (
            (recipient, split.call_fee),
            (ctx.params.treasury, split.treasury_fee),
            (ctx.state.roles.strategist, split.strategist_fee),
        )
        for to, amount in payouts:
            if amount > 0:
                ctx.ledger.transfer(native, ctx.address, to, amount)

        ctx.events.emit(ChargedFees(
            strategy=ctx.address,
            timestamp=now,
            call_fee=split.call_fee,
            treasury_fee=split.treasury_fee,
            strategist_fee=split.strategist_fee,
            call_fee_recipient=recipient,
        ))

    def _compound(self, amount: int, deadline: int):
        """
        Turn `amount` of native into want.

        For LP want, liquidity is only added once both legs are held; an
        amount too small to buy either leg stays behind as native carry.
        """
        ctx = self.ctx
        params = ctx.params
        routes = params.routes

        if not params.lp_legs:
            if needs_swap(routes.native_to_want):
                ctx.router.swap_exact_in(amount, routes.native_to_want, 0, ctx.address, deadline)
            return

        lp0, lp1 = params.lp_legs
        half = amount // 2
        if lp0 != params.native and half > 0:
            ctx.router.swap_exact_in(half, routes.native_to_lp0, 0, ctx.address, deadline)
        if lp1 != params.native and amount - half > 0:
            ctx.router.swap_exact_in(amount - half, routes.native_to_lp1, 0, ctx.address, deadline)

        lp0_balance = ctx.ledger.balance_of(lp0, ctx.address)
        lp1_balance = ctx.ledger.balance_of(lp1, ctx.address)
        if lp0_balance == 0 or lp1_balance == 0:
            logger.debug(f"{ctx.address}: {amount} {params.native} too small to add liquidity")
            return
        ctx.router.add_liquidity(lp0, lp1, lp0_balance, lp1_balance, 1, 1, ctx.address, deadline)
