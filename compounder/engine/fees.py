"""
Fee schedule and harvest fee split.

Harvest fees are parts-per-MAX_FEE of the fee-bearing (native) balance
collected in one harvest. The withdrawal fee is parts-per-WITHDRAWAL_MAX of
the amount leaving the strategy. All arithmetic is integer floor division, so
the named fees never exceed the nominal schedule and rounding dust stays in
the compounded amount.
"""

import logging
from dataclasses import dataclass, replace

from compounder.core.errors import FeeConfigError

logger = logging.getLogger(__name__)


MAX_FEE = 1000
MAX_CALL_FEE = 111
WITHDRAWAL_MAX = 10000
WITHDRAWAL_FEE_CAP = 50


@dataclass(frozen=True)
class FeeSchedule:
    """
    Harvest and withdrawal fee configuration.

    Attributes:
        call_fee: Share paid to whoever triggers the harvest (per MAX_FEE)
        treasury_fee: Share paid to the protocol treasury (per MAX_FEE)
        strategist_fee: Share paid to the strategist (per MAX_FEE)
        withdrawal_fee: Fee kept on user withdrawals (per WITHDRAWAL_MAX)
    """
    call_fee: int = 5
    treasury_fee: int = 35
    strategist_fee: int = 5
    withdrawal_fee: int = 10

    def __post_init__(self):
        self.validate()

    def validate(self):
        """
        Check every share against its cap.

        Raises:
            FeeConfigError: On a negative share, a call fee above MAX_CALL_FEE,
                harvest shares above MAX_FEE, or a withdrawal fee above
                WITHDRAWAL_FEE_CAP
        """
        for name in ("call_fee", "treasury_fee", "strategist_fee", "withdrawal_fee"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise FeeConfigError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise FeeConfigError(f"{name} cannot be negative: {value}")
        if self.call_fee > MAX_CALL_FEE:
            raise FeeConfigError(f"call_fee {self.call_fee} exceeds cap {MAX_CALL_FEE}")
        if self.total_harvest_fee > MAX_FEE:
            raise FeeConfigError(
                f"Harvest fee shares sum to {self.total_harvest_fee}, above {MAX_FEE}"
            )
        if self.withdrawal_fee > WITHDRAWAL_FEE_CAP:
            raise FeeConfigError(
                f"withdrawal_fee {self.withdrawal_fee} exceeds cap {WITHDRAWAL_FEE_CAP}"
            )

    @property
    def total_harvest_fee(self) -> int:
        return self.call_fee + self.treasury_fee + self.strategist_fee

    def with_call_fee(self, call_fee: int) -> "FeeSchedule":
        return replace(self, call_fee=call_fee)

    def with_withdrawal_fee(self, withdrawal_fee: int) -> "FeeSchedule":
        return replace(self, withdrawal_fee=withdrawal_fee)

    def withdrawal_fee_on(self, amount: int) -> int:
        """Withdrawal fee charged on `amount`, rounded down."""
        return amount * self.withdrawal_fee // WITHDRAWAL_MAX


@dataclass(frozen=True)
class FeeSplit:
    """Result of splitting one harvest's fee-bearing balance."""
    call_fee: int
    treasury_fee: int
    strategist_fee: int
    compound_amount: int

    @property
    def total_fees(self) -> int:
        return self.call_fee + self.treasury_fee + self.strategist_fee

    @property
    def is_empty(self) -> bool:
        return self.total_fees == 0 and self.compound_amount == 0


class FeeSplitter:
    """Pure fee arithmetic over a FeeSchedule."""

    def __init__(self, schedule: FeeSchedule):
        self.schedule = schedule

    def split(self, amount: int) -> FeeSplit:
        """
        Split `amount` of the fee-bearing asset.

        Args:
            amount: Fee-bearing balance collected this harvest

        Returns:
            FeeSplit whose four parts sum exactly to `amount`
        """
        if amount < 0:
            raise ValueError(f"Cannot split a negative amount: {amount}")
        schedule = self.schedule
        call_fee = amount * schedule.call_fee // MAX_FEE
        treasury_fee = amount * schedule.treasury_fee // MAX_FEE
        strategist_fee = amount * schedule.strategist_fee // MAX_FEE
        compound_amount = amount - call_fee - treasury_fee - strategist_fee

        logger.debug(
            f"Split {amount}: call={call_fee} treasury={treasury_fee} "
            f"strategist={strategist_fee} compound={compound_amount}"
        )
        return FeeSplit(call_fee, treasury_fee, strategist_fee, compound_amount)

    def call_fee_of(self, amount: int) -> int:
        """Call fee alone, used for the next-harvest payout estimate."""
        return amount * self.schedule.call_fee // MAX_FEE
