"""
Uniswap-V2 style router

Constant-product pairs with a swap fee, multi-hop exact-input swaps and
proportional liquidity provision. Each pair's LP token doubles as the pair's
address on the ledger, as on-chain.

Also provides FixedRateRouter, a deterministic market maker that swaps at
configured rates and is used for simulations where prices must not move.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from compounder.core.chain import Chain, Stateful
from compounder.core.errors import DeadlineExpiredError, ExternalCallError, SlippageError

from .base import RouterAdapter

logger = logging.getLogger(__name__)


FEE_DENOMINATOR = 10000
MINIMUM_LIQUIDITY = 1000
DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"


@dataclass
class PairInfo:
    """Reserves of one pair; token0 < token1."""
    lp_token: str
    token0: str
    token1: str
    reserve0: int = 0
    reserve1: int = 0

    def reserves_for(self, token_in: str) -> Tuple[int, int]:
        if token_in == self.token0:
            return self.reserve0, self.reserve1
        return self.reserve1, self.reserve0

    def apply(self, token_in: str, amount_in: int, amount_out: int):
        if token_in == self.token0:
            self.reserve0 += amount_in
            self.reserve1 -= amount_out
        else:
            self.reserve1 += amount_in
            self.reserve0 -= amount_out


class UniswapV2Router(RouterAdapter, Stateful):
    """
    Router over constant-product pairs.

    Features:
    - Multi-hop swaps along a caller-supplied route
    - Deadline and minimum-output guards
    - Read-only quotes that raise on unknown pairs
    - add_liquidity with Uniswap-V2 optimal-amount matching
    """

    _snapshot_fields = ("pairs",)

    def __init__(self, chain: Chain, address: str = "unirouter", fee_bps: int = 25):
        """
        Initialize router.

        Args:
            chain: Host chain
            address: Router address on the ledger
            fee_bps: Swap fee per hop in basis points (PancakeSwap charges 25)
        """
        if not 0 <= fee_bps < FEE_DENOMINATOR:
            raise ValueError(f"fee_bps out of range: {fee_bps}")
        self.chain = chain
        self.ledger = chain.ledger
        self.address = address
        self.fee_bps = fee_bps
        self.pairs: Dict[str, PairInfo] = {}
        chain.register(self)

        logger.info(f"Router {address} initialized with {fee_bps} bps swap fee")

    @staticmethod
    def sort_tokens(token_a: str, token_b: str) -> Tuple[str, str]:
        if token_a == token_b:
            raise ValueError(f"Identical tokens: {token_a}")
        return (token_a, token_b) if token_a < token_b else (token_b, token_a)

    def create_pair(self, token_a: str, token_b: str, lp_token: Optional[str] = None) -> str:
        """Create an empty pair and return its LP token."""
        token0, token1 = self.sort_tokens(token_a, token_b)
        lp_token = lp_token or f"{token0}-{token1}-LP"
        if self._find_pair(token0, token1) is not None:
            raise ValueError(f"Pair {token0}/{token1} already exists")
        self.pairs[lp_token] = PairInfo(lp_token=lp_token, token0=token0, token1=token1)
        logger.info(f"Created pair {lp_token}")
        return lp_token

    def seed_pair(
        self,
        token_a: str,
        token_b: str,
        amount_a: int,
        amount_b: int,
        provider: str = "liquidity_provider",
        lp_token: Optional[str] = None,
    ) -> str:
        """Create (if needed) and fund a pair with freshly minted tokens."""
        existing = self._find_pair(*self.sort_tokens(token_a, token_b))
        pair_token = existing.lp_token if existing else self.create_pair(token_a, token_b, lp_token)
        self.ledger.mint(token_a, provider, amount_a)
        self.ledger.mint(token_b, provider, amount_b)
        self.ledger.approve(token_a, provider, self.address, amount_a)
        self.ledger.approve(token_b, provider, self.address, amount_b)
        self.add_liquidity(token_a, token_b, amount_a, amount_b, 0, 0, provider, self.chain.now())
        return pair_token

    def _find_pair(self, token0: str, token1: str) -> Optional[PairInfo]:
        for pair in self.pairs.values():
            if pair.token0 == token0 and pair.token1 == token1:
                return pair
        return None

    def _pair_for(self, token_a: str, token_b: str) -> PairInfo:
        pair = self._find_pair(*self.sort_tokens(token_a, token_b))
        if pair is None:
            raise ExternalCallError(f"No pair for {token_a}/{token_b} on {self.address}")
        return pair

    def lp_tokens(self, lp_token: str) -> Tuple[str, str]:
        pair = self.pairs.get(lp_token)
        if pair is None:
            raise ExternalCallError(f"{lp_token} is not a pair of {self.address}")
        return pair.token0, pair.token1

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        if amount_in <= 0:
            raise ExternalCallError("Insufficient input amount")
        if reserve_in <= 0 or reserve_out <= 0:
            raise ExternalCallError("Insufficient liquidity")
        amount_in_with_fee = amount_in * (FEE_DENOMINATOR - self.fee_bps)
        return amount_in_with_fee * reserve_out // (reserve_in * FEE_DENOMINATOR + amount_in_with_fee)

    def _hop_out(self, amount_in: int, token_in: str, token_out: str) -> int:
        reserve_in, reserve_out = self._pair_for(token_in, token_out).reserves_for(token_in)
        return self.get_amount_out(amount_in, reserve_in, reserve_out)

    def get_amounts_out(self, amount_in: int, route: Sequence[str]) -> List[int]:
        """Output of every hop of `route` for `amount_in`."""
        if len(route) < 2:
            raise ExternalCallError(f"Route needs at least two tokens: {list(route)}")
        amounts = [amount_in]
        for token_in, token_out in zip(route, route[1:]):
            amounts.append(self._hop_out(amounts[-1], token_in, token_out))
        return amounts

    def quote_out(self, amount_in: int, route: Sequence[str]) -> int:
        return self.get_amounts_out(amount_in, route)[-1]

    def _check_deadline(self, deadline: int):
        now = self.chain.now()
        if now > deadline:
            raise DeadlineExpiredError(f"Router deadline {deadline} expired at {now}")

    def swap_exact_in(
        self,
        amount_in: int,
        route: Sequence[str],
        min_out: int,
        sender: str,
        deadline: int,
        recipient: Optional[str] = None,
    ) -> int:
        self._check_deadline(deadline)
        recipient = recipient or sender
        amounts = self.get_amounts_out(amount_in, route)
        if amounts[-1] < min_out:
            raise SlippageError(
                f"Swap output {amounts[-1]} {route[-1]} below minimum {min_out}"
            )
        self._execute_swap(amounts, list(route), sender, recipient)
        logger.debug(f"Swapped {amount_in} {route[0]} -> {amounts[-1]} {route[-1]} for {sender}")
        return amounts[-1]

    def _execute_swap(self, amounts: List[int], route: List[str], sender: str, recipient: str):
        first = self._pair_for(route[0], route[1])
        self.ledger.transfer_from(route[0], self.address, sender, first.lp_token, amounts[0])
        for i, (token_in, token_out) in enumerate(zip(route, route[1:])):
            pair = self._pair_for(token_in, token_out)
            amount_out = amounts[i + 1]
            pair.apply(token_in, amounts[i], amount_out)
            last_hop = i == len(route) - 2
            to = recipient if last_hop else self._pair_for(token_out, route[i + 2]).lp_token
            self.ledger.transfer(token_out, pair.lp_token, to, amount_out)

    def add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a: int,
        amount_b: int,
        min_a: int,
        min_b: int,
        sender: str,
        deadline: int,
    ) -> Tuple[int, int, int]:
        self._check_deadline(deadline)
        pair = self._pair_for(token_a, token_b)
        reserve_a, reserve_b = pair.reserves_for(token_a)

        if reserve_a == 0 and reserve_b == 0:
            used_a, used_b = amount_a, amount_b
        else:
            optimal_b = amount_a * reserve_b // reserve_a
            if optimal_b <= amount_b:
                if optimal_b < min_b:
                    raise SlippageError(f"Insufficient {token_b} amount: {optimal_b} < {min_b}")
                used_a, used_b = amount_a, optimal_b
            else:
                optimal_a = amount_b * reserve_a // reserve_b
                if optimal_a < min_a:
                    raise SlippageError(f"Insufficient {token_a} amount: {optimal_a} < {min_a}")
                used_a, used_b = optimal_a, amount_b

        supply = self.ledger.total_supply(pair.lp_token)
        if supply == 0:
            liquidity = math.isqrt(used_a * used_b) - MINIMUM_LIQUIDITY
            if liquidity <= 0:
                raise ExternalCallError("Insufficient liquidity minted")
            self.ledger.mint(pair.lp_token, DEAD_ADDRESS, MINIMUM_LIQUIDITY)
        else:
            liquidity = min(used_a * supply // reserve_a, used_b * supply // reserve_b)
            if liquidity <= 0:
                raise ExternalCallError("Insufficient liquidity minted")

        self.ledger.transfer_from(token_a, self.address, sender, pair.lp_token, used_a)
        self.ledger.transfer_from(token_b, self.address, sender, pair.lp_token, used_b)
        if token_a == pair.token0:
            pair.reserve0 += used_a
            pair.reserve1 += used_b
        else:
            pair.reserve0 += used_b
            pair.reserve1 += used_a
        self.ledger.mint(pair.lp_token, sender, liquidity)

        logger.debug(f"Added liquidity {used_a} {token_a} + {used_b} {token_b} -> {liquidity} {pair.lp_token}")
        return used_a, used_b, liquidity


class FixedRateRouter(UniswapV2Router):
    """
    Deterministic router: every hop trades at a configured rate.

    Input tokens are taken from the sender and burned; output tokens are
    minted to the recipient, so swaps never move prices. Liquidity
    provision still goes through regular pairs.
    """

    def __init__(self, chain: Chain, address: str = "fixed_router"):
        super().__init__(chain, address=address, fee_bps=0)
        self.rates: Dict[Tuple[str, str], Tuple[int, int]] = {}

    def set_rate(self, token_in: str, token_out: str, numerator: int = 1, denominator: int = 1, both_ways: bool = True):
        """Trade `token_in` for `token_out` at numerator/denominator."""
        if numerator <= 0 or denominator <= 0:
            raise ValueError("Rates must be positive")
        self.rates[(token_in, token_out)] = (numerator, denominator)
        if both_ways:
            self.rates[(token_out, token_in)] = (denominator, numerator)

    def _hop_out(self, amount_in: int, token_in: str, token_out: str) -> int:
        if amount_in <= 0:
            raise ExternalCallError("Insufficient input amount")
        rate = self.rates.get((token_in, token_out))
        if rate is None:
            raise ExternalCallError(f"No rate for {token_in}->{token_out} on {self.address}")
        numerator, denominator = rate
        return amount_in * numerator // denominator

    def _execute_swap(self, amounts: List[int], route: List[str], sender: str, recipient: str):
        self.ledger.transfer_from(route[0], self.address, sender, self.address, amounts[0])
        self.ledger.burn(route[0], self.address, amounts[0])
        self.ledger.mint(route[-1], recipient, amounts[-1])
