"""Swap router interface consumed by the compounding engine."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple


class RouterAdapter(ABC):
    """
    Executes pre-configured multi-hop routes and supplies LP liquidity.

    Routes are never computed here; callers pass the exact hop list.
    """

    address: str

    @abstractmethod
    def swap_exact_in(
        self,
        amount_in: int,
        route: Sequence[str],
        min_out: int,
        sender: str,
        deadline: int,
        recipient: Optional[str] = None,
    ) -> int:
        """
        Sell exactly `amount_in` of route[0] for route[-1].

        The router spends `sender`'s tokens under its allowance and pays
        `recipient` (default: sender).

        Raises:
            DeadlineExpiredError: If called after `deadline`
            SlippageError: If the output is below `min_out`
        """
        pass

    @abstractmethod
    def quote_out(self, amount_in: int, route: Sequence[str]) -> int:
        """Expected output of a swap, without state changes. May raise."""
        pass

    @abstractmethod
    def lp_tokens(self, lp_token: str) -> Tuple[str, str]:
        """(token0, token1) of an LP token."""
        pass

    @abstractmethod
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
        """
        Supply both legs and mint LP tokens to `sender`.

        Returns:
            (amount_a used, amount_b used, LP tokens minted)
        """
        pass
