"""
Swap routes a strategy uses to turn rewards into want.

A route is an ordered tuple of token identifiers; a single-element route
means "already there, no swap". Routes are checked once at construction
and never change afterwards.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from compounder.core.errors import RouteConfigError

Route = Tuple[str, ...]


def validate_route(route: Sequence[str], source: str, destination: str, name: str) -> Route:
    """
    Check that `route` sells `source` and ends at `destination`.

    Args:
        route: Token hops, first to last
        source: Token being sold
        destination: Token the route must deliver
        name: Route name for error messages

    Returns:
        The route as an immutable tuple

    Raises:
        RouteConfigError: On an empty route, wrong endpoints or a repeated hop
    """
    hops = tuple(route)
    if not hops:
        raise RouteConfigError(f"{name} is empty")
    if hops[0] != source:
        raise RouteConfigError(f"{name} must start at {source}, starts at {hops[0]}")
    if hops[-1] != destination:
        raise RouteConfigError(f"{name} must end at {destination}, ends at {hops[-1]}")
    for a, b in zip(hops, hops[1:]):
        if a == b:
            raise RouteConfigError(f"{name} repeats {a} in consecutive hops")
    return hops


def needs_swap(route: Route) -> bool:
    return len(route) > 1


@dataclass(frozen=True)
class StrategyRoutes:
    """
    Conversion routes for one strategy.

    Single-asset strategies set `native_to_want`; LP strategies set
    `native_to_lp0` and `native_to_lp1` instead.
    """
    output_to_native: Route
    native_to_want: Route = ()
    native_to_lp0: Route = ()
    native_to_lp1: Route = ()

    @property
    def output(self) -> str:
        return self.output_to_native[0]

    @property
    def native(self) -> str:
        return self.output_to_native[-1]

    @property
    def is_lp(self) -> bool:
        return bool(self.native_to_lp0 or self.native_to_lp1)

    @classmethod
    def build(
        cls,
        output: str,
        native: str,
        want: str,
        output_to_native: Sequence[str],
        native_to_want: Optional[Sequence[str]] = None,
        native_to_lp0: Optional[Sequence[str]] = None,
        native_to_lp1: Optional[Sequence[str]] = None,
        lp_legs: Optional[Tuple[str, str]] = None,
    ) -> "StrategyRoutes":
        """
        Validate and freeze a strategy's routes.

        Args:
            output: Reward token the farm pays
            native: Fee-bearing intermediate token
            want: Token the strategy accumulates
            output_to_native: Route selling rewards for native
            native_to_want: Route for single-asset want
            native_to_lp0: Route into the first LP leg
            native_to_lp1: Route into the second LP leg
            lp_legs: (token0, token1) of the LP want, required for LP routes

        Raises:
            RouteConfigError: If any route is missing or mismatched
        """
        to_native = validate_route(output_to_native, output, native, "output_to_native")

        if lp_legs is not None:
            if native_to_want:
                raise RouteConfigError("LP strategies route into lp0/lp1, not native_to_want")
            if native_to_lp0 is None or native_to_lp1 is None:
                raise RouteConfigError("LP strategies need native_to_lp0 and native_to_lp1")
            lp0, lp1 = lp_legs
            return cls(
                output_to_native=to_native,
                native_to_lp0=validate_route(native_to_lp0, native, lp0, "native_to_lp0"),
                native_to_lp1=validate_route(native_to_lp1, native, lp1, "native_to_lp1"),
            )

        if native_to_lp0 or native_to_lp1:
            raise RouteConfigError("lp routes given for a single-asset want")
        if native_to_want is None:
            native_to_want = (native,) if native == want else None
        if native_to_want is None:
            raise RouteConfigError("native_to_want is required when want differs from native")
        return cls(
            output_to_native=to_native,
            native_to_want=validate_route(native_to_want, native, want, "native_to_want"),
        )
