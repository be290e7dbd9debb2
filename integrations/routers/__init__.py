"""Swap router adapters."""

from .base import RouterAdapter
from .uniswap_v2 import FixedRateRouter, UniswapV2Router

__all__ = ["RouterAdapter", "UniswapV2Router", "FixedRateRouter"]
