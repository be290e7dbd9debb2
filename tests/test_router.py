"""Tests for the Uniswap-V2 style and fixed-rate routers."""

import pytest

from compounder.core.errors import (
    DeadlineExpiredError,
    ExternalCallError,
    InsufficientAllowanceError,
    SlippageError,
)
from compounder.core.ledger import MAX_UINT256
from integrations.routers.uniswap_v2 import FixedRateRouter, UniswapV2Router


@pytest.fixture
def amm(chain):
    router = UniswapV2Router(chain, address="amm", fee_bps=25)
    router.seed_pair("A", "B", 10 ** 6, 10 ** 6)
    router.seed_pair("B", "C", 10 ** 6, 2 * 10 ** 6)
    return router


@pytest.fixture
def trader(chain):
    chain.ledger.mint("A", "trader", 10 ** 5)
    for token in ("A", "B", "C"):
        chain.ledger.approve(token, "trader", "amm", MAX_UINT256)
    return "trader"


class TestUniswapV2Router:
    """Constant-product swaps and liquidity."""

    def test_pair_lp_tokens_sorted(self, amm):
        assert amm.lp_tokens("A-B-LP") == ("A", "B")

    def test_unknown_lp_token(self, amm):
        with pytest.raises(ExternalCallError):
            amm.lp_tokens("X-Y-LP")

    def test_get_amount_out_formula(self, amm):
        # 1000 in with 25 bps fee against 1e6/1e6 reserves
        assert amm.get_amount_out(1000, 10 ** 6, 10 ** 6) == 996

    def test_quote_matches_swap(self, chain, amm, trader):
        quoted = amm.quote_out(1000, ["A", "B", "C"])
        out = amm.swap_exact_in(1000, ["A", "B", "C"], 0, trader, chain.now() + 60)

        assert out == quoted
        assert chain.ledger.balance_of("C", trader) == out
        assert chain.ledger.balance_of("A", trader) == 10 ** 5 - 1000

    def test_quote_unknown_pair_raises(self, amm):
        with pytest.raises(ExternalCallError):
            amm.quote_out(1000, ["A", "Z"])

    def test_slippage_guard(self, chain, amm, trader):
        quoted = amm.quote_out(1000, ["A", "B"])
        with pytest.raises(SlippageError):
            amm.swap_exact_in(1000, ["A", "B"], quoted + 1, trader, chain.now() + 60)

    def test_deadline_guard(self, chain, amm, trader):
        deadline = chain.now() + 60
        chain.sleep(61)
        with pytest.raises(DeadlineExpiredError):
            amm.swap_exact_in(1000, ["A", "B"], 0, trader, deadline)

    def test_swap_needs_allowance(self, chain, amm):
        chain.ledger.mint("A", "stranger", 1000)
        with pytest.raises(InsufficientAllowanceError):
            amm.swap_exact_in(1000, ["A", "B"], 0, "stranger", chain.now() + 60)

    def test_add_liquidity_matches_reserves(self, chain, amm):
        chain.ledger.mint("A", "lp", 1000)
        chain.ledger.mint("B", "lp", 2000)
        chain.ledger.approve("A", "lp", "amm", MAX_UINT256)
        chain.ledger.approve("B", "lp", "amm", MAX_UINT256)

        used_a, used_b, liquidity = amm.add_liquidity("A", "B", 1000, 2000, 1, 1, "lp", chain.now() + 60)

        assert (used_a, used_b) == (1000, 1000)
        assert liquidity == 1000
        assert chain.ledger.balance_of("A-B-LP", "lp") == 1000
        assert chain.ledger.balance_of("B", "lp") == 1000


class TestFixedRateRouter:
    """Deterministic swaps."""

    def test_rates_both_ways(self, chain):
        router = FixedRateRouter(chain)
        router.set_rate("X", "Y", 2, 1)
        assert router.quote_out(10, ["X", "Y"]) == 20
        assert router.quote_out(20, ["Y", "X"]) == 10

    def test_swap_burns_and_mints(self, chain):
        router = FixedRateRouter(chain)
        router.set_rate("X", "Y")
        chain.ledger.mint("X", "trader", 100)
        chain.ledger.approve("X", "trader", router.address, MAX_UINT256)

        out = router.swap_exact_in(100, ["X", "Y"], 100, "trader", chain.now())

        assert out == 100
        assert chain.ledger.balance_of("Y", "trader") == 100
        assert chain.ledger.total_supply("X") == 0

    def test_missing_rate(self, chain):
        with pytest.raises(ExternalCallError):
            FixedRateRouter(chain).quote_out(1, ["X", "Y"])

    def test_invalid_rate(self, chain):
        with pytest.raises(ValueError):
            FixedRateRouter(chain).set_rate("X", "Y", 0, 1)
