#!/usr/bin/env python3
"""
Strategy Deployment Script

Deploys a vault and strategy from a JSON parameter file onto a simulated
chain (farm, router and pairs are created to match the routes), applies
the per-chain call fee, pending-rewards function name and HARVEST_ON_DEPOSIT,
and optionally runs a deposit / harvest / withdraw smoke cycle.

Usage:
    python scripts/deploy_strategy.py scripts/params/bshare_bnb_chef_lp.json --smoke
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from compounder.core.chain import Chain, ManualClock
from compounder.core.config import load_config, ConfigurationError
from compounder.core.errors import StrategyError
from compounder.logging_config import setup_logging
from compounder.vault import Vault
from strategies import StrategyParamsFile
from strategies.simulation import deploy_vault

console = Console()
logger = logging.getLogger(__name__)

SMOKE_DEPOSIT = 10 ** 18
SMOKE_WAIT = 24 * 3600


def run_smoke_cycle(chain: Chain, vault: Vault, user: str = "smoke_user") -> dict:
    """Deposit, wait, harvest, withdraw. Returns the observed numbers."""
    strategy = vault.strategy
    chain.ledger.mint(vault.want, user, SMOKE_DEPOSIT)
    chain.ledger.approve(vault.want, user, vault.address, SMOKE_DEPOSIT)

    vault.deposit(SMOKE_DEPOSIT, user)
    price_before = vault.get_price_per_full_share()
    chain.sleep(SMOKE_WAIT)
    call_reward = strategy.call_reward()
    result = strategy.harvest(strategy.roles.keeper)
    price_after = vault.get_price_per_full_share()
    withdrawn = vault.withdraw_all(user)

    return {
        "Deposited": SMOKE_DEPOSIT,
        "Estimated call reward": call_reward,
        "Want harvested": result.want_harvested,
        "Call fee paid": result.fees.call_fee,
        "Price per share before": price_before,
        "Price per share after": price_after,
        "Withdrawn": withdrawn,
    }


def main():
    """Deploy a vault and strategy and print a summary."""
    parser = argparse.ArgumentParser(description="Deploy a compounding vault and strategy")
    parser.add_argument("params", help="Path to the JSON deployment parameters")
    parser.add_argument("--env-file", help="Path to .env file")
    parser.add_argument("--smoke", action="store_true", help="Run a deposit/harvest/withdraw cycle")
    parser.add_argument("--log-dir", default="logs", help="Log directory")
    args = parser.parse_args()

    try:
        config = load_config(args.env_file)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        return 1

    setup_logging(
        log_dir=args.log_dir,
        log_level=config.get("LOG_LEVEL"),
        console_level=config.get("CONSOLE_LOG_LEVEL"),
    )

    console.print(Panel.fit(
        "[bold green]Compounder - Strategy Deployment[/bold green]\n"
        f"Chain: {config.get_chain_name()} (simulated)",
        border_style="green"
    ))

    try:
        params = StrategyParamsFile.from_json_file(args.params)
        chain = Chain(clock=ManualClock())
        vault, params = deploy_vault(chain, params, config)
        strategy = vault.strategy

        smoke = run_smoke_cycle(chain, vault) if args.smoke else None
    except (StrategyError, ConfigurationError, OSError, ValueError) as e:
        logger.error(f"Deployment failed: {e}", exc_info=True)
        console.print(f"\n[bold red]Deployment failed:[/bold red] {e}")
        return 1

    table = Table(title="\nDeployment", show_header=True)
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    table.add_row("Vault", f"{vault.symbol} ({vault.address})")
    table.add_row("Strategy", strategy.address)
    table.add_row("Topology", params.topology)
    table.add_row("Want", strategy.want)
    table.add_row("Pool id", str(params.pool_id))
    table.add_row("Output -> native", " -> ".join(strategy.routes.output_to_native))
    if strategy.lp_legs:
        table.add_row("Native -> lp0", " -> ".join(strategy.routes.native_to_lp0))
        table.add_row("Native -> lp1", " -> ".join(strategy.routes.native_to_lp1))
    else:
        table.add_row("Native -> want", " -> ".join(strategy.routes.native_to_want))
    fees = strategy.fee_schedule
    table.add_row(
        "Fees",
        f"call {fees.call_fee}/1000, treasury {fees.treasury_fee}/1000, "
        f"strategist {fees.strategist_fee}/1000, withdrawal {fees.withdrawal_fee}/10000",
    )
    table.add_row("Harvest on deposit", str(strategy.harvest_on_deposit))
    table.add_row("Pending rewards view", strategy.state.pending_rewards_function)
    console.print(table)

    if smoke is not None:
        smoke_table = Table(title="\nSmoke cycle", show_header=True)
        smoke_table.add_column("Metric", style="cyan")
        smoke_table.add_column("Value", justify="right")
        for name, value in smoke.items():
            smoke_table.add_row(name, str(value))
        console.print(smoke_table)

        if smoke["Price per share after"] < smoke["Price per share before"]:
            console.print("\n[bold red]Price per share dropped during the smoke cycle[/bold red]")
            return 1

    console.print("\n[bold green]Deployment complete[/bold green]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
