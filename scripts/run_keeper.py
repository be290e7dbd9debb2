#!/usr/bin/env python3
"""
Keeper Runner

Deploys a vault for each parameter file on its own simulated chain, seeds
it with a deposit, and runs a HarvestKeeper over the strategies with the
interval and minimum call reward from the environment.

Usage:
    python scripts/run_keeper.py scripts/params/bshare_bnb_chef_lp.json
    python scripts/run_keeper.py scripts/params/*.json --cycles 3 --simulated-clock
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from compounder.core.chain import Chain, ManualClock
from compounder.core.config import ConfigurationError, EnvironmentConfig, check_startup_requirements
from compounder.core.errors import StrategyError
from compounder.keeper import HarvestKeeper, KeeperCycle
from compounder.logging_config import setup_logging
from compounder.vault import Vault
from strategies import StrategyParamsFile
from strategies.simulation import deploy_vault

logger = logging.getLogger(__name__)

SEED_DEPOSIT = 10 ** 18
SEED_DEPOSITOR = "seed_depositor"


def seed_vault(vault: Vault, amount: int, user: str = SEED_DEPOSITOR) -> int:
    """Mint want to `user` and deposit it so the farm accrues rewards."""
    ledger = vault.chain.ledger
    ledger.mint(vault.want, user, amount)
    ledger.approve(vault.want, user, vault.address, amount)
    return vault.deposit(amount, user)


def build_keepers(
    config: EnvironmentConfig,
    params_paths: List[str],
    seed_deposit: int = SEED_DEPOSIT,
    simulated_clock: bool = False,
) -> Tuple[List[HarvestKeeper], List[Chain], List[Vault]]:
    """
    Deploy every parameter file and group the strategies by keeper address.

    Each deployment gets its own Chain. With `simulated_clock` the chains
    use a ManualClock the runner advances between cycles.

    Raises:
        ConfigurationError: If a parameter file or the fee settings are unusable
        StrategyError: If a deployment or seed deposit fails
    """
    keepers: Dict[str, HarvestKeeper] = {}
    chains: List[Chain] = []
    vaults: List[Vault] = []

    for path in params_paths:
        params = StrategyParamsFile.from_json_file(path)
        chain = Chain(clock=ManualClock()) if simulated_clock else Chain()
        vault, params = deploy_vault(chain, params, config)
        if seed_deposit > 0:
            seed_vault(vault, seed_deposit)

        keeper = keepers.get(params.keeper)
        if keeper is None:
            keeper = HarvestKeeper(
                params.keeper,
                interval=config.get_keeper_interval(),
                min_call_reward=config.get_min_call_reward(),
            )
            keepers[params.keeper] = keeper
        keeper.add_strategy(vault.strategy)
        chains.append(chain)
        vaults.append(vault)

    return list(keepers.values()), chains, vaults


async def run_cycles(
    keepers: List[HarvestKeeper],
    chains: List[Chain],
    cycles: int,
    advance: bool = False,
) -> List[KeeperCycle]:
    """
    Run a fixed number of cycles per keeper.

    With `advance`, every chain clock moves forward one keeper interval
    before each cycle; the chains must then run on a ManualClock.
    """
    results = []
    interval = max((keeper.interval for keeper in keepers), default=0)
    for _ in range(cycles):
        if advance:
            for chain in chains:
                chain.sleep(interval)
        for keeper in keepers:
            results.append(await keeper.run_once())
    return results


async def main(argv: Optional[List[str]] = None) -> int:
    """Entry point."""
    parser = argparse.ArgumentParser(description="Run harvest keepers over simulated vaults")
    parser.add_argument("params", nargs="+", help="JSON deployment parameter files")
    parser.add_argument("--env-file", help="Path to .env file")
    parser.add_argument("--log-dir", default="logs", help="Log directory")
    parser.add_argument("--cycles", type=int, default=0, help="Cycles to run (0: until interrupted)")
    parser.add_argument("--seed-deposit", type=int, default=SEED_DEPOSIT, help="Want deposited into each vault")
    parser.add_argument("--simulated-clock", action="store_true", help="Advance a manual clock instead of waiting")
    args = parser.parse_args(argv)

    config = check_startup_requirements(args.env_file, args.log_dir)
    setup_logging(
        log_dir=args.log_dir,
        log_level=config.get("LOG_LEVEL"),
        console_level=config.get("CONSOLE_LOG_LEVEL"),
    )

    logger.info("Starting keeper runner...")

    try:
        keepers, chains, _ = build_keepers(config, args.params, args.seed_deposit, args.simulated_clock)
    except (StrategyError, ConfigurationError, OSError, ValueError) as e:
        logger.error(f"Failed to deploy vaults: {e}", exc_info=True)
        return 1

    if args.cycles > 0:
        cycles = await run_cycles(keepers, chains, args.cycles, advance=args.simulated_clock)
        failed = sum(len(cycle.failed) for cycle in cycles)
        logger.info(f"Ran {len(cycles)} keeper cycles, {failed} failed harvests")
        return 1 if failed else 0

    try:
        await asyncio.gather(*(keeper.start() for keeper in keepers))
    except KeyboardInterrupt:
        logger.info("Stopping keepers...")
        for keeper in keepers:
            keeper.stop()
        logger.info("Keepers stopped")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
