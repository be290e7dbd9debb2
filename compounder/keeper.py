"""Keeper loop - visit strategies, decide, harvest, log."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from compounder.core.errors import StrategyError
from compounder.logging_config import ActivityLogger, get_activity_logger
from compounder.strategy import Strategy

logger = logging.getLogger(__name__)


@dataclass
class KeeperCycle:
    """Outcome of one pass over the registered strategies."""
    harvested: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    duration: float = 0.0


class HarvestKeeper:
    """
    Periodic harvester for a set of strategies.

    Each cycle:
    1. Skips paused and retired strategies
    2. Skips strategies whose estimated call reward is below `min_call_reward`
    3. Harvests the rest with the keeper as call fee recipient
    4. Logs failures and leaves them for the next cycle

    Errors in one strategy never stop the loop.
    """

    DEFAULT_INTERVAL = 3600
    ERROR_BACKOFF = 10

    def __init__(
        self,
        keeper: str,
        strategies: Optional[List[Strategy]] = None,
        interval: int = DEFAULT_INTERVAL,
        min_call_reward: int = 0,
        activity: Optional[ActivityLogger] = None,
    ):
        """
        Initialize keeper.

        Args:
            keeper: Address that triggers harvests and receives call fees
            strategies: Strategies to watch
            interval: Seconds between cycles
            min_call_reward: Smallest call reward (native) worth a harvest
            activity: Activity logger (default: shared instance)
        """
        self.keeper = keeper
        self.strategies: List[Strategy] = list(strategies or [])
        self.interval = interval
        self.min_call_reward = min_call_reward
        self.activity = activity or get_activity_logger()

        self._running = False
        self.cycles = 0

        logger.info(f"HarvestKeeper {keeper} initialized with interval {interval}s, min_call_reward {min_call_reward}")

    def add_strategy(self, strategy: Strategy):
        if strategy not in self.strategies:
            self.strategies.append(strategy)

    def remove_strategy(self, strategy: Strategy):
        if strategy in self.strategies:
            self.strategies.remove(strategy)

    @property
    def running(self) -> bool:
        return self._running

    def should_harvest(self, strategy: Strategy) -> bool:
        if strategy.paused or strategy.retired:
            return False
        return strategy.call_reward() >= self.min_call_reward

    async def run_once(self) -> KeeperCycle:
        """Visit every strategy once."""
        cycle = KeeperCycle()
        started = time.monotonic()

        for strategy in list(self.strategies):
            if not self.should_harvest(strategy):
                cycle.skipped.append(strategy.address)
                continue
            try:
                result = strategy.harvest_for(self.keeper, self.keeper)
            except StrategyError as e:
                logger.error(f"Keeper harvest of {strategy.address} failed: {e}")
                cycle.failed.append(strategy.address)
                continue
            if result.harvested:
                cycle.harvested.append(strategy.address)
            else:
                cycle.skipped.append(strategy.address)
            # Yield between strategies so the loop stays responsive.
            await asyncio.sleep(0)

        cycle.duration = time.monotonic() - started
        self.cycles += 1
        self.activity.log_keeper_cycle(
            harvested=len(cycle.harvested),
            skipped=len(cycle.skipped),
            failed=len(cycle.failed),
            duration=cycle.duration,
        )
        return cycle

    async def start(self):
        """
        Run cycles until stopped.

        Unexpected errors are logged and the loop continues after a short backoff.
        """
        self._running = True
        logger.info(f"Keeper {self.keeper} starting with {len(self.strategies)} strategies")
        try:
            while self._running:
                try:
                    await self.run_once()
                    await asyncio.sleep(self.interval)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Keeper cycle error: {e}", exc_info=True)
                    self.activity.log_error("keeper", type(e).__name__, str(e))
                    await asyncio.sleep(self.ERROR_BACKOFF)
        except asyncio.CancelledError:
            logger.info("Keeper loop cancelled")
            raise
        finally:
            self._running = False
            logger.info(f"Keeper {self.keeper} stopped after {self.cycles} cycles")

    def stop(self):
        """Ask the loop to exit after the current cycle."""
        logger.info("Stopping keeper...")
        self._running = False
