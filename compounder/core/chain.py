"""
Host environment for strategies, farms, routers and vaults.

The Chain provides what the engine assumes from its execution platform:
- A shared TokenLedger
- A clock (seconds) used for harvest timestamps and swap deadlines
- One state-changing call at a time (re-entrant lock)
- All-or-nothing execution: a failed entry point leaves no partial state
"""

import copy
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, List, Optional, Tuple

from .ledger import TokenLedger

logger = logging.getLogger(__name__)


class Stateful:
    """
    Mixin for components whose state must roll back with a failed call.

    Subclasses list the attributes that hold their mutable state in
    `_snapshot_fields`; references to other components must not be listed.
    """

    _snapshot_fields: Tuple[str, ...] = ()

    def snapshot(self) -> dict:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._snapshot_fields}

    def restore(self, state: dict):
        for name, value in state.items():
            setattr(self, name, value)


class ManualClock:
    """Settable clock for simulations and tests."""

    def __init__(self, start: int = 1_700_000_000):
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, seconds: int):
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.current += seconds


class Chain:
    """
    Shared ledger, clock and transaction scope.

    Every state-changing entry point of a strategy or vault runs inside
    `chain.transaction()`. The outermost scope snapshots the ledger and every
    registered component; if the body raises, all of them are restored and
    the exception propagates unchanged. Callbacks queued with `on_commit`
    run only after the outermost scope succeeds.
    """

    def __init__(self, ledger: Optional[TokenLedger] = None, clock: Optional[Callable[[], float]] = None):
        """
        Initialize chain.

        Args:
            ledger: Token ledger (default: a new empty ledger)
            clock: Callable returning seconds (default: time.time)
        """
        self.ledger = ledger or TokenLedger()
        self._clock = clock or time.time
        self._components: List[Stateful] = []
        self._lock = threading.RLock()
        self._depth = 0
        self._pending_commit: List[Callable[[], None]] = []

    def now(self) -> int:
        """Current timestamp in whole seconds."""
        return int(self._clock())

    def sleep(self, seconds: int):
        """Advance a manual clock (simulation only)."""
        advance = getattr(self._clock, "advance", None)
        if advance is None:
            raise RuntimeError("Chain clock is the wall clock and cannot be advanced")
        advance(seconds)

    def register(self, component: Stateful):
        """Include `component` in transaction snapshots."""
        if component not in self._components:
            self._components.append(component)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def on_commit(self, callback: Callable[[], None]):
        """Run `callback` after the current transaction commits (now if none)."""
        if self._depth == 0:
            callback()
        else:
            self._pending_commit.append(callback)

    @contextmanager
    def transaction(self):
        """Atomic scope with automatic rollback, re-entrant."""
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            ledger_state = self.ledger.snapshot()
            component_states = [(c, c.snapshot()) for c in self._components]
            self._depth = 1
            try:
                yield self
            except BaseException as e:
                self.ledger.restore(ledger_state)
                for component, state in component_states:
                    component.restore(state)
                self._pending_commit.clear()
                logger.debug(f"Transaction rolled back: {type(e).__name__}: {e}")
                raise
            finally:
                self._depth = 0

            callbacks, self._pending_commit = self._pending_commit, []
            for callback in callbacks:
                try:
                    callback()
                except Exception as e:
                    logger.error(f"Post-commit callback failed: {e}", exc_info=True)
