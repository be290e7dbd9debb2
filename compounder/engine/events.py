"""
Audit events emitted by strategies.

Events are consumed by off-chain monitoring only. They are delivered after
the emitting call commits, so a rolled-back harvest never reaches a
subscriber.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class StrategyEvent:
    """Base event; `name` is filled by each subclass."""
    strategy: str
    timestamp: int

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["event"] = self.name
        return data


@dataclass
class StratHarvest(StrategyEvent):
    """Harvest completed: who triggered it, want gained, new total balance."""
    harvester: str = ""
    want_harvested: int = 0
    tvl: int = 0


@dataclass
class ChargedFees(StrategyEvent):
    call_fee: int = 0
    treasury_fee: int = 0
    strategist_fee: int = 0
    call_fee_recipient: str = ""


@dataclass
class Deposit(StrategyEvent):
    tvl: int = 0


@dataclass
class Withdraw(StrategyEvent):
    tvl: int = 0


@dataclass
class LifecycleChanged(StrategyEvent):
    """Pause, unpause, panic or retire."""
    action: str = ""
    caller: str = ""


@dataclass
class FeeConfigChanged(StrategyEvent):
    call_fee: int = 0
    treasury_fee: int = 0
    strategist_fee: int = 0
    withdrawal_fee: int = 0


Subscriber = Callable[[StrategyEvent], None]


class EventBus:
    """
    Per-strategy event fan-out.

    Keeps the last `max_history` delivered events for inspection and
    forwards each one to every subscriber.
    """

    def __init__(self, chain, max_history: int = 100):
        self.chain = chain
        self.max_history = max_history
        self.history: List[StrategyEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber):
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber):
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def emit(self, event: StrategyEvent):
        """Queue `event` for delivery once the current transaction commits."""
        self.chain.on_commit(lambda: self._deliver(event))

    def _deliver(self, event: StrategyEvent):
        self.history.append(event)
        self.history = self.history[-self.max_history:]
        logger.info(f"{event.name} from {event.strategy}: {event.to_dict()}")
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                logger.error(f"Event subscriber failed on {event.name}: {e}")

    def last(self, event_type: Optional[type] = None) -> Optional[StrategyEvent]:
        """Most recent event, optionally of one type."""
        for event in reversed(self.history):
            if event_type is None or isinstance(event, event_type):
                return event
        return None


@dataclass
class JsonAuditLog:
    """
    Subscriber that appends events to a JSON file.

    Keeps only the last `max_records` events so the file stays bounded.
    """
    path: Path
    max_records: int = 500
    records: List[Dict] = field(default_factory=list)

    def __post_init__(self):
        self.path = Path(self.path)
        self.records = self._load()

    def __call__(self, event: StrategyEvent):
        self.records.append(event.to_dict())
        self.records = self.records[-self.max_records:]
        self._save()

    def _load(self) -> List[Dict]:
        if not self.path.exists():
            logger.info(f"No audit log at {self.path}, starting fresh")
            return []
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return data.get("events", [])
        except Exception as e:
            logger.error(f"Failed to load audit log {self.path}: {e}")
            return []

    def _save(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump({"events": self.records}, f, indent=2)
        except Exception as e:
            logger.error(f"Failed to save audit log {self.path}: {e}")
