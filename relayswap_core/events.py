"""
Operation events for RelaySwap.

Each committed operation produces one structured record.  Records are
handed to the ``EventLog``, which keeps them in order and notifies any
subscribers; nothing in the engine reads them back for control decisions.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

logger = logging.getLogger("relayswap.events")


class EventKind(Enum):
    ADD_LIQUIDITY = "AddLiquidity"
    REMOVE_LIQUIDITY = "RemoveLiquidity"
    SWAP = "Swap"
    RELAYED_SWAP = "RelayedSwap"


@dataclass
class LiquidityEvent:
    """A committed deposit or withdrawal."""
    kind: EventKind
    account: str
    asset_a: str
    asset_b: str
    amount_a: int
    amount_b: int
    shares: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "account": self.account,
            "asset_a": self.asset_a,
            "asset_b": self.asset_b,
            "amount_a": self.amount_a,
            "amount_b": self.amount_b,
            "shares": self.shares,
            "timestamp": self.timestamp,
        }


@dataclass
class SwapEvent:
    """A committed swap; ``relayer`` is set only for delegated swaps."""
    kind: EventKind
    account: str
    asset_in: str
    asset_out: str
    amount_in: int
    amount_out: int
    relayer: Optional[str] = None
    nonce: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        d = {
            "kind": self.kind.value,
            "account": self.account,
            "asset_in": self.asset_in,
            "asset_out": self.asset_out,
            "amount_in": self.amount_in,
            "amount_out": self.amount_out,
            "timestamp": self.timestamp,
        }
        if self.relayer is not None:
            d["relayer"] = self.relayer
            d["nonce"] = self.nonce
        return d


Event = Union[LiquidityEvent, SwapEvent]
Subscriber = Callable[[Event], None]


class EventLog:
    """Ordered record of committed events with fan-out to subscribers."""

    def __init__(self, max_events: int = 10_000):
        self.max_events = max_events
        self._events: list[Event] = []
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, event: Event) -> None:
        self._events.append(event)
        if len(self._events) > self.max_events:
            del self._events[: len(self._events) - self.max_events]
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                # The operation is already committed; a bad observer must not undo it.
                logger.exception("Event subscriber %r failed", callback)

    def events(self, kind: EventKind | None = None) -> list[Event]:
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.kind == kind]

    def last(self) -> Event | None:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)
