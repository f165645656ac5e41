"""
Relayer: an unauthenticated transport that submits signed swap intents.

The relayer pays nothing and proves nothing about itself; the exchange
authorizes the intent's signer.  Failures are recorded and re-raised, the
relayer never retries on its own.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from relayswap_core.config import RelaySwapConfig
from relayswap_core.errors import ExchangeError
from relayswap_core.exchange import Exchange
from relayswap_core.meta_tx import SignedSwapIntent

logger = logging.getLogger("relayswap.relayer")


@dataclass
class Submission:
    """Outcome of one relayed intent."""
    account: str
    nonce: int
    accepted: bool
    amount_in: int = 0
    amount_out: int = 0
    error_code: int | None = None
    error: str = ""
    submitted_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "account": self.account,
            "nonce": self.nonce,
            "accepted": self.accepted,
            "amount_in": self.amount_in,
            "amount_out": self.amount_out,
            "error_code": self.error_code,
            "error": self.error,
            "submitted_at": self.submitted_at,
        }


class Relayer:
    """Submits intents to an exchange on behalf of their signers."""

    def __init__(self, exchange: Exchange, name: str = "relayer-1",
                 max_history: int = 1_000):
        self.exchange = exchange
        self.name = name
        self.max_history = max_history
        self.history: list[Submission] = []

    @classmethod
    def from_config(cls, exchange: Exchange, cfg: RelaySwapConfig) -> Relayer:
        return cls(exchange, name=cfg.relayer.name, max_history=cfg.relayer.max_history)

    def submit(self, intent: SignedSwapIntent) -> tuple[int, int]:
        """Relay *intent*. Returns (amount_in, amount_out) or raises ExchangeError."""
        try:
            amount_in, amount_out = self.exchange.relay_intent(intent, relayer=self.name)
        except ExchangeError as exc:
            self._record(Submission(
                account=intent.account, nonce=intent.nonce, accepted=False,
                error_code=exc.code, error=exc.message,
            ))
            logger.info(
                "Relayer %s: intent from %s rejected (%d)",
                self.name, intent.account, exc.code,
                extra={"relayer": self.name, "account": intent.account,
                       "error_code": exc.code},
            )
            raise
        self._record(Submission(
            account=intent.account, nonce=intent.nonce, accepted=True,
            amount_in=amount_in, amount_out=amount_out,
        ))
        return amount_in, amount_out

    def _record(self, submission: Submission) -> None:
        self.history.append(submission)
        if len(self.history) > self.max_history:
            del self.history[: len(self.history) - self.max_history]

    def stats(self) -> dict:
        accepted = sum(1 for s in self.history if s.accepted)
        return {
            "relayer": self.name,
            "submitted": len(self.history),
            "accepted": accepted,
            "rejected": len(self.history) - accepted,
        }
