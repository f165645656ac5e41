"""
RelaySwap exchange facade.

Wires the pool registry, LP ledger, nonce registry and asset custody into
the liquidity, swap and meta-transaction engines, and exposes:

  - add_liquidity / remove_liquidity
  - swap (direct, caller-authorized)
  - relay_swap (delegated, signature-authorized, submitted by a relayer)
  - read-only queries: get_reserves, get_lp_balance, get_amount_out,
    is_nonce_used

Every public operation is atomic.  State is snapshotted before the
operation runs; any ``ExchangeError`` (including a failed token transfer or
a failed invariant check) restores the snapshot before re-raising, so no
partial mutation is ever observable.  Completed operations are logged and
emitted before the exchange lock is released, so observers see them in
commit order.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from relayswap_core.config import RelaySwapConfig
from relayswap_core.custody import DEFAULT_CUSTODY_ACCOUNT, AssetCustody
from relayswap_core.errors import ExchangeError, InvariantViolation
from relayswap_core.events import EventKind, EventLog, LiquidityEvent, SwapEvent
from relayswap_core.invariants import InvariantChecker
from relayswap_core.liquidity import LiquidityEngine
from relayswap_core.lp_ledger import LPLedger
from relayswap_core.meta_tx import MetaTxAuthorizer, NonceRegistry, SignedSwapIntent
from relayswap_core.registry import Pool, PoolRegistry
from relayswap_core.swap import SwapEngine
from relayswap_core.token import TokenLedger

logger = logging.getLogger("relayswap.exchange")


class Exchange:
    """Single-writer AMM exchange with direct and delegated swap paths."""

    def __init__(self, custody_account: str = DEFAULT_CUSTODY_ACCOUNT,
                 check_invariants: bool = True,
                 event_log: Optional[EventLog] = None):
        self.registry = PoolRegistry()
        self.ledger = LPLedger()
        self.nonces = NonceRegistry()
        self.custody = AssetCustody(custody_account)
        self.events = event_log if event_log is not None else EventLog()

        self.liquidity = LiquidityEngine(self.registry, self.ledger, self.custody)
        self.swaps = SwapEngine(self.registry, self.custody)
        self.authorizer = MetaTxAuthorizer(self.nonces)

        self.check_invariants = check_invariants
        self._checker = InvariantChecker()
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, cfg: RelaySwapConfig) -> Exchange:
        return cls(
            custody_account=cfg.exchange.custody_account,
            check_invariants=cfg.exchange.check_invariants,
            event_log=EventLog(max_events=cfg.exchange.max_events),
        )

    @property
    def custody_account(self) -> str:
        return self.custody.custody_account

    def register_asset(self, token: TokenLedger) -> None:
        self.custody.register(token)

    # ---- atomicity ----

    @contextmanager
    def _atomic(self, operation: str, account: str,
                swapped_pair: tuple[str, str] | None = None) -> Iterator[None]:
        with self._lock:
            state = (
                self.registry.snapshot(),
                self.ledger.snapshot(),
                self.nonces.snapshot(),
                self.custody.snapshot(),
            )
            if self.check_invariants:
                self._checker.capture(self.registry, self.ledger)
            try:
                yield
                if self.check_invariants:
                    ok, msg = self._checker.verify(self.registry, self.ledger, swapped_pair)
                    if not ok:
                        raise InvariantViolation(msg)
                self.custody.commit(state[3])
            except ExchangeError as exc:
                self._rollback(state)
                logger.warning(
                    "%s by %s rejected [%d %s]: %s",
                    operation, account, exc.code, type(exc).__name__, exc.message,
                    extra={"operation": operation, "account": account,
                           "error_code": exc.code},
                )
                raise
            except BaseException:
                self._rollback(state)
                raise
            finally:
                self._checker.reset()

    def _rollback(self, state) -> None:
        registry_state, ledger_state, nonce_state, custody_state = state
        self.registry.restore(registry_state)
        self.ledger.restore(ledger_state)
        self.nonces.restore(nonce_state)
        self.custody.restore(custody_state)

    # ---- liquidity ----

    def add_liquidity(self, asset_a: str, asset_b: str,
                      desired_a: int, desired_b: int,
                      min_a: int, min_b: int,
                      caller: str) -> tuple[int, int, int]:
        """Deposit into the (asset_a, asset_b) pool. Returns (final_a, final_b, minted)."""
        with self._lock:
            with self._atomic("add_liquidity", caller):
                self.custody.require_not_custody(caller)
                final_a, final_b, minted = self.liquidity.add_liquidity(
                    asset_a, asset_b, desired_a, desired_b, min_a, min_b, caller,
                )
            logger.info(
                "%s added %d %s + %d %s, minted %d shares",
                caller, final_a, asset_a, final_b, asset_b, minted,
                extra={"operation": "add_liquidity", "account": caller},
            )
            self.events.emit(LiquidityEvent(
                kind=EventKind.ADD_LIQUIDITY, account=caller,
                asset_a=asset_a, asset_b=asset_b,
                amount_a=final_a, amount_b=final_b, shares=minted,
            ))
        return final_a, final_b, minted

    def remove_liquidity(self, asset_a: str, asset_b: str, shares: int,
                         min_a: int, min_b: int,
                         caller: str) -> tuple[int, int]:
        """Burn *shares* against the (asset_a, asset_b) pool. Returns (amount_a, amount_b)."""
        with self._lock:
            with self._atomic("remove_liquidity", caller):
                self.custody.require_not_custody(caller)
                amount_a, amount_b = self.liquidity.remove_liquidity(
                    asset_a, asset_b, shares, min_a, min_b, caller,
                )
            logger.info(
                "%s burned %d shares for %d %s + %d %s",
                caller, shares, amount_a, asset_a, amount_b, asset_b,
                extra={"operation": "remove_liquidity", "account": caller},
            )
            self.events.emit(LiquidityEvent(
                kind=EventKind.REMOVE_LIQUIDITY, account=caller,
                asset_a=asset_a, asset_b=asset_b,
                amount_a=amount_a, amount_b=amount_b, shares=shares,
            ))
        return amount_a, amount_b

    # ---- swaps ----

    def swap(self, asset_in: str, asset_out: str, amount_in: int,
             min_amount_out: int, caller: str) -> tuple[int, int]:
        """Direct swap authorized by the caller's own identity."""
        with self._lock:
            with self._atomic("swap", caller, swapped_pair=(asset_in, asset_out)):
                self.custody.require_not_custody(caller)
                amount_in, amount_out = self.swaps.execute_swap(
                    asset_in, asset_out, amount_in, min_amount_out, caller,
                )
            logger.info(
                "%s swapped %d %s for %d %s",
                caller, amount_in, asset_in, amount_out, asset_out,
                extra={"operation": "swap", "account": caller},
            )
            self.events.emit(SwapEvent(
                kind=EventKind.SWAP, account=caller,
                asset_in=asset_in, asset_out=asset_out,
                amount_in=amount_in, amount_out=amount_out,
            ))
        return amount_in, amount_out

    def relay_swap(self, asset_in: str, asset_out: str, amount_in: int,
                   min_amount_out: int, nonce: int, signature: bytes,
                   public_key: bytes, account: str,
                   relayer: str = "") -> tuple[int, int]:
        """
        Delegated swap.  The signature authorizes *account*; *relayer* is
        only recorded for observability and never gains any authority.
        """
        with self._lock:
            with self._atomic("relay_swap", account, swapped_pair=(asset_in, asset_out)):
                principal = self.authorizer.authorize(
                    asset_in, asset_out, amount_in, min_amount_out,
                    nonce, signature, public_key, account,
                )
                self.custody.require_not_custody(principal)
                amount_in, amount_out = self.swaps.execute_swap(
                    asset_in, asset_out, amount_in, min_amount_out, principal,
                )
            logger.info(
                "%s swapped %d %s for %d %s (relayed by %s, nonce %d)",
                account, amount_in, asset_in, amount_out, asset_out,
                relayer or "<anonymous>", nonce,
                extra={"operation": "relay_swap", "account": account, "relayer": relayer},
            )
            self.events.emit(SwapEvent(
                kind=EventKind.RELAYED_SWAP, account=account,
                asset_in=asset_in, asset_out=asset_out,
                amount_in=amount_in, amount_out=amount_out,
                relayer=relayer, nonce=nonce,
            ))
        return amount_in, amount_out

    def relay_intent(self, intent: SignedSwapIntent, relayer: str = "") -> tuple[int, int]:
        return self.relay_swap(
            intent.asset_in, intent.asset_out, intent.amount_in,
            intent.min_amount_out, intent.nonce, intent.signature,
            intent.public_key, intent.account, relayer=relayer,
        )

    # ---- read-only queries ----

    def get_reserves(self, asset_a: str, asset_b: str) -> Pool | None:
        return self.registry.lookup(asset_a, asset_b)

    def get_lp_balance(self, account: str) -> int:
        return self.ledger.balance_of(account)

    def get_amount_out(self, asset_in: str, asset_out: str, amount_in: int) -> int:
        return self.swaps.get_amount_out(asset_in, asset_out, amount_in)

    def is_nonce_used(self, account: str, nonce: int) -> bool:
        return self.nonces.is_nonce_used(account, nonce)

    def get_pools(self) -> list[dict]:
        return [p.to_dict() for p in self.registry.pools()]
