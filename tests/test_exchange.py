"""Tests for the exchange facade: atomicity, authorization, events, invariants."""

import threading

import pytest

from relayswap_core.config import RelaySwapConfig
from relayswap_core.custody import REFUND_MEMO
from relayswap_core.errors import (
    ERRORS_BY_CODE,
    InvariantViolation,
    NotAuthorized,
    Slippage,
    TransferFailed,
    UnknownAsset,
)
from relayswap_core.events import EventKind, LiquidityEvent, SwapEvent
from relayswap_core.exchange import Exchange
from relayswap_core.invariants import InvariantChecker
from relayswap_core.token import InMemoryToken


class TestAtomicity:
    def test_failed_second_transfer_restores_first(self, exchange, tokens):
        tokens["X"].mint("rCarol", 5_000)
        with pytest.raises(TransferFailed):
            exchange.add_liquidity("X", "Y", 1000, 4000, 0, 0, "rCarol")
        assert tokens["X"].balance_of("rCarol") == 5_000
        assert tokens["X"].balance_of("rCustody") == 0
        assert exchange.get_reserves("X", "Y") is None
        assert exchange.get_lp_balance("rCarol") == 0

    def test_unfunded_swap_leaves_pool_untouched(self, seeded, tokens):
        before = seeded.get_reserves("X", "Y")
        with pytest.raises(TransferFailed):
            seeded.swap("X", "Y", 100, 0, "rNobody")
        assert seeded.get_reserves("X", "Y") == before

    def test_failed_payout_rolls_back_input(self, seeded, tokens):
        # Drain custody's Y behind the engine's back so the payout leg fails.
        tokens["Y"].transfer(4000, "rCustody", "rElsewhere")
        with pytest.raises(TransferFailed):
            seeded.swap("X", "Y", 100, 0, "rBob")
        assert tokens["X"].balance_of("rBob") == 1_000_000
        assert seeded.get_reserves("X", "Y").reserve_a == 1000

    def test_unregistered_asset(self, exchange):
        with pytest.raises(UnknownAsset):
            exchange.add_liquidity("X", "W", 1000, 1000, 0, 0, "rAlice")
        assert exchange.get_reserves("X", "W") is None

    def test_non_exchange_error_also_rolls_back(self, seeded, monkeypatch):
        before = seeded.get_reserves("X", "Y")

        def boom(*args, **kwargs):
            raise RuntimeError("observer crashed")

        monkeypatch.setattr(seeded.custody, "push", boom)
        with pytest.raises(RuntimeError):
            seeded.swap("X", "Y", 100, 0, "rBob")
        assert seeded.get_reserves("X", "Y") == before


class TestCustodyAccount:
    def test_custody_cannot_swap(self, seeded):
        with pytest.raises(NotAuthorized):
            seeded.swap("X", "Y", 100, 0, "rCustody")

    def test_custody_cannot_provide_liquidity(self, exchange):
        with pytest.raises(NotAuthorized):
            exchange.add_liquidity("X", "Y", 10, 10, 0, 0, "rCustody")

    def test_duplicate_asset_registration(self, exchange):
        with pytest.raises(ValueError):
            exchange.register_asset(InMemoryToken(asset_id="X"))


class TestEvents:
    def test_liquidity_event(self, seeded):
        event = seeded.events.last()
        assert isinstance(event, LiquidityEvent)
        assert event.kind == EventKind.ADD_LIQUIDITY
        assert (event.amount_a, event.amount_b, event.shares) == (1000, 4000, 500_002)

    def test_swap_event_and_subscriber(self, seeded):
        received = []
        seeded.events.subscribe(received.append)
        seeded.swap("X", "Y", 100, 0, "rBob")
        assert len(received) == 1
        event = received[0]
        assert isinstance(event, SwapEvent)
        assert event.to_dict()["amount_out"] == 362
        assert "relayer" not in event.to_dict()

    def test_failed_operation_emits_nothing(self, seeded):
        count = len(seeded.events)
        with pytest.raises(Exception):
            seeded.swap("X", "Y", 0, 0, "rBob")
        assert len(seeded.events) == count

    def test_broken_subscriber_does_not_undo_operation(self, seeded):
        def broken(event):
            raise ValueError("nope")

        seeded.events.subscribe(broken)
        seeded.swap("X", "Y", 100, 0, "rBob")
        assert seeded.get_reserves("X", "Y").reserve_a == 1100

    def test_relayed_event_records_relayer(self, funded_signer):
        exchange, wallet = funded_signer
        exchange.relay_intent(wallet.sign_swap("X", "Y", 100, 0, nonce=4), relayer="rRelay")
        event = exchange.events.last()
        assert event.kind == EventKind.RELAYED_SWAP
        assert event.account == wallet.address
        assert event.to_dict()["relayer"] == "rRelay"
        assert event.nonce == 4

    def test_filter_by_kind(self, seeded):
        seeded.swap("X", "Y", 100, 0, "rBob")
        assert len(seeded.events.events(EventKind.SWAP)) == 1
        assert len(seeded.events.events(EventKind.ADD_LIQUIDITY)) == 1


class TestInvariants:
    def test_violation_rolls_back(self, seeded, monkeypatch):
        before = seeded.get_reserves("X", "Y")
        monkeypatch.setattr(InvariantChecker, "verify",
                            lambda self, *a, **k: (False, "forced"))
        with pytest.raises(InvariantViolation):
            seeded.swap("X", "Y", 100, 0, "rBob")
        assert seeded.get_reserves("X", "Y") == before

    def test_checker_detects_product_drop(self, seeded):
        checker = InvariantChecker()
        checker.capture(seeded.registry, seeded.ledger)
        pool = seeded.get_reserves("X", "Y")
        seeded.registry.update("X", "Y", pool.with_changes(reserve_b=3000))
        ok, msg = checker.verify(seeded.registry, seeded.ledger, ("X", "Y"))
        assert ok is False
        assert "Constant product" in msg

    def test_checker_detects_share_mismatch(self, seeded):
        checker = InvariantChecker()
        checker.capture(seeded.registry, seeded.ledger)
        seeded.ledger.credit("rGhost", 1)
        ok, msg = checker.verify(seeded.registry, seeded.ledger)
        assert ok is False
        assert "Share mismatch" in msg

    def test_disabled_checks(self, tokens, monkeypatch):
        ex = Exchange(custody_account="rCustody", check_invariants=False)
        for token in tokens.values():
            ex.register_asset(token)
        monkeypatch.setattr(InvariantChecker, "verify",
                            lambda self, *a, **k: (False, "forced"))
        ex.add_liquidity("X", "Y", 1000, 4000, 0, 0, "rAlice")
        assert ex.get_reserves("X", "Y") is not None


class TestFromConfig:
    def test_builds_from_config(self):
        cfg = RelaySwapConfig()
        cfg.exchange.custody_account = "rVault"
        cfg.exchange.check_invariants = False
        cfg.exchange.max_events = 5
        ex = Exchange.from_config(cfg)
        assert ex.custody_account == "rVault"
        assert ex.check_invariants is False
        assert ex.events.max_events == 5

    def test_get_pools(self, seeded):
        pools = seeded.get_pools()
        assert len(pools) == 1
        assert pools[0]["asset_a"] == "X"


class TestErrorTaxonomy:
    def test_stable_codes(self):
        expected = {
            "NotAuthorized": 100, "InvalidNonce": 101, "Slippage": 102,
            "InsufficientLiquidity": 103, "IdenticalAssets": 104,
            "ZeroAmount": 105, "InsufficientBalance": 106, "PoolExists": 107,
            "PoolNotFound": 108, "InvalidSignature": 109,
        }
        for name, code in expected.items():
            assert ERRORS_BY_CODE[code].__name__ == name

    def test_to_dict(self):
        d = NotAuthorized().to_dict()
        assert d == {"error": "NotAuthorized", "code": 100,
                     "message": "Caller is not authorized"}


class PlainToken:
    """Token with only transfer/balance_of; it cannot snapshot itself."""

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        self.name = asset_id
        self.symbol = asset_id
        self.decimals = 0
        self.balances: dict[str, int] = {}
        self.frozen: set[str] = set()

    def transfer(self, amount, sender, recipient, memo=None):
        if sender in self.frozen:
            return False, f"{sender} is frozen"
        if self.balances.get(sender, 0) < amount:
            return False, "Insufficient balance"
        self.balances[sender] -= amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        return True, "ok"

    def balance_of(self, account):
        return self.balances.get(account, 0)


@pytest.fixture
def plain_exchange():
    ex = Exchange(custody_account="rCustody")
    x, y = PlainToken("X"), PlainToken("Y")
    for token in (x, y):
        token.balances.update({"rAlice": 10_000, "rBob": 1000})
        ex.register_asset(token)
    ex.add_liquidity("X", "Y", 1000, 4000, 0, 0, "rAlice")
    return ex, x, y


class TestNonJournaledTokens:
    def test_failed_payout_refunds_input(self, plain_exchange):
        ex, x, y = plain_exchange
        y.frozen.add("rCustody")
        with pytest.raises(TransferFailed):
            ex.swap("X", "Y", 100, 0, "rBob")
        assert x.balance_of("rBob") == 1000
        assert x.balance_of("rCustody") == 1000
        assert ex.get_reserves("X", "Y").reserve_a == 1000

    def test_failed_second_pull_refunds_first(self, plain_exchange):
        ex, x, y = plain_exchange
        y.frozen.add("rBob")
        with pytest.raises(TransferFailed):
            ex.add_liquidity("X", "Y", 100, 400, 0, 0, "rBob")
        assert x.balance_of("rBob") == 1000
        assert x.balance_of("rCustody") == 1000
        assert ex.get_lp_balance("rBob") == 0

    def test_committed_swap_is_not_refunded_later(self, plain_exchange):
        ex, x, y = plain_exchange
        ex.swap("X", "Y", 100, 0, "rBob")
        with pytest.raises(Slippage):
            ex.swap("X", "Y", 100, 10_000, "rBob")
        assert x.balance_of("rBob") == 900
        assert y.balance_of("rBob") == 1362

    def test_refund_failure_is_reported(self, plain_exchange, monkeypatch):
        ex, x, y = plain_exchange
        y.frozen.add("rCustody")
        original = x.transfer

        def no_refunds(amount, sender, recipient, memo=None):
            if memo == REFUND_MEMO:
                return False, "refunds disabled"
            return original(amount, sender, recipient, memo)

        monkeypatch.setattr(x, "transfer", no_refunds)
        with pytest.raises(TransferFailed, match="could not refund"):
            ex.swap("X", "Y", 100, 0, "rBob")


class TestCommitOrder:
    def test_events_emitted_while_lock_held(self, seeded):
        held = []

        def check_lock(event):
            result = []
            t = threading.Thread(
                target=lambda: result.append(seeded._lock.acquire(blocking=False))
            )
            t.start()
            t.join()
            if result[0]:
                seeded._lock.release()
            held.append(not result[0])

        seeded.events.subscribe(check_lock)
        seeded.swap("X", "Y", 100, 0, "rBob")
        seeded.remove_liquidity("X", "Y", 1000, 0, 0, "rAlice")
        assert held == [True, True]

    def test_concurrent_swaps_are_logged_in_commit_order(self, seeded):
        seen = []
        seeded.events.subscribe(
            lambda event: seen.append(seeded.get_reserves("X", "Y").reserve_a)
        )
        threads = [
            threading.Thread(target=seeded.swap, args=("X", "Y", 10, 0, "rBob"))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert seen == [1000 + 10 * i for i in range(1, 9)]
