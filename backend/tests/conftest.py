"""Shared test fixtures and configuration."""

import asyncio
from datetime import datetime, timezone
from typing import Callable

import pytest

from oracle.config import GameConfig, LedgerConfig
from oracle.game.lifecycle import LifecycleCoordinator
from oracle.game.matcher import OutcomeMatcher
from oracle.storage import InMemoryRecordStore

REFERENCE_NOW = datetime(2026, 5, 14, 12, 30, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, now: datetime = REFERENCE_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeLedger:
    """Ledger connector that records calls and can be told to fail or stall."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.calls: list[tuple[str, bool]] = []

    async def settle_on_chain(self, external_ref: str, correct: bool) -> str:
        self.calls.append((external_ref, correct))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("rpc unavailable")
        return f"0xtx{len(self.calls)}"


@pytest.fixture
def now() -> datetime:
    return REFERENCE_NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def coordinator(store: InMemoryRecordStore, clock: FakeClock) -> LifecycleCoordinator:
    return LifecycleCoordinator(store=store, game=GameConfig(), clock=clock)


@pytest.fixture
def make_ledger() -> Callable[..., FakeLedger]:
    return FakeLedger


@pytest.fixture
def make_coordinator(
    store: InMemoryRecordStore, clock: FakeClock
) -> Callable[..., LifecycleCoordinator]:
    """Build a coordinator sharing the test store and clock."""

    def _make(
        ledger: FakeLedger | None = None,
        matcher: OutcomeMatcher | None = None,
        ledger_config: LedgerConfig | None = None,
        game: GameConfig | None = None,
    ) -> LifecycleCoordinator:
        return LifecycleCoordinator(
            store=store,
            matcher=matcher,
            ledger=ledger,
            game=game or GameConfig(),
            ledger_config=ledger_config,
            clock=clock,
        )

    return _make


@pytest.fixture
def sample_comment() -> str:
    return "PREDICTION: ETH will flip BTC by end of year\nCONFIDENCE: 9\nCATEGORY: crypto"
