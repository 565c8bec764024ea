"""Shared fixtures: an in-memory ledger implementing both collaborator protocols."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

import pytest

from stakesync.core.exceptions import LedgerReadError, LedgerSubmissionError
from stakesync.ledger.models import ChainParams, Role, TxResult
from stakesync.reconcile.engine import ReconciliationEngine

ADDRESS = "allo1testnodeaddress000000000000000000000"


@dataclass
class FakeLedger:
    """In-memory ledger that records every call.

    Knobs:
    - ``register_lands`` / ``stake_applied``: what a submission actually
      does to ledger state (``stake_applied=None`` applies the full amount)
    - ``register_error`` / ``stake_error``: raised by the submit call
      *after* the (possibly) landed mutation, like a timeout post-broadcast
    - ``read_errors``: method name -> exception raised on every call
    - ``fail_on_call``: method name -> 1-based call number that raises
    """

    balance: int = 1_000
    registration_fee: int = 100
    registered: set[tuple[int, Role]] = field(default_factory=set)
    stakes: dict[int, int] = field(default_factory=dict)

    register_lands: bool = True
    stake_applied: int | None = None
    register_error: Exception | None = None
    stake_error: Exception | None = None
    read_errors: dict[str, Exception] = field(default_factory=dict)
    fail_on_call: dict[str, int] = field(default_factory=dict)

    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    _counts: Counter = field(default_factory=Counter)
    _tx_counter: int = 0

    # -- bookkeeping -------------------------------------------------------

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        self._counts[name] += 1
        if name in self.read_errors:
            raise self.read_errors[name]
        if self.fail_on_call.get(name) == self._counts[name]:
            raise LedgerReadError(f"{name} failed on call {self._counts[name]}")

    def _next_tx(self) -> str:
        self._tx_counter += 1
        return f"TX{self._tx_counter:04d}"

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    @property
    def writes(self) -> list[tuple[str, tuple[Any, ...]]]:
        return [(name, args) for name, args in self.calls if name.startswith("submit_")]

    # -- LedgerReader ------------------------------------------------------

    async def is_registered(self, topic_id: int, role: Role, address: str) -> bool:
        self._record("is_registered", topic_id, role, address)
        return (topic_id, role) in self.registered

    async def get_chain_params(self) -> ChainParams:
        self._record("get_chain_params")
        return ChainParams(registration_fee=self.registration_fee)

    async def get_balance(self, address: str) -> int:
        self._record("get_balance", address)
        return self.balance

    async def get_stake(self, topic_id: int, address: str) -> int:
        self._record("get_stake", topic_id, address)
        return self.stakes.get(topic_id, 0)

    # -- LedgerWriter ------------------------------------------------------

    async def submit_register(self, address: str, topic_id: int, role: Role) -> TxResult:
        self.calls.append(("submit_register", (address, topic_id, role)))
        tx_hash = self._next_tx()
        if self.register_lands:
            self.registered.add((topic_id, role))
            self.balance -= self.registration_fee
        if self.register_error is not None:
            raise self.register_error
        return TxResult(tx_hash=tx_hash)

    async def submit_add_stake(self, address: str, topic_id: int, amount: int) -> TxResult:
        self.calls.append(("submit_add_stake", (address, topic_id, amount)))
        tx_hash = self._next_tx()
        applied = amount if self.stake_applied is None else self.stake_applied
        self.stakes[topic_id] = self.stakes.get(topic_id, 0) + applied
        if self.stake_error is not None:
            raise self.stake_error
        return TxResult(tx_hash=tx_hash)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def engine(ledger: FakeLedger) -> ReconciliationEngine:
    return ReconciliationEngine(reader=ledger, writer=ledger)


@pytest.fixture
def address() -> str:
    return ADDRESS


@pytest.fixture
def submission_timeout() -> LedgerSubmissionError:
    return LedgerSubmissionError("Register worker node failed after 4 attempts: Request timeout", tx_hash="TXLOST")
