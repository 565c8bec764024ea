"""Ledger collaborator interfaces.

Defines the ``LedgerReader`` and ``LedgerWriter`` protocols the
reconciliation engine consumes. ``LedgerClient`` implements both over
HTTP; tests use an in-memory fake.

Design goals:
* Pure protocol, so collaborators never inherit from a shared base.
* Async-first, every ledger call is a coroutine.
* Failures surface as ``LedgerReadError`` / ``LedgerSubmissionError``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import ChainParams, Role, TxResult


@runtime_checkable
class LedgerReader(Protocol):
    """Read-only ledger queries. No mutation, no retry of its own."""

    async def is_registered(self, topic_id: int, role: Role, address: str) -> bool:
        """Whether *address* is registered for *role* on *topic_id*."""
        ...

    async def get_chain_params(self) -> ChainParams:
        """Return current chain-wide parameters (registration fee)."""
        ...

    async def get_balance(self, address: str) -> int:
        """Return spendable balance of *address* in base units."""
        ...

    async def get_stake(self, topic_id: int, address: str) -> int:
        """Return stake held by *address* on *topic_id* in base units."""
        ...


@runtime_checkable
class LedgerWriter(Protocol):
    """Signed, retried, at-least-once ledger mutations.

    A call that raises may still have mutated ledger state.
    """

    async def submit_register(self, address: str, topic_id: int, role: Role) -> TxResult:
        """Register *address* (as sender and owner) for *role* on *topic_id*."""
        ...

    async def submit_add_stake(self, address: str, topic_id: int, amount: int) -> TxResult:
        """Add *amount* (strictly positive) to the stake of *address* on *topic_id*."""
        ...
