"""Data models for ledger state and desired actor configuration.

Amounts are plain ``int`` values in base units. The ledger serialises
them as decimal strings because they routinely exceed the range JSON
numbers can carry safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

# =============================================================================
# ENUMS
# =============================================================================


class Role(StrEnum):
    """Role an identity can register for on a topic."""

    WORKER = "worker"
    REPUTER = "reputer"

    @property
    def is_reputer(self) -> bool:
        return self is Role.REPUTER


# =============================================================================
# AMOUNTS
# =============================================================================


def parse_amount(value: Any) -> int:
    """Parse a non-negative base-unit amount.

    Accepts ``int`` or a string of ASCII decimal digits. Booleans, floats,
    negative values, and anything else raise ``ValueError``.

    >>> parse_amount("1000000000000000000000")
    1000000000000000000000
    >>> parse_amount(42)
    42
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        amount = int(value.strip())
    else:
        raise ValueError(f"Invalid amount: {value!r}")
    if amount < 0:
        raise ValueError(f"Amount must be non-negative: {amount}")
    return amount


def _parse_topic_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Invalid topic_id: {value!r}")
    if value <= 0:
        raise ValueError(f"topic_id must be positive: {value}")
    return value


# =============================================================================
# LEDGER STATE
# =============================================================================


@dataclass(frozen=True)
class ChainParams:
    """Chain-wide economic parameters. Read fresh on every pass."""

    registration_fee: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChainParams:
        """Create from the ``params`` object of a params query."""
        return cls(registration_fee=parse_amount(data["registration_fee"]))


@dataclass(frozen=True)
class TxResult:
    """Outcome of a submitted transaction as reported by the gateway.

    A successful result is not proof of ledger state; the engine always
    re-reads.
    """

    tx_hash: str
    code: int = 0
    raw_log: str = ""

    @property
    def success(self) -> bool:
        return self.code == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "tx_hash": self.tx_hash,
            "code": self.code,
            "raw_log": self.raw_log,
            "success": self.success,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TxResult:
        """Create from a gateway response body."""
        return cls(
            tx_hash=str(data.get("tx_hash", "")),
            code=int(data.get("code", 0)),
            raw_log=str(data.get("raw_log", "")),
        )


# =============================================================================
# DESIRED STATE
# =============================================================================


@dataclass(frozen=True)
class WorkerConfig:
    """Desired state: registered as worker on ``topic_id``."""

    topic_id: int

    @property
    def role(self) -> Role:
        return Role.WORKER

    def to_dict(self) -> dict[str, Any]:
        return {"topic_id": self.topic_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkerConfig:
        return cls(topic_id=_parse_topic_id(data.get("topic_id")))


@dataclass(frozen=True)
class ReputerConfig:
    """Desired state: registered as reputer on ``topic_id`` with stake >= ``min_stake``."""

    topic_id: int
    min_stake: int = 0

    @property
    def role(self) -> Role:
        return Role.REPUTER

    def to_dict(self) -> dict[str, Any]:
        return {"topic_id": self.topic_id, "min_stake": str(self.min_stake)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReputerConfig:
        return cls(
            topic_id=_parse_topic_id(data.get("topic_id")),
            min_stake=parse_amount(data.get("min_stake", 0)),
        )
