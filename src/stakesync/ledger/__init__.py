"""stakesync ledger - models, collaborator protocols, and the HTTP client."""

from .client import LedgerClient, create_ledger_client
from .models import (
    ChainParams,
    ReputerConfig,
    Role,
    TxResult,
    WorkerConfig,
    parse_amount,
)
from .protocols import LedgerReader, LedgerWriter

__all__ = [
    # Models
    "Role",
    "ChainParams",
    "TxResult",
    "WorkerConfig",
    "ReputerConfig",
    "parse_amount",
    # Protocols
    "LedgerReader",
    "LedgerWriter",
    # Client
    "LedgerClient",
    "create_ledger_client",
]
