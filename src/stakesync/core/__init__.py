"""stakesync core - shared exceptions and defaults."""

from . import defaults as defaults
from .exceptions import (
    ConfigError,
    LedgerError,
    LedgerReadError,
    LedgerSubmissionError,
    StakeSyncError,
)

__all__ = [
    "defaults",
    "StakeSyncError",
    "ConfigError",
    "LedgerError",
    "LedgerReadError",
    "LedgerSubmissionError",
]
