"""Exception hierarchy for stakesync.

Ledger collaborators raise these; the reconciliation engine catches them
and reports a not-converged outcome instead of propagating.
"""

from __future__ import annotations


class StakeSyncError(Exception):
    """Base exception for stakesync errors."""

    pass


class ConfigError(StakeSyncError):
    """Raised when configuration is missing or invalid."""

    pass


# =============================================================================
# LEDGER ERRORS
# =============================================================================


class LedgerError(StakeSyncError):
    """Base exception for ledger collaborator failures."""

    pass


class LedgerReadError(LedgerError):
    """Raised when a ledger query fails (transport, status, or decode)."""

    pass


class LedgerSubmissionError(LedgerError):
    """Raised when a transaction submission fails terminally.

    The transaction may still have landed on the ledger (at-least-once
    delivery), so callers must re-read state rather than trust this error.
    """

    def __init__(self, message: str, tx_hash: str = "", code: int | None = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.code = code
