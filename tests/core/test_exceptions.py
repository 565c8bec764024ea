"""Tests for the exception hierarchy."""

from __future__ import annotations

from stakesync.core.exceptions import (
    ConfigError,
    LedgerError,
    LedgerReadError,
    LedgerSubmissionError,
    StakeSyncError,
)


class TestHierarchy:
    """Tests for exception inheritance."""

    def test_ledger_errors_share_base(self):
        assert issubclass(LedgerReadError, LedgerError)
        assert issubclass(LedgerSubmissionError, LedgerError)
        assert issubclass(LedgerError, StakeSyncError)

    def test_config_error_is_not_ledger_error(self):
        assert issubclass(ConfigError, StakeSyncError)
        assert not issubclass(ConfigError, LedgerError)


class TestLedgerSubmissionError:
    """Tests for submission error context."""

    def test_carries_tx_hash_and_code(self):
        err = LedgerSubmissionError("rejected", tx_hash="ABC", code=5)
        assert str(err) == "rejected"
        assert err.tx_hash == "ABC"
        assert err.code == 5

    def test_defaults(self):
        err = LedgerSubmissionError("timeout")
        assert err.tx_hash == ""
        assert err.code is None
