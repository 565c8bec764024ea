"""Centralized configurable defaults for stakesync.

All tunable parameters in one place. Values marked with an environment
variable can be overridden without touching the config file.
"""

from __future__ import annotations

import os

# Submission retry policy
MAX_RETRIES = int(os.environ.get("STAKESYNC_MAX_RETRIES", "3"))
RETRY_DELAY_SECONDS = float(os.environ.get("STAKESYNC_RETRY_DELAY", "2.0"))
RETRY_BACKOFF_FACTOR = 2.0
MAX_RETRY_DELAY_SECONDS = 30.0

# HTTP
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("STAKESYNC_REQUEST_TIMEOUT", "10.0"))

# Ledger
DEFAULT_DENOM = os.environ.get("STAKESYNC_DENOM", "uallo")
EMISSIONS_API_VERSION = "v1"

# Ledger response codes worth retrying
CODE_OK = 0
CODE_MEMPOOL_FULL = 20
CODE_TX_TIMEOUT = 30
CODE_ACCOUNT_SEQUENCE_MISMATCH = 32
TRANSIENT_TX_CODES = frozenset(
    {
        CODE_MEMPOOL_FULL,
        CODE_TX_TIMEOUT,
        CODE_ACCOUNT_SEQUENCE_MISMATCH,
    }
)

# Config sources
CONFIG_JSON_ENV = "STAKESYNC_CONFIG_JSON"
CONFIG_FILE_PATH_ENV = "STAKESYNC_CONFIG_FILE_PATH"
LOG_LEVEL_ENV = "STAKESYNC_LOG_LEVEL"
