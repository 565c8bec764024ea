"""User configuration for the stakesync agent.

Configuration is JSON, taken from (first match wins):

1. An explicit path (CLI ``--config``)
2. Inline JSON in ``STAKESYNC_CONFIG_JSON``
3. A file named by ``STAKESYNC_CONFIG_FILE_PATH``

A ``.env`` file is read first so either variable can live there.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .core import defaults
from .core.exceptions import ConfigError
from .ledger.models import ReputerConfig, WorkerConfig

logger = logging.getLogger(__name__)

DEFAULT_ENV_PATHS = [Path.cwd() / ".env", Path.home() / ".stakesync" / ".env"]


def load_env_file(paths: list[Path] | None = None) -> Path | None:
    """Load ``KEY=VALUE`` lines from the first existing env file.

    Variables already present in the environment are left untouched.

    Returns:
        The path that was loaded, or None if no file was found
    """
    for env_path in paths if paths is not None else DEFAULT_ENV_PATHS:
        if env_path.exists():
            with open(env_path) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        os.environ.setdefault(key.strip(), value.strip())
            logger.debug(f"Loaded environment from {env_path}")
            return env_path
    return None


# =============================================================================
# MODELS
# =============================================================================


@dataclass
class WalletConfig:
    """Node identity and how to reach the ledger."""

    address: str
    ledger_url: str
    signer_url: str
    denom: str = defaults.DEFAULT_DENOM
    max_retries: int = defaults.MAX_RETRIES
    retry_delay: float = defaults.RETRY_DELAY_SECONDS
    request_timeout: float = defaults.REQUEST_TIMEOUT_SECONDS

    def validate(self) -> None:
        """Raise ConfigError if any field is unusable."""
        for name in ("address", "ledger_url", "signer_url", "denom"):
            if not getattr(self, name):
                raise ConfigError(f"wallet.{name} is required")
        if self.max_retries < 0:
            raise ConfigError(f"wallet.max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay <= 0:
            raise ConfigError(f"wallet.retry_delay must be > 0, got {self.retry_delay}")
        if self.request_timeout <= 0:
            raise ConfigError(f"wallet.request_timeout must be > 0, got {self.request_timeout}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "ledger_url": self.ledger_url,
            "signer_url": self.signer_url,
            "denom": self.denom,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "request_timeout": self.request_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WalletConfig:
        """Create from dictionary, validating as we go."""
        try:
            wallet = cls(
                address=str(data.get("address") or "").strip(),
                ledger_url=str(data.get("ledger_url") or "").strip().rstrip("/"),
                signer_url=str(data.get("signer_url") or "").strip().rstrip("/"),
                denom=str(data.get("denom", defaults.DEFAULT_DENOM)),
                max_retries=int(data.get("max_retries", defaults.MAX_RETRIES)),
                retry_delay=float(data.get("retry_delay", defaults.RETRY_DELAY_SECONDS)),
                request_timeout=float(data.get("request_timeout", defaults.REQUEST_TIMEOUT_SECONDS)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid wallet config: {e}") from e
        wallet.validate()
        return wallet


@dataclass
class UserConfig:
    """Wallet plus every actor this node should keep reconciled."""

    wallet: WalletConfig
    workers: list[WorkerConfig] = field(default_factory=list)
    reputers: list[ReputerConfig] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "wallet": self.wallet.to_dict(),
            "worker": [w.to_dict() for w in self.workers],
            "reputer": [r.to_dict() for r in self.reputers],
        }

    @classmethod
    def from_dict(cls, data: Any) -> UserConfig:
        if not isinstance(data, dict):
            raise ConfigError("Config must be a JSON object")
        wallet_data = data.get("wallet")
        if not isinstance(wallet_data, dict):
            raise ConfigError("Config is missing the 'wallet' object")

        wallet = WalletConfig.from_dict(wallet_data)
        try:
            workers = [WorkerConfig.from_dict(w) for w in data.get("worker") or []]
            reputers = [ReputerConfig.from_dict(r) for r in data.get("reputer") or []]
        except (AttributeError, ValueError) as e:
            raise ConfigError(f"Invalid actor config: {e}") from e

        if not workers and not reputers:
            logger.warning("Config declares no worker or reputer actors")
        return cls(wallet=wallet, workers=workers, reputers=reputers)


# =============================================================================
# LOADING
# =============================================================================


def _parse_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse JSON config from {source}: {e}") from e


def _read_file(path: Path) -> Any:
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"Failed to open config file {path}: {e}") from e
    return _parse_json(text, str(path))


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> UserConfig:
    """Load and validate the user configuration.

    Args:
        path: Explicit config file, takes precedence over the environment
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated UserConfig

    Raises:
        ConfigError: If no source is configured or the config is invalid
    """
    env = os.environ if environ is None else environ

    if path is not None:
        logger.info(f"Config using file {path}")
        data = _read_file(Path(path))
    elif env.get(defaults.CONFIG_JSON_ENV):
        logger.info("Config using JSON env var")
        data = _parse_json(env[defaults.CONFIG_JSON_ENV], defaults.CONFIG_JSON_ENV)
    elif env.get(defaults.CONFIG_FILE_PATH_ENV):
        logger.info("Config using JSON config file")
        data = _read_file(Path(env[defaults.CONFIG_FILE_PATH_ENV]))
    else:
        raise ConfigError(
            f"No configuration found. Set {defaults.CONFIG_JSON_ENV} or "
            f"{defaults.CONFIG_FILE_PATH_ENV}, or pass --config."
        )

    return UserConfig.from_dict(data)
