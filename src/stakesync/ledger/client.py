"""
Ledger Client - HTTP collaborator for registration and stake queries.

Implements both ``LedgerReader`` and ``LedgerWriter``:

1. Reads go to the ledger REST gateway (``ledger_url``)
2. Writes go to a signing gateway (``signer_url``) which signs the
   message with the node key and broadcasts it

Protocol:
- GET  /emissions/v1/params
- GET  /emissions/v1/{role}_registered/{topic_id}/{address}
- GET  /emissions/v1/reputer_stake/{address}/{topic_id}
- GET  /cosmos/bank/v1beta1/balances/{address}/by_denom?denom=...
- POST /tx  -> {"tx_hash", "code", "raw_log"}

Reads are never retried. Submissions are retried with exponential backoff
on transport errors and transient ledger codes, which makes them
at-least-once: a submission that finally raises may still have landed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

import aiohttp

from ..core import defaults
from ..core.exceptions import LedgerReadError, LedgerSubmissionError
from .models import ChainParams, Role, TxResult, parse_amount

if TYPE_CHECKING:
    from ..config import WalletConfig

logger = logging.getLogger(__name__)


class _TransientSubmissionError(LedgerSubmissionError):
    """Submission failure worth another attempt."""

    pass


# =============================================================================
# LEDGER CLIENT
# =============================================================================


@dataclass
class LedgerClient:
    """
    Client for the ledger REST gateway and the transaction signer.

    Every request opens its own ``aiohttp.ClientSession`` so the client
    holds no connection state and can be shared across concurrent
    reconciliation tasks.

    Example:
        client = LedgerClient(
            ledger_url="http://localhost:1317",
            signer_url="http://localhost:8740",
        )
        fee = (await client.get_chain_params()).registration_fee
    """

    ledger_url: str
    signer_url: str
    denom: str = defaults.DEFAULT_DENOM

    # Submission retry policy
    max_retries: int = defaults.MAX_RETRIES
    retry_delay: float = defaults.RETRY_DELAY_SECONDS

    # Request timeout (seconds)
    request_timeout: float = defaults.REQUEST_TIMEOUT_SECONDS

    # Statistics
    _stats: Dict[str, int] = field(default_factory=lambda: {
        "reads": 0,
        "read_failures": 0,
        "submissions": 0,
        "submission_retries": 0,
        "submission_failures": 0,
    })

    def __post_init__(self) -> None:
        self.ledger_url = self.ledger_url.rstrip("/")
        self.signer_url = self.signer_url.rstrip("/")

    @classmethod
    def from_wallet(cls, wallet: WalletConfig) -> LedgerClient:
        """Build a client from the wallet section of the user config."""
        return cls(
            ledger_url=wallet.ledger_url,
            signer_url=wallet.signer_url,
            denom=wallet.denom,
            max_retries=wallet.max_retries,
            retry_delay=wallet.retry_delay,
            request_timeout=wallet.request_timeout,
        )

    def get_stats(self) -> Dict[str, int]:
        """Get client statistics."""
        return dict(self._stats)

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    async def is_registered(self, topic_id: int, role: Role, address: str) -> bool:
        path = f"/emissions/{defaults.EMISSIONS_API_VERSION}/{role.value}_registered/{topic_id}/{address}"
        data = await self._get(path)
        value = data.get("is_registered")
        if not isinstance(value, bool):
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Malformed registration response for {path}: {data}")
        return value

    async def get_chain_params(self) -> ChainParams:
        path = f"/emissions/{defaults.EMISSIONS_API_VERSION}/params"
        data = await self._get(path)
        try:
            return ChainParams.from_dict(data["params"])
        except (KeyError, TypeError, ValueError) as e:
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Malformed params response: {e}") from e

    async def get_balance(self, address: str) -> int:
        path = f"/cosmos/bank/v1beta1/balances/{address}/by_denom"
        data = await self._get(path, params={"denom": self.denom})
        try:
            return parse_amount(data["balance"]["amount"])
        except (KeyError, TypeError, ValueError) as e:
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Malformed balance response: {e}") from e

    async def get_stake(self, topic_id: int, address: str) -> int:
        path = f"/emissions/{defaults.EMISSIONS_API_VERSION}/reputer_stake/{address}/{topic_id}"
        data = await self._get(path)
        try:
            return parse_amount(data["amount"])
        except (KeyError, TypeError, ValueError) as e:
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Malformed stake response: {e}") from e

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Perform a single GET against the ledger gateway.

        Raises:
            LedgerReadError: On transport error, timeout, non-200 status,
                or a body that is not a JSON object
        """
        self._stats["reads"] += 1
        url = f"{self.ledger_url}{path}"

        try:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params=params) as resp:
                    if resp.status != 200:
                        raise LedgerReadError(
                            f"Ledger returned HTTP {resp.status} for {path}: {await resp.text()}"
                        )
                    data = await resp.json()
        except LedgerReadError:
            self._stats["read_failures"] += 1
            raise
        except aiohttp.ContentTypeError as e:
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Non-JSON response for {path}: {e.message}") from e
        except aiohttp.ClientError as e:
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Connection error for {path}: {e}") from e
        except asyncio.TimeoutError:
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Request timeout for {path}")
        except ValueError as e:
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Invalid JSON for {path}: {e}") from e

        if not isinstance(data, dict):
            self._stats["read_failures"] += 1
            raise LedgerReadError(f"Unexpected response body for {path}: {data!r}")
        return data

    # -------------------------------------------------------------------------
    # WRITES
    # -------------------------------------------------------------------------

    async def submit_register(self, address: str, topic_id: int, role: Role) -> TxResult:
        body = {
            "type": "register",
            "sender": address,
            "owner": address,
            "topic_id": topic_id,
            "is_reputer": role.is_reputer,
        }
        return await self._submit_with_retry(body, f"Register {role.value} node")

    async def submit_add_stake(self, address: str, topic_id: int, amount: int) -> TxResult:
        if amount <= 0:
            raise ValueError(f"Stake amount must be positive, got {amount}")
        body = {
            "type": "add_stake",
            "sender": address,
            "topic_id": topic_id,
            "amount": str(amount),
        }
        return await self._submit_with_retry(body, "Add reputer stake")

    async def _submit_with_retry(self, body: Dict[str, Any], description: str) -> TxResult:
        """
        Submit a message, retrying transient failures.

        Args:
            body: Message for the signing gateway
            description: Human-readable label for logs

        Returns:
            TxResult of the accepted transaction

        Raises:
            LedgerSubmissionError: On a terminal failure or once retries
                are exhausted. ``tx_hash`` is the last hash seen, if any.
        """
        self._stats["submissions"] += 1
        attempts = self.max_retries + 1
        delay = self.retry_delay
        last_error: Optional[LedgerSubmissionError] = None
        tx_hash = ""

        for attempt in range(1, attempts + 1):
            try:
                result = await self._post_tx(body)
            except _TransientSubmissionError as e:
                last_error = e
                tx_hash = e.tx_hash or tx_hash
                if attempt == attempts:
                    break
                self._stats["submission_retries"] += 1
                logger.warning(
                    f"{description} failed (attempt {attempt}/{attempts}): {e}; "
                    f"retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
                delay = min(delay * defaults.RETRY_BACKOFF_FACTOR, defaults.MAX_RETRY_DELAY_SECONDS)
                continue
            except LedgerSubmissionError:
                self._stats["submission_failures"] += 1
                raise

            logger.debug(f"{description}: tx {result.tx_hash} accepted on attempt {attempt}")
            return result

        self._stats["submission_failures"] += 1
        raise LedgerSubmissionError(
            f"{description} failed after {attempts} attempts: {last_error}",
            tx_hash=tx_hash,
            code=last_error.code if last_error else None,
        )

    async def _post_tx(self, body: Dict[str, Any]) -> TxResult:
        """Post one message to the signing gateway and classify the outcome."""
        url = f"{self.signer_url}/tx"

        try:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    url,
                    json=body,
                    headers={"Content-Type": "application/json"},
                ) as resp:
                    if resp.status == 429 or resp.status >= 500:
                        raise _TransientSubmissionError(
                            f"Signer returned HTTP {resp.status}: {await resp.text()}"
                        )
                    if resp.status != 200:
                        raise LedgerSubmissionError(
                            f"Signer returned HTTP {resp.status}: {await resp.text()}"
                        )
                    data = await resp.json()
        except LedgerSubmissionError:
            raise
        except aiohttp.ContentTypeError as e:
            # The signer answered 200; the tx may already be broadcast.
            raise LedgerSubmissionError(f"Non-JSON response from signer: {e.message}") from e
        except aiohttp.ClientError as e:
            raise _TransientSubmissionError(f"Connection error: {e}") from e
        except asyncio.TimeoutError:
            raise _TransientSubmissionError("Request timeout")
        except ValueError as e:
            raise LedgerSubmissionError(f"Invalid JSON from signer: {e}") from e

        if not isinstance(data, dict):
            raise LedgerSubmissionError(f"Unexpected signer response: {data!r}")
        try:
            result = TxResult.from_dict(data)
        except (TypeError, ValueError) as e:
            raise LedgerSubmissionError(f"Malformed signer response: {e}") from e

        if result.success:
            return result
        message = f"Ledger rejected tx {result.tx_hash or '?'} with code {result.code}: {result.raw_log}"
        if result.code in defaults.TRANSIENT_TX_CODES:
            raise _TransientSubmissionError(message, tx_hash=result.tx_hash, code=result.code)
        raise LedgerSubmissionError(message, tx_hash=result.tx_hash, code=result.code)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def create_ledger_client(wallet: WalletConfig) -> LedgerClient:
    """Create a ledger client for *wallet*."""
    return LedgerClient.from_wallet(wallet)
