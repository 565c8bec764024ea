"""Reconciliation engine: converge ledger registration and stake.

One pass for one (address, role, topic) follows read, verify, act,
re-verify:

- Worker: registered on the topic.
- Reputer: registered on the topic, then stake >= ``min_stake``.

The engine never de-registers and never withdraws stake. Any mutation is
followed by a fresh read, and that read alone decides the outcome. A
submission that reported an error may still have landed, and one that
reported success may not be visible yet.

Internally each pass produces a ``ReconcileResult`` with a status per
failure category; the public entry points reduce it to ``bool``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, NoReturn

from ..core.exceptions import LedgerError
from ..ledger.models import ReputerConfig, Role, WorkerConfig
from ..ledger.protocols import LedgerReader, LedgerWriter

logger = logging.getLogger(__name__)


# =============================================================================
# RESULTS
# =============================================================================


class ReconcileStatus(StrEnum):
    """Outcome category of one reconciliation pass."""

    CONVERGED = "converged"
    READ_FAILURE = "read_failure"  # Ledger query failed, state unknown
    INSUFFICIENT_FUNDS = "insufficient_funds"  # Balance below registration fee
    SUBMISSION_FAILURE = "submission_failure"  # Write errored and did not land
    VERIFICATION_FAILURE = "verification_failure"  # Write reported ok, ledger disagrees
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class ReconcileResult:
    """Everything observed and done during one pass."""

    role: Role
    topic_id: int
    address: str
    status: ReconcileStatus = ReconcileStatus.CONVERGED
    detail: str = ""

    # Observed ledger state (None = not read)
    registered: bool | None = None
    balance: int | None = None
    registration_fee: int | None = None
    stake: int | None = None
    min_stake: int | None = None

    # Writes issued
    registration_submitted: bool = False
    registration_tx: str = ""
    stake_added: int = 0
    stake_tx: str = ""
    submission_errors: list[str] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.status == ReconcileStatus.CONVERGED

    @property
    def write_count(self) -> int:
        return int(self.registration_submitted) + int(self.stake_added > 0)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""

        def amount(value: int | None) -> str | None:
            return None if value is None else str(value)

        return {
            "role": self.role.value,
            "topic_id": self.topic_id,
            "address": self.address,
            "status": self.status.value,
            "converged": self.converged,
            "detail": self.detail,
            "registered": self.registered,
            "balance": amount(self.balance),
            "registration_fee": amount(self.registration_fee),
            "stake": amount(self.stake),
            "min_stake": amount(self.min_stake),
            "registration_submitted": self.registration_submitted,
            "registration_tx": self.registration_tx,
            "stake_added": str(self.stake_added),
            "stake_tx": self.stake_tx,
            "submission_errors": list(self.submission_errors),
        }


class _NotConverged(Exception):
    """Stops a pass early; the result already carries the reason."""


def compute_stake_delta(current_stake: int, min_stake: int) -> int:
    """Amount to add so that stake reaches *min_stake*.

    Zero or negative means no top-up is needed.

    >>> compute_stake_delta(40, 100)
    60
    >>> compute_stake_delta(150, 100)
    -50
    """
    return min_stake - current_stake


# =============================================================================
# ENGINE
# =============================================================================


@dataclass(frozen=True)
class ReconciliationEngine:
    """Stateless reconciliation over explicit ledger collaborators.

    Safe to call concurrently for distinct (address, role, topic) tuples.
    Calls for the same tuple are not serialized here; callers wanting
    single-flight behaviour must not overlap them.
    """

    reader: LedgerReader
    writer: LedgerWriter

    # -------------------------------------------------------------------------
    # PUBLIC API
    # -------------------------------------------------------------------------

    async def reconcile_worker_registration(self, address: str, config: WorkerConfig) -> bool:
        """True if *address* is, per a fresh ledger read, registered as worker."""
        result = await self.reconcile_worker(address, config)
        return result.converged

    async def reconcile_reputer_registration_and_stake(self, address: str, config: ReputerConfig) -> bool:
        """True if *address* is registered as reputer with stake >= ``config.min_stake``."""
        result = await self.reconcile_reputer(address, config)
        return result.converged

    async def reconcile_worker(self, address: str, config: WorkerConfig) -> ReconcileResult:
        """Run a worker pass and return the detailed result. Never raises."""
        result = ReconcileResult(role=Role.WORKER, topic_id=config.topic_id, address=address)
        try:
            await self._ensure_registered(result)
        except _NotConverged:
            pass
        except Exception as e:
            self._record_unexpected(result, e)
        self._log_outcome(result)
        return result

    async def reconcile_reputer(self, address: str, config: ReputerConfig) -> ReconcileResult:
        """Run a reputer pass and return the detailed result. Never raises."""
        result = ReconcileResult(
            role=Role.REPUTER,
            topic_id=config.topic_id,
            address=address,
            min_stake=config.min_stake,
        )
        try:
            if config.min_stake < 0:
                raise ValueError(f"min_stake must be non-negative, got {config.min_stake}")
            await self._ensure_registered(result)
            await self._ensure_stake(result, config.min_stake)
        except _NotConverged:
            pass
        except Exception as e:
            self._record_unexpected(result, e)
        self._log_outcome(result)
        return result

    # -------------------------------------------------------------------------
    # PHASES
    # -------------------------------------------------------------------------

    async def _ensure_registered(self, result: ReconcileResult) -> None:
        """Register ``result.address`` unless the ledger already shows it."""
        role, topic_id, address = result.role, result.topic_id, result.address

        try:
            registered = await self.reader.is_registered(topic_id, role, address)
        except LedgerError as e:
            self._abort(result, ReconcileStatus.READ_FAILURE, f"could not check registration: {e}")
        result.registered = registered

        if registered:
            logger.info(f"{role.value} already registered for topic {topic_id}")
            return
        logger.info(f"{role.value} not yet registered for topic {topic_id}, attempting registration")

        try:
            params = await self.reader.get_chain_params()
            result.registration_fee = params.registration_fee
            result.balance = await self.reader.get_balance(address)
        except LedgerError as e:
            self._abort(result, ReconcileStatus.READ_FAILURE, f"could not read fee or balance: {e}")

        if result.balance < result.registration_fee:
            self._abort(
                result,
                ReconcileStatus.INSUFFICIENT_FUNDS,
                f"balance {result.balance} below registration fee {result.registration_fee}",
            )

        result.registration_submitted = True
        submit_failed = False
        try:
            tx = await self.writer.submit_register(address, topic_id, role)
            result.registration_tx = tx.tx_hash
            logger.info(f"Submitted {role.value} registration for topic {topic_id}, tx {tx.tx_hash}")
        except Exception as e:
            submit_failed = True
            result.registration_tx = getattr(e, "tx_hash", "") or ""
            result.submission_errors.append(f"register: {e}")
            logger.warning(
                f"{role.value} registration for topic {topic_id} reported failure "
                f"(tx {result.registration_tx or '-'}): {e}; verifying against ledger"
            )

        try:
            registered = await self.reader.is_registered(topic_id, role, address)
        except LedgerError as e:
            self._abort(result, ReconcileStatus.READ_FAILURE, f"could not verify registration: {e}")
        result.registered = registered

        if not registered:
            self._abort(
                result,
                ReconcileStatus.SUBMISSION_FAILURE if submit_failed else ReconcileStatus.VERIFICATION_FAILURE,
                f"still not registered after submission (tx {result.registration_tx or '-'})",
            )
        logger.info(f"{role.value} registration confirmed for topic {topic_id}")

    async def _ensure_stake(self, result: ReconcileResult, min_stake: int) -> None:
        """Top stake up to *min_stake*. Only reached once registration is confirmed."""
        topic_id, address = result.topic_id, result.address

        try:
            stake = await self.reader.get_stake(topic_id, address)
        except LedgerError as e:
            self._abort(result, ReconcileStatus.READ_FAILURE, f"could not read stake: {e}")
        result.stake = stake

        delta = compute_stake_delta(stake, min_stake)
        if delta <= 0:
            logger.info(f"Reputer stake {stake} on topic {topic_id} meets minimum {min_stake}, skipping")
            return
        logger.info(
            f"Reputer stake {stake} on topic {topic_id} below minimum {min_stake}, adding {delta}"
        )

        result.stake_added = delta
        submit_failed = False
        try:
            tx = await self.writer.submit_add_stake(address, topic_id, delta)
            result.stake_tx = tx.tx_hash
            logger.info(f"Submitted stake top-up of {delta} on topic {topic_id}, tx {tx.tx_hash}")
        except Exception as e:
            submit_failed = True
            result.stake_tx = getattr(e, "tx_hash", "") or ""
            result.submission_errors.append(f"add_stake: {e}")
            logger.warning(
                f"Stake top-up of {delta} on topic {topic_id} reported failure "
                f"(tx {result.stake_tx or '-'}): {e}; verifying against ledger"
            )

        try:
            stake = await self.reader.get_stake(topic_id, address)
        except LedgerError as e:
            self._abort(result, ReconcileStatus.READ_FAILURE, f"could not verify stake: {e}")
        result.stake = stake

        if stake < min_stake:
            self._abort(
                result,
                ReconcileStatus.SUBMISSION_FAILURE if submit_failed else ReconcileStatus.VERIFICATION_FAILURE,
                f"stake {stake} still below minimum {min_stake} (tx {result.stake_tx or '-'})",
            )

    # -------------------------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------------------------

    @staticmethod
    def _abort(result: ReconcileResult, status: ReconcileStatus, detail: str) -> NoReturn:
        result.status = status
        result.detail = detail
        raise _NotConverged(detail)

    @staticmethod
    def _record_unexpected(result: ReconcileResult, error: Exception) -> None:
        result.status = ReconcileStatus.UNEXPECTED_ERROR
        result.detail = f"{type(error).__name__}: {error}"
        logger.exception(
            f"Unexpected error reconciling {result.role.value} on topic {result.topic_id}"
        )

    @staticmethod
    def _log_outcome(result: ReconcileResult) -> None:
        if result.converged:
            logger.info(
                f"{result.role.value} on topic {result.topic_id} converged "
                f"({result.write_count} write(s))"
            )
        elif result.status != ReconcileStatus.UNEXPECTED_ERROR:
            logger.warning(
                f"{result.role.value} on topic {result.topic_id} not converged "
                f"[{result.status.value}]: {result.detail}"
            )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


async def reconcile_worker_registration(
    reader: LedgerReader,
    writer: LedgerWriter,
    address: str,
    config: WorkerConfig,
) -> bool:
    """One worker pass with explicitly supplied collaborators."""
    engine = ReconciliationEngine(reader=reader, writer=writer)
    return await engine.reconcile_worker_registration(address, config)


async def reconcile_reputer_registration_and_stake(
    reader: LedgerReader,
    writer: LedgerWriter,
    address: str,
    config: ReputerConfig,
) -> bool:
    """One reputer pass with explicitly supplied collaborators."""
    engine = ReconciliationEngine(reader=reader, writer=writer)
    return await engine.reconcile_reputer_registration_and_stake(address, config)
