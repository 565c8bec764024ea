"""stakesync reconcile - registration and stake reconciliation engine."""

from .engine import (
    ReconcileResult,
    ReconcileStatus,
    ReconciliationEngine,
    compute_stake_delta,
    reconcile_reputer_registration_and_stake,
    reconcile_worker_registration,
)
from .runner import PassReport, run_reconciliation_pass

__all__ = [
    # Engine
    "ReconciliationEngine",
    "ReconcileResult",
    "ReconcileStatus",
    "compute_stake_delta",
    "reconcile_worker_registration",
    "reconcile_reputer_registration_and_stake",
    # Runner
    "PassReport",
    "run_reconciliation_pass",
]
