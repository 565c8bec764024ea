"""Tests for the reconciliation pass runner."""

from __future__ import annotations

import pytest

from stakesync.core.exceptions import LedgerReadError
from stakesync.ledger.models import ReputerConfig, Role, WorkerConfig
from stakesync.reconcile.engine import ReconcileStatus
from stakesync.reconcile.runner import (
    PassReport,
    dedupe_reputers,
    dedupe_workers,
    run_reconciliation_pass,
)


class TestDedupe:
    """Tests for per-pass tuple de-duplication."""

    def test_workers_keep_first_order(self):
        workers = [WorkerConfig(3), WorkerConfig(1), WorkerConfig(3)]
        assert dedupe_workers(workers) == [WorkerConfig(3), WorkerConfig(1)]

    def test_reputers_keep_largest_min_stake(self):
        reputers = [ReputerConfig(1, 50), ReputerConfig(2, 10), ReputerConfig(1, 80), ReputerConfig(1, 60)]
        result = dedupe_reputers(reputers)
        assert result == [ReputerConfig(1, 80), ReputerConfig(2, 10)]

    def test_empty(self):
        assert dedupe_workers([]) == []
        assert dedupe_reputers([]) == []


class TestRunReconciliationPass:
    """Tests for a full pass over configured actors."""

    @pytest.mark.asyncio
    async def test_all_actors_converge(self, engine, ledger, address):
        report = await run_reconciliation_pass(
            engine,
            address,
            workers=[WorkerConfig(1), WorkerConfig(2)],
            reputers=[ReputerConfig(1, 100)],
        )

        assert report.all_converged
        assert report.converged_count == 3
        assert [(r.role, r.topic_id) for r in report.results] == [
            (Role.WORKER, 1),
            (Role.WORKER, 2),
            (Role.REPUTER, 1),
        ]
        assert ledger.stakes[1] == 100

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self, engine, ledger, address):
        ledger.registered.add((2, Role.WORKER))
        ledger.read_errors["get_stake"] = LedgerReadError("stake endpoint down")

        report = await run_reconciliation_pass(
            engine,
            address,
            workers=[WorkerConfig(2)],
            reputers=[ReputerConfig(1, 100)],
        )

        assert not report.all_converged
        statuses = {(r.role, r.topic_id): r.status for r in report.results}
        assert statuses[(Role.WORKER, 2)] == ReconcileStatus.CONVERGED
        assert statuses[(Role.REPUTER, 1)] == ReconcileStatus.READ_FAILURE

    @pytest.mark.asyncio
    async def test_duplicate_tuples_run_once(self, engine, ledger, address):
        report = await run_reconciliation_pass(
            engine,
            address,
            workers=[WorkerConfig(5), WorkerConfig(5)],
            reputers=[],
        )

        assert len(report.results) == 1
        assert len(ledger.calls_to("submit_register")) == 1

    @pytest.mark.asyncio
    async def test_empty_pass(self, engine, address):
        report = await run_reconciliation_pass(engine, address, workers=[], reputers=[])
        assert report.all_converged
        assert report.results == []


class TestPassReport:
    """Tests for the report model."""

    @pytest.mark.asyncio
    async def test_to_dict(self, engine, ledger, address):
        ledger.balance = 0
        report = await run_reconciliation_pass(engine, address, workers=[WorkerConfig(1)], reputers=[])

        d = report.to_dict()
        assert d["address"] == address
        assert d["all_converged"] is False
        assert d["converged"] == 0
        assert d["total"] == 1
        assert d["results"][0]["status"] == "insufficient_funds"

    def test_empty_report(self):
        report = PassReport(address="a")
        assert report.all_converged
        assert report.converged_count == 0
