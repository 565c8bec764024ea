"""Single reconciliation pass over every configured actor.

The scheduler (cron, systemd timer, or the CLI) calls
``run_reconciliation_pass`` on whatever cadence it likes. Distinct
(role, topic) tuples run concurrently; repeated tuples in the config are
collapsed so one pass never races itself.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from ..ledger.models import ReputerConfig, WorkerConfig
from .engine import ReconciliationEngine, ReconcileResult

logger = logging.getLogger(__name__)


@dataclass
class PassReport:
    """Results of one pass, workers first then reputers."""

    address: str
    results: list[ReconcileResult] = field(default_factory=list)

    @property
    def all_converged(self) -> bool:
        return all(r.converged for r in self.results)

    @property
    def converged_count(self) -> int:
        return sum(1 for r in self.results if r.converged)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "all_converged": self.all_converged,
            "converged": self.converged_count,
            "total": len(self.results),
            "results": [r.to_dict() for r in self.results],
        }


def dedupe_workers(workers: list[WorkerConfig]) -> list[WorkerConfig]:
    """Drop repeated worker topics, keeping first occurrence order."""
    seen: set[int] = set()
    unique = []
    for worker in workers:
        if worker.topic_id in seen:
            logger.warning(f"Duplicate worker config for topic {worker.topic_id}, ignoring")
            continue
        seen.add(worker.topic_id)
        unique.append(worker)
    return unique


def dedupe_reputers(reputers: list[ReputerConfig]) -> list[ReputerConfig]:
    """Collapse repeated reputer topics into one config with the largest ``min_stake``."""
    by_topic: dict[int, ReputerConfig] = {}
    for reputer in reputers:
        existing = by_topic.get(reputer.topic_id)
        if existing is None:
            by_topic[reputer.topic_id] = reputer
            continue
        logger.warning(f"Duplicate reputer config for topic {reputer.topic_id}, using largest min_stake")
        if reputer.min_stake > existing.min_stake:
            by_topic[reputer.topic_id] = reputer
    return list(by_topic.values())


async def run_reconciliation_pass(
    engine: ReconciliationEngine,
    address: str,
    workers: list[WorkerConfig],
    reputers: list[ReputerConfig],
) -> PassReport:
    """Reconcile every actor once.

    A failure on one tuple never prevents the others from running; the
    engine reports failures in its results instead of raising.
    """
    workers = dedupe_workers(workers)
    reputers = dedupe_reputers(reputers)
    logger.info(
        f"Starting reconciliation pass for {address}: "
        f"{len(workers)} worker topic(s), {len(reputers)} reputer topic(s)"
    )

    tasks = [engine.reconcile_worker(address, w) for w in workers]
    tasks += [engine.reconcile_reputer(address, r) for r in reputers]
    results = await asyncio.gather(*tasks)

    report = PassReport(address=address, results=list(results))
    logger.info(f"Reconciliation pass finished: {report.converged_count}/{len(report.results)} converged")
    return report
