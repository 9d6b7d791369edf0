"""Minimal constant-VUs driver running scene iterations on asyncio tasks."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass

from scene_loadtest.errors import AuthExhausted
from scene_loadtest.metrics import MetricsRegistry
from scene_loadtest.models.catalog import TestDescriptor
from scene_loadtest.models.settings import Credentials
from scene_loadtest.orchestrator import SceneOrchestrator
from scene_loadtest.probes.base import ProbeContext
from scene_loadtest.probes.registry import ProbeRegistry
from scene_loadtest.run_state import RunState
from scene_loadtest.transport import Transport

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class WorkerStats:
    """Iteration counts of one virtual user."""

    vu_id: int
    iterations: int = 0
    failed_iterations: int = 0
    auth_exhausted: bool = False


@dataclass(frozen=True, kw_only=True)
class LoadSummary:
    """Iteration counts of a whole run."""

    workers: Sequence[WorkerStats]

    @property
    def iterations(self) -> int:
        return sum(w.iterations for w in self.workers)

    @property
    def failed_iterations(self) -> int:
        return sum(w.failed_iterations for w in self.workers)

    @property
    def auth_exhausted(self) -> int:
        return sum(1 for w in self.workers if w.auth_exhausted)

    @property
    def success(self) -> bool:
        return self.failed_iterations == 0 and self.auth_exhausted == 0


@dataclass(frozen=True, kw_only=True)
class LoadDriver:
    """Runs ``vus`` workers, each iterating over one scene.

    Workers stop after ``iterations`` iterations or once ``duration`` seconds
    have elapsed, whichever comes first. A worker whose authentication is
    exhausted stops for the rest of the run.
    """

    registry: ProbeRegistry
    plan: Mapping[str, Sequence[TestDescriptor]]
    scene: str
    base_url: str
    transport: Transport
    metrics: MetricsRegistry
    run_state: RunState
    credentials: Credentials | None = None
    vus: int = 1
    think_time: float = 0.0
    duration: float | None = None
    iterations: int | None = None
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def run(self) -> LoadSummary:
        """Run all workers to completion."""
        log.info(
            "Starting %d VU(s) on scene %s (duration=%s, iterations=%s)",
            self.vus,
            self.scene,
            f"{self.duration:g}s" if self.duration is not None else "-",
            self.iterations if self.iterations is not None else "-",
        )
        self.metrics.gauge("vus").set(self.vus)
        self.metrics.gauge("vus_max").set(self.vus)

        deadline = self.clock() + self.duration if self.duration is not None else None
        workers = await asyncio.gather(
            *(self._worker(vu_id, deadline) for vu_id in range(1, self.vus + 1))
        )
        self.metrics.gauge("vus").set(0)

        summary = LoadSummary(workers=workers)
        log.info(
            "Completed %d iteration(s), %d failed, %d VU(s) with exhausted auth",
            summary.iterations,
            summary.failed_iterations,
            summary.auth_exhausted,
        )
        return summary

    def _limit(self) -> int | None:
        if self.iterations is None and self.duration is None:
            return 1
        return self.iterations

    async def _worker(self, vu_id: int, deadline: float | None) -> WorkerStats:
        orchestrator = SceneOrchestrator(
            registry=self.registry,
            plan=self.plan,
            base_url=self.base_url,
            context=ProbeContext(
                transport=self.transport,
                metrics=self.metrics,
                credentials=self.credentials,
            ),
            run_state=self.run_state,
            think_time=self.think_time,
            vu_id=vu_id,
            sleep=self.sleep,
        )
        limit = self._limit()
        iterations = failed = 0

        while limit is None or iterations < limit:
            if deadline is not None and self.clock() >= deadline:
                break
            try:
                result = await orchestrator.run_scene(self.scene, iterations)
            except AuthExhausted as e:
                log.error("VU %d stopped: %s", vu_id, e)
                return WorkerStats(
                    vu_id=vu_id,
                    iterations=iterations + 1,
                    failed_iterations=failed + 1,
                    auth_exhausted=True,
                )
            iterations += 1
            if not result.success:
                failed += 1

        return WorkerStats(vu_id=vu_id, iterations=iterations, failed_iterations=failed)
