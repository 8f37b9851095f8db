from __future__ import annotations

import asyncio
import logging
from typing import List, Mapping, Sequence

from .checks import Endpoint
from .probes import Outcome, ProbeExecutor

log = logging.getLogger(__name__)


async def run_cycle(
    endpoint: Endpoint,
    executor: ProbeExecutor,
    queue: asyncio.Queue[Outcome],
) -> None:
    """Probe one endpoint forever, waiting its interval after each result."""
    delay = endpoint.interval.total_seconds()
    while True:
        try:
            outcome = await executor.probe(endpoint)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("Unexpected error probing %s", endpoint.name)
        else:
            await queue.put(outcome)
        await asyncio.sleep(delay)


class Dispatcher:
    """Starts one independent probe cycle per endpoint."""

    def __init__(
        self,
        endpoints: Sequence[Endpoint],
        executors: Mapping[str, ProbeExecutor],
        queue: asyncio.Queue[Outcome],
    ) -> None:
        self._endpoints = list(endpoints)
        self._executors = executors
        self._queue = queue
        self.skipped: List[Endpoint] = []
        self.tasks: List[asyncio.Task] = []

    def start(self) -> List[asyncio.Task]:
        for ep in self._endpoints:
            kind = ep.probe_kind
            executor = self._executors.get(kind.value) if kind else None
            if executor is None:
                log.warning(
                    "Unknown check type %r for %s, not probing it", ep.kind, ep.name
                )
                self.skipped.append(ep)
                continue
            self.tasks.append(
                asyncio.create_task(
                    run_cycle(ep, executor, self._queue),
                    name=f"probe-{ep.index}-{ep.name}",
                )
            )
        log.info(
            "Dispatching %d check(s), %d skipped", len(self.tasks), len(self.skipped)
        )
        return self.tasks

    def stop(self) -> None:
        for task in self.tasks:
            task.cancel()
