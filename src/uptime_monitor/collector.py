from __future__ import annotations

import asyncio
import logging

from .probes import Outcome
from .stats import StatStore
from .ui import Renderer

log = logging.getLogger(__name__)


class ResultCollector:
    """Single consumer of probe outcomes.

    Every outcome is folded into the store as soon as it is taken off the
    queue. Rendering happens in a separate task: a burst of outcomes that
    arrives while a render pass is running collapses into one follow-up
    pass over the latest snapshot, and two passes never overlap.

    A render pass that raises is logged and counted; the next outcome
    triggers a fresh attempt.
    """

    def __init__(
        self,
        store: StatStore,
        renderer: Renderer,
        queue: asyncio.Queue[Outcome],
    ) -> None:
        self._store = store
        self._renderer = renderer
        self._queue = queue
        self._render_pending = asyncio.Event()
        self.render_count = 0
        self.render_failures = 0

    def collect(self, outcome: Outcome) -> Outcome:
        recorded = self._store.record(outcome.endpoint.index, outcome)
        self._render_pending.set()
        return recorded

    async def run(self) -> None:
        while True:
            outcome = await self._queue.get()
            try:
                self.collect(outcome)
            finally:
                self._queue.task_done()

    def render_now(self) -> bool:
        try:
            self._renderer.render(self._store.snapshot())
        except Exception:
            self.render_failures += 1
            log.exception("Render pass failed")
            return False
        self.render_count += 1
        return True

    async def render_loop(self) -> None:
        while True:
            await self._render_pending.wait()
            self._render_pending.clear()
            self.render_now()
