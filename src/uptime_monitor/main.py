from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Mapping, Optional, Sequence

import aiohttp
from rich.console import Console
from rich.markup import escape

from . import config
from .checks import ConfigError, Endpoint, checks_path, load_checks
from .collector import ResultCollector
from .probes import Outcome, ProbeExecutor, build_executors
from .scheduler import Dispatcher
from .stats import StatStore
from .ui import Renderer

console = Console()
log = logging.getLogger(__name__)


def setup_logging(path: str = config.LOG_FILE) -> None:
    # The terminal belongs to the table, so diagnostics go to a file.
    logging.basicConfig(
        filename=path,
        level=logging.INFO,
        format=config.LOG_FORMAT,
        datefmt=config.LOG_TIME_FORMAT,
    )


async def monitor(
    endpoints: Sequence[Endpoint],
    executors: Mapping[str, ProbeExecutor],
    renderer: Optional[Renderer] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> StatStore:
    """Run every probe cycle until ``stop_event`` is set.

    Returns the store so callers can inspect what was collected.
    """
    stop_event = stop_event or asyncio.Event()
    queue: asyncio.Queue[Outcome] = asyncio.Queue()
    store = StatStore(endpoints)
    dispatcher = Dispatcher(endpoints, executors, queue)

    renderer = renderer or Renderer(console)
    collector = ResultCollector(store, renderer, queue)

    # Start all background tasks
    tasks = [
        asyncio.create_task(collector.run(), name="collector"),
        asyncio.create_task(collector.render_loop(), name="renderer"),
    ]
    dispatcher.start()
    for ep in dispatcher.skipped:
        renderer.notices.append(f"Unknown check type: {ep.kind} ({ep.name})")
    collector.render_now()

    await stop_event.wait()

    dispatcher.stop()
    for t in tasks:
        t.cancel()
    await asyncio.gather(*tasks, *dispatcher.tasks, return_exceptions=True)
    return store


async def main_async(endpoints: Sequence[Endpoint]) -> None:
    """The main asynchronous entry point of the application."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _signal_handler():
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:  # Windows
            signal.signal(sig, lambda s, f: _signal_handler())

    async with aiohttp.ClientSession(
        headers={"User-Agent": "uptime-monitor/0.1"},
    ) as session:
        await monitor(endpoints, build_executors(session), stop_event=stop_event)


def main():
    setup_logging()
    path = checks_path()
    try:
        endpoints = load_checks(path)
    except ConfigError as exc:
        log.error("Error loading config: %s", exc)
        console.print(
            f"[red]Error loading config:[/red] {escape(str(exc))}", highlight=False
        )
        sys.exit(1)

    try:
        asyncio.run(main_async(endpoints))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":  # pragma: no cover
    main()
