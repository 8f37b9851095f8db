from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import math
import platform
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Protocol

import aiohttp

from . import config
from .checks import Endpoint, ProbeKind

log = logging.getLogger(__name__)

# Linux/BSD/macOS summary: "rtt min/avg/max/mdev = 8.1/8.3/8.5/0.2 ms"
PING_SUMMARY_RE = re.compile(
    r"(?:rtt|round-trip)[^=]*=\s*[0-9.]+/([0-9]*\.?[0-9]+)/"
)
# Per-reply line: "time=12.3 ms", Windows "time=12ms" / "time<1ms"
PING_REPLY_RE = re.compile(r"time[=<]\s*([0-9]*\.?[0-9]+)\s*ms")
# Windows summary: "Minimum = 0ms, Maximum = 0ms, Average = 0ms"
PING_WINDOWS_AVG_RE = re.compile(r"Average\s*=\s*([0-9]+)\s*ms")


@dataclass(frozen=True)
class Outcome:
    endpoint: Endpoint
    success: bool
    started_at: datetime
    duration: timedelta
    sequence: int = 0
    error: Optional[str] = None

    def with_sequence(self, sequence: int) -> Outcome:
        return dataclasses.replace(self, sequence=sequence)


class ProbeExecutor(Protocol):
    async def probe(self, endpoint: Endpoint) -> Outcome: ...


def _elapsed(t0: float) -> timedelta:
    return timedelta(seconds=time.perf_counter() - t0)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def parse_ping_rtt(output: str) -> Optional[timedelta]:
    """Extract the round-trip time from ping output, None if not found."""
    for pattern in (PING_SUMMARY_RE, PING_REPLY_RE, PING_WINDOWS_AVG_RE):
        match = pattern.search(output)
        if match:
            return timedelta(milliseconds=float(match.group(1)))
    return None


def ping_command(
    dest: str, timeout: float, system: Optional[str] = None
) -> List[str]:
    system = system or platform.system()
    if system == "Windows":
        # -n count, -w timeout in milliseconds
        return ["ping", "-n", "1", "-w", str(int(timeout * 1000)), dest]
    seconds = str(max(1, math.ceil(timeout)))
    if system == "Darwin":
        # -t overall timeout in seconds
        return ["ping", "-n", "-c", "1", "-t", seconds, dest]
    # -W reply timeout in seconds; -n skips reverse lookups
    return ["ping", "-n", "-c", "1", "-W", seconds, dest]


class IcmpProbe:
    """One echo request through the system ``ping`` command."""

    def __init__(self, timeout: float = config.PING_TIMEOUT_SECONDS):
        self.timeout = timeout

    async def probe(self, endpoint: Endpoint) -> Outcome:
        started_at = datetime.now()
        t0 = time.perf_counter()
        try:
            return await self._ping(endpoint, started_at, t0)
        except Exception as exc:
            log.warning(
                "icmp %s (%s) raised", endpoint.name, endpoint.dest, exc_info=True
            )
            error = f"{type(exc).__name__}: {_describe(exc)}"
            return Outcome(endpoint, False, started_at, _elapsed(t0), error=error)

    async def _ping(
        self, endpoint: Endpoint, started_at: datetime, t0: float
    ) -> Outcome:
        def failed(error: str) -> Outcome:
            log.debug("icmp %s (%s) failed: %s", endpoint.name, endpoint.dest, error)
            return Outcome(endpoint, False, started_at, _elapsed(t0), error=error)

        try:
            proc = await asyncio.create_subprocess_exec(
                *ping_command(endpoint.dest, self.timeout),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            return failed(f"cannot run ping: {exc}")

        try:
            out_bytes, _ = await asyncio.wait_for(
                proc.communicate(),
                timeout=self.timeout + config.PING_KILL_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            return failed("timeout")

        stdout = out_bytes.decode(errors="replace")
        if proc.returncode != 0:
            return failed("timeout" if "100% packet loss" in stdout else "unreachable")

        rtt = parse_ping_rtt(stdout)
        if rtt is None:
            # a reply without a readable RTT counts as a failed check
            return failed("unparsable ping output")
        return Outcome(endpoint, True, started_at, rtt)


class HttpProbe:
    """One GET request; only status 200 counts as up."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
    ):
        self._session = session
        self.timeout = timeout

    async def probe(self, endpoint: Endpoint) -> Outcome:
        started_at = datetime.now()
        t0 = time.perf_counter()
        try:
            async with self._session.get(
                endpoint.dest,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                await resp.read()
                status = resp.status
        except asyncio.TimeoutError:
            error = "timeout"
        except aiohttp.ClientError as exc:
            error = _describe(exc)
        except Exception as exc:
            log.warning(
                "http %s (%s) raised", endpoint.name, endpoint.dest, exc_info=True
            )
            error = f"{type(exc).__name__}: {_describe(exc)}"
        else:
            duration = _elapsed(t0)
            if status == 200:
                return Outcome(endpoint, True, started_at, duration)
            log.debug("http %s returned %d", endpoint.name, status)
            return Outcome(endpoint, False, started_at, duration, error=f"HTTP {status}")

        log.debug("http %s (%s) failed: %s", endpoint.name, endpoint.dest, error)
        return Outcome(endpoint, False, started_at, _elapsed(t0), error=error)


def build_executors(session: aiohttp.ClientSession) -> Dict[str, ProbeExecutor]:
    return {
        ProbeKind.HTTP.value: HttpProbe(session),
        ProbeKind.ICMP.value: IcmpProbe(),
    }
