import io
from datetime import datetime, timedelta

import pytest
from rich.console import Console

from uptime_monitor.checks import Endpoint
from uptime_monitor.probes import Outcome
from uptime_monitor.stats import StatStore
from uptime_monitor.ui import Renderer, build_table, format_duration, format_history


def make_console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def test_format_duration():
    assert format_duration(timedelta(milliseconds=950)) == " 950ms"
    assert format_duration(timedelta(seconds=1.5)) == " 1.50s"
    assert format_duration(timedelta(0)) == "   0ms"
    assert format_duration(timedelta(microseconds=999_999)) == " 999ms"
    assert format_duration(timedelta(seconds=1)) == " 1.00s"
    assert format_duration(timedelta(seconds=12.346)) == "12.35s"


def test_format_history():
    h = format_history([False, True, True, False])
    assert h.startswith("F..F")
    assert len(h) == 50
    assert format_history([]) == " " * 50


def test_render_rows():
    web = Endpoint(0, "web", "http", "http://x", timedelta(seconds=1))
    dns = Endpoint(1, "dns", "icmp", "1.1.1.1", timedelta(seconds=1))
    idle = Endpoint(2, "idle", "icmp", "9.9.9.9", timedelta(seconds=1))
    store = StatStore([web, dns, idle])
    for ok in (True, True, False):
        store.record(0, Outcome(web, ok, datetime.now(), timedelta(milliseconds=120)))
    store.record(1, Outcome(dns, True, datetime.now(), timedelta(seconds=1.5)))

    console = make_console()
    Renderer(console, notices=["Unknown check type: ftp (files)"]).render(
        store.snapshot()
    )
    out = console.file.getvalue()

    assert "TARGET" in out and "HISTORY" in out and "LAST 100" in out
    lines = {line.split()[0]: line for line in out.splitlines() if line.split()}
    assert "FAIL" in lines["web"]
    assert " 120ms" in lines["web"]
    assert "3x" in lines["web"]
    assert "F.." in lines["web"]
    assert "OK" in lines["dns"]
    assert "1.50s" in lines["dns"]
    assert "0x" in lines["idle"]
    assert "Unknown check type: ftp (files)" in out


def test_table_without_notices_has_no_caption():
    ep = Endpoint(0, "web", "http", "http://x", timedelta(seconds=1))
    table = build_table(StatStore([ep]).snapshot())
    assert table.caption is None
    assert table.row_count == 1


class BrokenStream(io.StringIO):
    def write(self, s):
        raise OSError("terminal went away")


def test_render_errors_propagate():
    ep = Endpoint(0, "web", "http", "http://x", timedelta(seconds=1))
    renderer = Renderer(Console(file=BrokenStream(), width=200))
    with pytest.raises(OSError):
        renderer.render(StatStore([ep]).snapshot())
