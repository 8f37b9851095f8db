from __future__ import annotations

from datetime import timedelta
from typing import Iterable, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import config
from .stats import EndpointStats, average_of


def format_duration(d: timedelta) -> str:
    if d < timedelta(seconds=1):
        return f"{d // timedelta(milliseconds=1):4d}ms"
    return f"{d.total_seconds():5.2f}s"


def format_history(flags: Iterable[bool]) -> str:
    glyphs = "".join(config.GLYPH_OK if ok else config.GLYPH_FAIL for ok in flags)
    return glyphs.ljust(config.HISTORY_WINDOW)


def build_table(
    stats: Sequence[EndpointStats], notices: Sequence[str] = ()
) -> Table:
    table = Table(
        title="Uptime Monitor",
        box=box.MINIMAL_DOUBLE_HEAD,
        caption_style="bold yellow",
    )
    table.add_column("TARGET", style="bold", min_width=14)
    table.add_column("TYPE", min_width=4)
    table.add_column("RES", min_width=4)
    table.add_column("LAST", justify="right")
    table.add_column("LAST 10", justify="right")
    table.add_column("LAST 100", justify="right")
    table.add_column("COUNT", justify="right")
    table.add_column("HISTORY", no_wrap=True, min_width=config.HISTORY_WINDOW)

    for st in stats:
        ep = st.endpoint
        last = st.last
        if last is None:
            table.add_row(
                escape(ep.name),
                escape(ep.kind),
                "-",
                "-",
                "-",
                "-",
                "0x",
                format_history(()),
                style=config.STYLE_PENDING,
            )
            continue
        table.add_row(
            escape(ep.name),
            escape(ep.kind),
            "OK" if last.success else "FAIL",
            format_duration(last.duration),
            format_duration(average_of(st.last10)),
            format_duration(average_of(st.last100)),
            f"{st.exec_count}x",
            format_history(st.last50),
            style=config.STYLE_OK if last.success else config.STYLE_FAIL,
        )

    if notices:
        table.caption = "\n".join(escape(n) for n in notices)
    return table


class Renderer:
    """Redraws the whole table on every call. Output errors propagate."""

    def __init__(
        self, console: Optional[Console] = None, notices: Sequence[str] = ()
    ):
        self.console = console or Console()
        self.notices = list(notices)

    def render(self, stats: Sequence[EndpointStats]) -> None:
        table = build_table(stats, self.notices)
        self.console.clear()
        self.console.print(table)
