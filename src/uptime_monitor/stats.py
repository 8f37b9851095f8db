from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Deque, Generic, Iterable, Iterator, List, Optional, TypeVar

from . import config
from .checks import Endpoint
from .probes import Outcome

T = TypeVar("T")


class RollingWindow(Generic[T]):
    """Bounded history, most recent entry first.

    Pushing past ``cap`` drops the oldest entry; entries are never reordered.
    """

    __slots__ = ("_items",)

    def __init__(self, cap: int):
        if cap <= 0:
            raise ValueError("cap must be positive")
        self._items: Deque[T] = deque(maxlen=cap)

    @property
    def cap(self) -> int:
        return self._items.maxlen  # type: ignore[return-value]

    def push(self, item: T) -> None:
        # appendleft on a full deque discards from the right (oldest) end
        self._items.appendleft(item)

    def as_list(self) -> List[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"RollingWindow(cap={self.cap}, items={self.as_list()!r})"


def average_of(window: Iterable[timedelta]) -> timedelta:
    """Arithmetic mean of the durations, zero for an empty window."""
    items = list(window)
    if not items:
        return timedelta(0)
    return sum(items, timedelta(0)) / len(items)


@dataclass
class EndpointStats:
    endpoint: Endpoint
    exec_count: int = 0
    last: Optional[Outcome] = None
    last10: RollingWindow[timedelta] = field(
        default_factory=lambda: RollingWindow(config.SHORT_WINDOW)
    )
    last100: RollingWindow[timedelta] = field(
        default_factory=lambda: RollingWindow(config.LONG_WINDOW)
    )
    last50: RollingWindow[bool] = field(
        default_factory=lambda: RollingWindow(config.HISTORY_WINDOW)
    )


class StatStore:
    """Per-endpoint rolling statistics, indexed by ``Endpoint.index``.

    ``record`` never awaits, so on a single event loop every update is
    applied as one step and readers never see a half-written entry.
    """

    def __init__(self, endpoints: Iterable[Endpoint]):
        endpoints = list(endpoints)
        for position, ep in enumerate(endpoints):
            if ep.index != position:
                raise ValueError(
                    f"endpoint {ep.name!r} has index {ep.index}, expected {position}"
                )
        self._stats: List[EndpointStats] = [EndpointStats(ep) for ep in endpoints]

    def record(self, index: int, outcome: Outcome) -> Outcome:
        """Fold one outcome into the endpoint's windows.

        Returns the outcome stamped with its execution sequence number.
        """
        if outcome.endpoint.index != index:
            raise ValueError(
                f"outcome for {outcome.endpoint.name!r} recorded at index {index}"
            )
        st = self._stats[index]
        st.exec_count += 1
        outcome = outcome.with_sequence(st.exec_count)
        st.last = outcome
        st.last10.push(outcome.duration)
        st.last100.push(outcome.duration)
        st.last50.push(outcome.success)
        return outcome

    def snapshot(self) -> List[EndpointStats]:
        return list(self._stats)

    def __getitem__(self, index: int) -> EndpointStats:
        return self._stats[index]

    def __len__(self) -> int:
        return len(self._stats)

    def __iter__(self) -> Iterator[EndpointStats]:
        return iter(self._stats)
