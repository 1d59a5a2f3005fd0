"""Read-only throughput statistics derived from message history."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .history import MessageHistory

MINUTE = 60.0
RATE_AVERAGE_MINUTES = 5


@dataclass(frozen=True)
class WindowSpec:
    """How a chart window is divided into buckets."""

    name: str
    points: int
    bucket_seconds: float

    @property
    def span(self) -> float:
        return self.points * self.bucket_seconds


WINDOWS: Dict[str, WindowSpec] = {
    "1h": WindowSpec("1h", 12, 5 * MINUTE),
    "24h": WindowSpec("24h", 24, 60 * MINUTE),
    "7d": WindowSpec("7d", 28, 6 * 60 * MINUTE),
}


@dataclass(frozen=True)
class MessageRates:
    produced_per_min: int
    produced_avg_per_min: float
    consumed_per_min: int
    consumed_avg_per_min: float


@dataclass(frozen=True)
class MetricsPoint:
    timestamp: float
    produced_count: int
    consumed_count: int
    queue_depth: Optional[int]  # None when older than the retained samples


def _count_since(times: Iterable[float], since: float) -> int:
    return sum(1 for t in times if t > since)


def rates(history: MessageHistory, now: float) -> MessageRates:
    """Per-minute rates over the last minute and the last five minutes."""
    produced = [m.created_at for m in history.produced]
    consumed = [m.consumed_at for m in history.consumed if m.consumed_at is not None]
    window = RATE_AVERAGE_MINUTES * MINUTE

    return MessageRates(
        produced_per_min=_count_since(produced, now - MINUTE),
        produced_avg_per_min=round(_count_since(produced, now - window) / RATE_AVERAGE_MINUTES, 1),
        consumed_per_min=_count_since(consumed, now - MINUTE),
        consumed_avg_per_min=round(_count_since(consumed, now - window) / RATE_AVERAGE_MINUTES, 1),
    )


def resolve_window(window) -> WindowSpec:
    if isinstance(window, WindowSpec):
        return window
    if window not in WINDOWS:
        raise ValueError(f"Unknown metrics window {window!r}; expected one of {', '.join(WINDOWS)}")
    return WINDOWS[window]


def time_series(history: MessageHistory, window, now: float) -> List[MetricsPoint]:
    """Bucket history into the points of a chart window, oldest first.

    Bucket ``k`` covers ``(end - bucket_seconds, end]`` and is stamped
    with its end time; the last bucket ends at ``now``.
    """
    layout = resolve_window(window)
    produced = [m.created_at for m in history.produced]
    consumed = [m.consumed_at for m in history.consumed if m.consumed_at is not None]

    points = []
    for k in range(layout.points):
        end = now - (layout.points - 1 - k) * layout.bucket_seconds
        start = end - layout.bucket_seconds
        points.append(
            MetricsPoint(
                timestamp=end,
                produced_count=sum(1 for t in produced if start < t <= end),
                consumed_count=sum(1 for t in consumed if start < t <= end),
                queue_depth=history.depth_at(end),
            )
        )
    return points
