"""Bounded record of what the broker has produced and consumed."""

from collections import deque
from typing import Deque, List, Optional, Tuple, Union

from .message import Message

MAX_RECENT_PAYLOADS = 10


class MessageHistory:
    """Produced messages, consumed copies and queue depth samples.

    Each kind keeps at most ``limit`` entries, newest last.
    """

    def __init__(self, limit: int = 100):
        self.limit = limit
        self.produced: Deque[Message] = deque(maxlen=limit)
        self.consumed: Deque[Message] = deque(maxlen=limit)
        self.depth_samples: Deque[Tuple[float, int]] = deque(maxlen=limit)
        # Newest sample that fell off the front of depth_samples
        self._depth_baseline: Optional[Tuple[float, int]] = None
        self.recent_payloads: List[Union[str, bytes]] = []

    def record_published(self, message: Message):
        self.produced.append(message)
        if message.payload in self.recent_payloads:
            return
        self.recent_payloads.insert(0, message.payload)
        del self.recent_payloads[MAX_RECENT_PAYLOADS:]

    def record_consumed(self, message: Message):
        self.consumed.append(message)

    def record_depth(self, time: float, depth: int):
        """Sample total depth; samples taken at the same instant collapse."""
        if self.depth_samples and self.depth_samples[-1][0] == time:
            self.depth_samples[-1] = (time, depth)
            return
        if len(self.depth_samples) == self.limit:
            self._depth_baseline = self.depth_samples[0]
        self.depth_samples.append((time, depth))

    def depth_at(self, time: float) -> Optional[int]:
        """Total queue depth as last sampled at or before ``time``.

        Returns None for times older than the samples still held.
        """
        if self._depth_baseline is None:
            depth = 0
        elif time < self._depth_baseline[0]:
            return None
        else:
            depth = self._depth_baseline[1]
        for sample_time, sample_depth in self.depth_samples:
            if sample_time > time:
                break
            depth = sample_depth
        return depth

    def clear(self, kind: Optional[str] = None):
        """Forget produced history, consumed history, or both."""
        if kind not in (None, "produced", "consumed"):
            raise ValueError(f"Unknown history kind {kind!r}")
        if kind in (None, "produced"):
            self.produced.clear()
            self.recent_payloads.clear()
        if kind in (None, "consumed"):
            self.consumed.clear()
        if kind is None:
            self.depth_samples.clear()
            self._depth_baseline = None
