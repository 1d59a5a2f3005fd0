"""FIFO queue holding messages until a consumer takes them."""

from collections import deque
from typing import Callable, Deque, List, Optional

from .message import Message


class MessageQueue:
    """Ordered holding area with depth accounting."""

    def __init__(self, queue_id: str, name: Optional[str] = None):
        self.id = queue_id
        self.name = name or queue_id
        self.consumer_count = 0
        self._messages: Deque[Message] = deque()
        self._listeners: List[Callable[["MessageQueue"], None]] = []

        # Statistics
        self.enqueued_total = 0
        self.dequeued_total = 0

    def enqueue(self, message: Message):
        """Append a message at the back of the queue."""
        self._messages.append(message)
        self.enqueued_total += 1
        for listener in list(self._listeners):
            listener(self)

    def dequeue(self) -> Optional[Message]:
        """Remove and return the earliest message, or None if empty."""
        if not self._messages:
            return None
        self.dequeued_total += 1
        return self._messages.popleft()

    def peek(self) -> Optional[Message]:
        return self._messages[0] if self._messages else None

    def depth(self) -> int:
        return len(self._messages)

    def is_empty(self) -> bool:
        return not self._messages

    def messages(self) -> List[Message]:
        """Snapshot of queued messages in arrival order."""
        return list(self._messages)

    def on_enqueue(self, listener: Callable[["MessageQueue"], None]):
        """Call listener after every enqueue."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[["MessageQueue"], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def __len__(self) -> int:
        return len(self._messages)

    def __str__(self) -> str:
        return f"Queue({self.name}, depth={self.depth()})"
