from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from .errors import InvalidStatusTransition


class MessageStatus(Enum):
    """Lifecycle of a message; values are ordered."""

    PENDING = "pending"
    DELIVERED = "delivered"
    CONSUMED = "consumed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [MessageStatus.PENDING, MessageStatus.DELIVERED, MessageStatus.CONSUMED]


@dataclass
class Message:
    """A message sent through the exchange."""

    id: str
    payload: Union[str, bytes]
    routing_key: str
    created_at: float
    status: MessageStatus = MessageStatus.PENDING
    queue_id: Optional[str] = None  # Set on per-queue copies
    consumed_at: Optional[float] = None

    def advance(self, status: MessageStatus):
        """Move forward in the lifecycle; moving backwards is an error."""
        if status.rank < self.status.rank:
            raise InvalidStatusTransition(self.id, self.status.value, status.value)
        self.status = status

    def mark_delivered(self):
        self.advance(MessageStatus.DELIVERED)

    def mark_consumed(self, now: float):
        self.advance(MessageStatus.CONSUMED)
        self.consumed_at = now

    def copy_for(self, queue_id: str) -> "Message":
        """Copy of this message as it sits in one queue."""
        return replace(
            self, status=MessageStatus.DELIVERED, queue_id=queue_id, consumed_at=None
        )

    @property
    def is_consumed(self) -> bool:
        return self.status is MessageStatus.CONSUMED

    def __str__(self) -> str:
        return f"Message({self.id}, {self.routing_key!r}, {self.status.value})"
