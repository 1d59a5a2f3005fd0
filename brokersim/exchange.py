from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from asimpy import Environment

from .bindings import Binding, BindingTable, ExchangeType
from .errors import InvalidRoutingKey, QueueInUse, QueueNotFound
from .message import Message
from .message_queue import MessageQueue


@dataclass
class PublishResult:
    """Outcome of a publish: the message and how many queues it reached."""

    message: Message
    delivered_count: int
    queue_ids: List[str]

    @property
    def routed(self) -> bool:
        return self.delivered_count > 0


class Exchange:
    """Routes published messages to bound queues."""

    def __init__(self, env: Environment, exchange_type: ExchangeType = ExchangeType.DIRECT):
        self.env = env
        self.type = exchange_type
        self.bindings = BindingTable()
        self.queues: Dict[str, MessageQueue] = {}
        self.next_message_id = 1

        # Called with (original, copy) for every enqueued copy
        self._delivery_listeners: List[Callable[[Message, Message], None]] = []

        # Statistics for observability
        self.messages_published = 0
        self.messages_delivered = 0
        self.messages_unroutable = 0

    # Queue administration

    def declare_queue(self, queue_id: str, name: Optional[str] = None) -> MessageQueue:
        """Create a queue, or return the existing one with that id."""
        if queue_id not in self.queues:
            self.queues[queue_id] = MessageQueue(queue_id, name)
        return self.queues[queue_id]

    def get_queue(self, queue_id: str) -> MessageQueue:
        if queue_id not in self.queues:
            raise QueueNotFound(queue_id)
        return self.queues[queue_id]

    def delete_queue(self, queue_id: str) -> MessageQueue:
        """Delete a queue that no binding references."""
        queue = self.get_queue(queue_id)
        references = self.bindings.references(queue_id)
        if references:
            raise QueueInUse(queue_id, len(references))
        del self.queues[queue_id]
        print(f"[{self.env.now:.1f}] Exchange: Deleted queue '{queue_id}'")
        return queue

    def bind(self, queue_id: str, pattern: str = "") -> Binding:
        """Bind a queue under the current exchange type."""
        self.get_queue(queue_id)
        return self.bindings.add(Binding(self.type, pattern, queue_id))

    def unbind(self, queue_id: str, pattern: Optional[str] = None) -> int:
        """Remove one binding, or every binding of the queue if no pattern is given."""
        self.get_queue(queue_id)
        if pattern is None:
            return self.bindings.remove_queue(queue_id)
        return int(self.bindings.remove(Binding(self.type, pattern, queue_id)))

    def set_type(
        self, exchange_type: ExchangeType, patterns: Optional[Dict[str, str]] = None
    ):
        """Change routing behaviour; queued messages are untouched.

        ``patterns`` gives new binding patterns by queue id and is
        required for every queue when leaving a fanout exchange.
        """
        if exchange_type is self.type and not patterns:
            return
        self.bindings.retype(exchange_type, patterns)
        print(
            f"[{self.env.now:.1f}] Exchange: Type changed "
            f"{self.type.value} -> {exchange_type.value}"
        )
        self.type = exchange_type

    def on_delivery(self, listener: Callable[[Message, Message], None]):
        self._delivery_listeners.append(listener)

    # Routing

    def publish(self, routing_key: str, payload: Union[str, bytes]) -> PublishResult:
        """Publish a message to every queue whose binding matches."""
        if self.type is not ExchangeType.FANOUT and not routing_key:
            raise InvalidRoutingKey(routing_key, self.type.value)

        self.messages_published += 1
        message = Message(
            id=f"msg-{self.next_message_id}",
            payload=payload,
            routing_key=routing_key,
            created_at=self.env.now,
        )
        self.next_message_id += 1

        queue_ids = self.bindings.matching_queues(self.type, routing_key)

        if not queue_ids:
            self.messages_unroutable += 1
            print(
                f"[{self.env.now:.1f}] Exchange: No binding for '{routing_key}', "
                f"dropped {message.id}"
            )
            return PublishResult(message, 0, [])

        # Deliver a copy to each matching queue
        for queue_id in queue_ids:
            copy = message.copy_for(queue_id)
            self.queues[queue_id].enqueue(copy)
            self.messages_delivered += 1
            for listener in self._delivery_listeners:
                listener(message, copy)

        message.mark_delivered()
        print(
            f"[{self.env.now:.1f}] Exchange: Routed {message.id} "
            f"('{routing_key}') to {', '.join(queue_ids)}"
        )
        return PublishResult(message, len(queue_ids), queue_ids)

    def depth(self, queue_id: str) -> int:
        return self.get_queue(queue_id).depth()
