from typing import Callable, Dict, List, Optional, Union

from asimpy import Environment

from .bindings import Binding, ExchangeType
from .config import BrokerConfig
from .consumer import ConsumerLoop, ConsumerState, Subscription
from .exchange import Exchange, PublishResult
from .history import MessageHistory
from .message import Message
from .message_queue import MessageQueue
from .metrics import MessageRates, MetricsPoint, rates, time_series


class Broker:
    """An exchange, its queues and one consumer loop per queue."""

    def __init__(self, env: Environment, config: Optional[BrokerConfig] = None):
        self.env = env
        self.config = (config or BrokerConfig()).validate()
        self.exchange = Exchange(env, self.config.exchange_type)
        self.history = MessageHistory(self.config.history_limit)
        self.consumers: Dict[str, ConsumerLoop] = {}
        self.exchange.on_delivery(self._on_delivery)

    # Administration

    def declare_queue(
        self, queue_id: str, name: Optional[str] = None, active: bool = True
    ) -> MessageQueue:
        """Create a queue together with its consumer loop."""
        queue = self.exchange.declare_queue(queue_id, name)
        if queue_id not in self.consumers:
            consumer = ConsumerLoop(self.env, queue, self.config, active=active)
            consumer.subscribe(self._on_consumed)
            self.consumers[queue_id] = consumer
        return queue

    def delete_queue(self, queue_id: str) -> MessageQueue:
        queue = self.exchange.delete_queue(queue_id)
        self.consumers.pop(queue_id).detach()
        self._sample_depth()
        return queue

    def bind(self, queue_id: str, pattern: str = "") -> Binding:
        return self.exchange.bind(queue_id, pattern)

    def unbind(self, queue_id: str, pattern: Optional[str] = None) -> int:
        return self.exchange.unbind(queue_id, pattern)

    def set_exchange_type(
        self, exchange_type: ExchangeType, patterns: Optional[Dict[str, str]] = None
    ):
        self.exchange.set_type(exchange_type, patterns)
        self.config = self.config.with_changes(exchange_type=exchange_type)

    # Producer side

    def publish(self, routing_key: str, payload: Union[str, bytes]) -> str:
        """Publish and return the new message's id."""
        return self.publish_message(routing_key, payload).message.id

    def publish_message(self, routing_key: str, payload: Union[str, bytes]) -> PublishResult:
        result = self.exchange.publish(routing_key, payload)
        self.history.record_published(result.message)
        return result

    # Consumer side

    def consumer(self, queue_id: str) -> ConsumerLoop:
        self.exchange.get_queue(queue_id)
        return self.consumers[queue_id]

    def subscribe(
        self, queue_id: str, handler: Optional[Callable[[Message], None]] = None
    ) -> Subscription:
        """Stream of messages consumed from a queue."""
        return self.consumer(queue_id).subscribe(handler)

    def _targets(self, queue_id: Optional[str]) -> List[ConsumerLoop]:
        if queue_id is None:
            return list(self.consumers.values())
        return [self.consumer(queue_id)]

    def set_consumer_active(self, active: bool, queue_id: Optional[str] = None):
        for consumer in self._targets(queue_id):
            consumer.set_active(active)

    def set_processing_delay(self, delay_ms: int, queue_id: Optional[str] = None):
        targets = self._targets(queue_id)
        for consumer in targets:
            consumer.set_processing_delay(delay_ms)
        if queue_id is None:
            self.config = self.config.with_changes(processing_delay_ms=delay_ms)

    def drain_all(self, queue_id: Optional[str] = None) -> List[Message]:
        """Consume every queued message right away."""
        drained: List[Message] = []
        for consumer in self._targets(queue_id):
            drained.extend(consumer.drain_all())
        return drained

    # Queries

    def get_queue_depth(self, queue_id: str) -> int:
        return self.exchange.depth(queue_id)

    def total_depth(self) -> int:
        return sum(queue.depth() for queue in self.exchange.queues.values())

    def consumer_state(self, queue_id: str) -> ConsumerState:
        return self.consumer(queue_id).state

    def rates(self) -> MessageRates:
        return rates(self.history, self.env.now)

    def get_metrics_snapshot(self, window="1h") -> List[MetricsPoint]:
        return time_series(self.history, window, self.env.now)

    def clear_history(self, kind: Optional[str] = None):
        self.history.clear(kind)

    def _sample_depth(self):
        self.history.record_depth(self.env.now, self.total_depth())

    def _on_delivery(self, original: Message, copy: Message):
        self._sample_depth()

    def _on_consumed(self, message: Message):
        self.history.record_consumed(message)
        self._sample_depth()

    def get_statistics(self):
        """Print a summary of broker activity."""
        print("\n=== Statistics ===")
        print(f"Exchange type: {self.exchange.type.value}")
        print(f"Messages published: {self.exchange.messages_published}")
        print(f"Messages delivered: {self.exchange.messages_delivered}")
        print(f"Messages unroutable: {self.exchange.messages_unroutable}")
        for queue_id, consumer in self.consumers.items():
            state = consumer.state
            print(
                f"Queue {queue_id}: depth={self.get_queue_depth(queue_id)}, "
                f"processed={state.processed_count}, errors={state.error_count}, "
                f"health={state.health}, delay={state.processing_delay_ms}ms"
            )
