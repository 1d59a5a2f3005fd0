from typing import TYPE_CHECKING, Optional

from asimpy import Process

if TYPE_CHECKING:
    from .broker import Broker


class Publisher(Process):
    """Publishes messages with one routing key at a fixed interval."""

    def init(
        self,
        broker: "Broker",
        name: str,
        routing_key: str,
        interval: float,
        limit: Optional[int] = None,
    ):
        self.broker = broker
        self.name = name
        self.routing_key = routing_key
        self.interval = interval
        self.limit = limit
        self.message_counter = 0
        self.unroutable = 0

    async def run(self):
        """Generate and publish messages."""
        while self.limit is None or self.message_counter < self.limit:
            self.message_counter += 1
            payload = f"Message {self.message_counter} from {self.name}"

            print(f"[{self.now:.1f}] {self.name} publishing: {payload}")
            result = self.broker.publish_message(self.routing_key, payload)
            if not result.routed:
                self.unroutable += 1

            # Wait before next message
            await self.timeout(self.interval)
