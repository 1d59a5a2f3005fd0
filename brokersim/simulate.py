from asimpy import Environment, Process

from .bindings import ExchangeType
from .broker import Broker
from .config import BrokerConfig
from .publisher import Publisher


class _Operator(Process):
    """Pauses the billing consumer for a while, then catches up in one batch."""

    def init(self, broker: Broker, pause_at: float, resume_at: float):
        self.broker = broker
        self.pause_at = pause_at
        self.resume_at = resume_at

    async def run(self):
        await self.timeout(self.pause_at)
        self.broker.set_consumer_active(False, "billing")

        await self.timeout(self.resume_at - self.pause_at)
        print(
            f"[{self.now:.1f}] Operator: billing backlog is "
            f"{self.broker.get_queue_depth('billing')}, draining"
        )
        self.broker.drain_all("billing")
        self.broker.set_consumer_active(True, "billing")


def run_simulation(until: float = 60, seed: int = 42) -> Broker:
    """Run a simulation of a topic exchange with three consumers."""
    env = Environment()
    config = BrokerConfig(exchange_type=ExchangeType.TOPIC, seed=seed)
    broker = Broker(env, config)

    # Queues and their bindings
    broker.declare_queue("orders", "Order processing")
    broker.bind("orders", "orders.#")
    broker.declare_queue("billing", "Billing")
    broker.bind("billing", "orders.*.paid")
    broker.declare_queue("audit", "Audit log")
    broker.bind("audit", "#")

    # Publishers
    Publisher(env, broker, "Checkout", "orders.eu.paid", interval=3.0)
    Publisher(env, broker, "Catalog", "orders.created", interval=4.0)
    Publisher(env, broker, "Accounts", "users.signup", interval=5.0)

    _Operator(env, broker, pause_at=until / 4, resume_at=until / 2)

    env.run(until=until)

    broker.get_statistics()
    metrics = broker.rates()
    print(f"Produced/min: {metrics.produced_per_min} (avg {metrics.produced_avg_per_min})")
    print(f"Consumed/min: {metrics.consumed_per_min} (avg {metrics.consumed_avg_per_min})")
    return broker


if __name__ == "__main__":
    run_simulation()
