"""Smoke test for the demo simulation."""
from brokersim.publisher import Publisher
from brokersim.simulate import run_simulation


def test_run_simulation(capsys) -> None:
    broker = run_simulation(until=30, seed=3)

    exchange = broker.exchange
    assert exchange.messages_published > 0
    assert exchange.messages_unroutable == 0
    # Audit is bound to '#' so it sees every message
    assert broker.consumer_state("audit").processed_count > 0
    assert broker.consumer_state("billing").processed_count > 0
    assert "=== Statistics ===" in capsys.readouterr().out


def test_publisher_stops_at_limit(env, broker) -> None:
    broker.declare_queue("Q1", active=False)
    broker.bind("Q1", "a")
    publisher = Publisher(env, broker, "Producer", "a", interval=1.0, limit=3)
    env.run(until=10)
    assert publisher.message_counter == 3
    assert broker.get_queue_depth("Q1") == 3


def test_publisher_counts_unroutable(env, broker) -> None:
    publisher = Publisher(env, broker, "Producer", "nowhere", interval=1.0, limit=2)
    env.run(until=5)
    assert publisher.unroutable == 2
