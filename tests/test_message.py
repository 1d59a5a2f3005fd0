"""Tests for message lifecycle and the FIFO queue."""
import pytest

from brokersim.errors import InvalidStatusTransition
from brokersim.message import Message, MessageStatus
from brokersim.message_queue import MessageQueue


def _message(n: int) -> Message:
    return Message(id=f"m{n}", payload=f"payload {n}", routing_key="a", created_at=float(n))


class TestMessageStatus:
    def test_new_message_is_pending(self) -> None:
        assert _message(1).status is MessageStatus.PENDING

    def test_moves_forward(self) -> None:
        message = _message(1)
        message.mark_delivered()
        message.mark_consumed(4.5)
        assert message.is_consumed
        assert message.consumed_at == 4.5

    def test_consumed_never_reverts(self) -> None:
        message = _message(1)
        message.mark_consumed(1.0)
        with pytest.raises(InvalidStatusTransition):
            message.mark_delivered()
        assert message.status is MessageStatus.CONSUMED

    def test_copy_is_independent(self) -> None:
        message = _message(1)
        copy = message.copy_for("q1")
        copy.mark_consumed(2.0)
        assert copy.id == message.id
        assert copy.queue_id == "q1"
        assert message.status is MessageStatus.PENDING


class TestMessageQueue:
    def test_dequeue_preserves_arrival_order(self) -> None:
        queue = MessageQueue("q1")
        for n in range(10):
            queue.enqueue(_message(n))
        taken = [queue.dequeue().id for _ in range(10)]
        assert taken == [f"m{n}" for n in range(10)]

    def test_dequeue_empty_returns_none(self) -> None:
        queue = MessageQueue("q1")
        assert queue.dequeue() is None
        assert queue.depth() == 0

    def test_depth_tracks_contents(self) -> None:
        queue = MessageQueue("q1", "Orders")
        queue.enqueue(_message(1))
        queue.enqueue(_message(2))
        assert queue.depth() == 2
        assert queue.peek().id == "m1"
        queue.dequeue()
        assert queue.depth() == 1
        assert queue.name == "Orders"

    def test_depth_is_idempotent(self) -> None:
        queue = MessageQueue("q1")
        queue.enqueue(_message(1))
        assert queue.depth() == queue.depth() == 1

    def test_listeners_see_each_enqueue(self) -> None:
        queue = MessageQueue("q1")
        seen = []
        queue.on_enqueue(lambda q: seen.append(q.depth()))
        queue.enqueue(_message(1))
        queue.enqueue(_message(2))
        assert seen == [1, 2]
