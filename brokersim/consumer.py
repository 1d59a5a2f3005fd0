"""Timer-driven consumer that drains one queue."""

import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple

from asimpy import Environment, Process

from .config import (
    DELAY_STEP_MS,
    MAX_PROCESSING_DELAY_MS,
    MIN_PROCESSING_DELAY_MS,
    BrokerConfig,
    check_processing_delay,
)
from .message import Message
from .message_queue import MessageQueue

HIGH_WATER_MARK = 5
HEALTH_FLOOR = 70
ERROR_HEALTH_THRESHOLD = 80
MAX_THROUGHPUT_HISTORY = 20

CPU_IDLE, CPU_MAX = 10, 95
MEMORY_IDLE, MEMORY_MAX = 15, 90
IDLE_DECAY_INTERVAL = 2.0


class ConsumerPhase(Enum):
    IDLE = "idle"
    WAITING = "waiting"
    PROCESSING = "processing"
    ERRORED = "errored"


@dataclass
class ConsumerState:
    """Counters and settings exposed to dashboards."""

    is_active: bool = True
    processing_delay_ms: int = 2000
    health: int = 100
    processed_count: int = 0
    error_count: int = 0
    avg_processing_ms: float = 0.0  # Mean processing_delay_ms in effect per consumed message
    cpu: int = CPU_IDLE
    memory: int = MEMORY_IDLE
    throughput_history: List[float] = field(default_factory=list)


@dataclass
class ConsumerError:
    """A simulated, non-fatal processing error."""

    time: float
    queue_id: str
    health: int
    message_id: Optional[str] = None

    def __str__(self) -> str:
        return f"ConsumerError({self.queue_id}, health={self.health})"


class Subscription:
    """Stream of messages consumed from one queue."""

    def __init__(self, queue_id: str, handler: Optional[Callable[[Message], None]] = None):
        self.queue_id = queue_id
        self.handler = handler
        self.received: Deque[Message] = deque()
        self.active = True

    def deliver(self, message: Message):
        if not self.active:
            return
        self.received.append(message)
        if self.handler is not None:
            self.handler(message)

    def pop_all(self) -> List[Message]:
        messages = list(self.received)
        self.received.clear()
        return messages

    def cancel(self):
        self.active = False

    def __iter__(self):
        while self.received:
            yield self.received.popleft()

    def __len__(self) -> int:
        return len(self.received)


class ConsumerLoop:
    """Drains a queue one message at a time while active.

    A worker process is armed only while the loop is active and the
    queue has messages. Every arm bumps a generation number; a worker
    that wakes up holding an older generation has been cancelled and
    leaves the queue alone.
    """

    def __init__(
        self,
        env: Environment,
        queue: MessageQueue,
        config: Optional[BrokerConfig] = None,
        active: bool = True,
        rng: Optional[random.Random] = None,
    ):
        self.env = env
        self.queue = queue
        self.config = config or BrokerConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.state = ConsumerState(
            is_active=active, processing_delay_ms=self.config.processing_delay_ms
        )
        self.phase = ConsumerPhase.IDLE
        self.errors: List[ConsumerError] = []
        self.idle_since = env.now

        self._generation = 0
        self._worker: Optional[_Worker] = None
        self._subscriptions: List[Subscription] = []
        self._error_listeners: List[Callable[[ConsumerError], None]] = []

        queue.consumer_count += 1
        queue.on_enqueue(self._on_enqueue)
        if active and not queue.is_empty():
            self._arm()

    # Control plane

    def set_active(self, active: bool):
        """Start or stop consuming; stopping cancels any armed timer."""
        if active == self.state.is_active:
            return
        self.state.is_active = active
        if active:
            print(f"[{self.env.now:.1f}] Consumer {self.queue.id}: Activated")
            if not self.queue.is_empty():
                self._arm()
        else:
            self._cancel()
            print(
                f"[{self.env.now:.1f}] Consumer {self.queue.id}: Deactivated "
                f"(backlog {self.queue.depth()})"
            )

    def set_processing_delay(self, delay_ms: int):
        """Change the wait between messages; an armed wait keeps its old delay."""
        self.state.processing_delay_ms = check_processing_delay(delay_ms)

    def speed_up(self) -> int:
        delay = self.state.processing_delay_ms
        if delay > MIN_PROCESSING_DELAY_MS:
            self.state.processing_delay_ms = max(MIN_PROCESSING_DELAY_MS, delay - DELAY_STEP_MS)
        return self.state.processing_delay_ms

    def slow_down(self) -> int:
        delay = self.state.processing_delay_ms
        if delay < MAX_PROCESSING_DELAY_MS:
            self.state.processing_delay_ms = min(MAX_PROCESSING_DELAY_MS, delay + DELAY_STEP_MS)
        return self.state.processing_delay_ms

    def drain_all(self) -> List[Message]:
        """Consume the whole backlog immediately, in arrival order."""
        drained = []
        message = self.queue.dequeue()
        while message is not None:
            self._consume(message)
            drained.append(message)
            message = self.queue.dequeue()

        self._cancel()
        print(
            f"[{self.env.now:.1f}] Consumer {self.queue.id}: "
            f"Batch processed {len(drained)} messages"
        )
        return drained

    def subscribe(self, handler: Optional[Callable[[Message], None]] = None) -> Subscription:
        subscription = Subscription(self.queue.id, handler)
        self._subscriptions.append(subscription)
        return subscription

    def on_error(self, listener: Callable[[ConsumerError], None]):
        self._error_listeners.append(listener)

    def detach(self):
        """Stop listening to the queue."""
        self._cancel()
        self.queue.remove_listener(self._on_enqueue)
        self.queue.consumer_count = max(0, self.queue.consumer_count - 1)

    # Queries

    def resource_usage(self) -> Tuple[int, int]:
        """Current (cpu, memory), including decay while idle."""
        cpu, memory = self.state.cpu, self.state.memory
        if self.phase is ConsumerPhase.IDLE:
            steps = int((self.env.now - self.idle_since) / IDLE_DECAY_INTERVAL)
            cpu = max(CPU_IDLE, cpu - 2 * steps)
            memory = max(MEMORY_IDLE, memory - steps)
        return cpu, memory

    @property
    def is_idle(self) -> bool:
        return self.phase is ConsumerPhase.IDLE

    # Worker plumbing

    def _on_enqueue(self, queue: MessageQueue):
        if self.state.is_active and self._worker is None:
            self._arm()

    def _arm(self):
        self.state.cpu, self.state.memory = self.resource_usage()
        self._generation += 1
        self.phase = ConsumerPhase.WAITING
        self._worker = _Worker(self.env, self, self._generation)

    def _cancel(self):
        self._generation += 1
        if self._worker is not None:
            self._go_idle()

    def _is_current(self, generation: int) -> bool:
        return self.state.is_active and generation == self._generation

    def _go_idle(self):
        self._worker = None
        if self.phase is not ConsumerPhase.IDLE:
            self.phase = ConsumerPhase.IDLE
            self.idle_since = self.env.now
        self._maybe_autoscale()

    def _process_next(self) -> bool:
        """Consume one message; return True if more are waiting."""
        depth_before = self.queue.depth()
        message = self.queue.dequeue()
        if message is None:
            self._go_idle()
            return False

        self._consume(message)
        self.state.cpu = min(CPU_MAX, self.state.cpu + (5 if depth_before > HIGH_WATER_MARK else 2))
        self.state.memory = min(MEMORY_MAX, self.state.memory + 1)
        self._update_health(message)

        if self.queue.is_empty():
            self._go_idle()
            return False

        self._maybe_autoscale()
        self.phase = ConsumerPhase.WAITING
        return True

    def _consume(self, message: Message):
        """Mark a message consumed; avg_processing_ms averages the configured delay."""
        message.mark_consumed(self.env.now)
        state = self.state
        state.processed_count += 1
        state.avg_processing_ms = (
            state.avg_processing_ms * (state.processed_count - 1) + state.processing_delay_ms
        ) / state.processed_count
        state.throughput_history.append(self.env.now)
        del state.throughput_history[:-MAX_THROUGHPUT_HISTORY]

        print(f"[{self.env.now:.1f}] Consumer {self.queue.id}: Consumed {message.id}")
        for subscription in list(self._subscriptions):
            subscription.deliver(message)

    def _update_health(self, message: Message):
        if self.rng.random() > 0.7:
            change = -self.rng.randint(0, 4)
        else:
            change = self.rng.randint(0, 1)
        self.state.health = max(HEALTH_FLOOR, min(100, self.state.health + change))

        if self.state.health < ERROR_HEALTH_THRESHOLD and self.rng.random() > 0.7:
            self._record_error(message)

    def _record_error(self, message: Message):
        self.phase = ConsumerPhase.ERRORED
        self.state.error_count += 1
        error = ConsumerError(self.env.now, self.queue.id, self.state.health, message.id)
        self.errors.append(error)
        print(
            f"[{self.env.now:.1f}] Consumer {self.queue.id}: Error while processing "
            f"{message.id} (health {self.state.health})"
        )
        for listener in self._error_listeners:
            listener(error)

    def _maybe_autoscale(self):
        """Nudge the delay toward the backlog when auto-scaling is on."""
        if not self.config.auto_scale:
            return

        cpu, _ = self.resource_usage()
        depth = self.queue.depth()
        delay = self.state.processing_delay_ms

        if depth > HIGH_WATER_MARK and cpu > 70 and delay > 1500:
            new_delay = max(MIN_PROCESSING_DELAY_MS, delay - DELAY_STEP_MS)
            reason = "increased processing speed"
        elif depth == 0 and cpu < 30 and delay < 4000:
            new_delay = min(MAX_PROCESSING_DELAY_MS, delay + DELAY_STEP_MS)
            reason = "decreased processing speed to save resources"
        else:
            return

        self.state.processing_delay_ms = new_delay
        print(
            f"[{self.env.now:.1f}] Consumer {self.queue.id}: Auto-scaling "
            f"{reason} ({delay} -> {new_delay} ms)"
        )


class _Worker(Process):
    """Waits out the delay, then processes one message at a time."""

    def init(self, consumer: ConsumerLoop, generation: int):
        self.consumer = consumer
        self.generation = generation

    async def run(self):
        consumer = self.consumer
        while consumer._is_current(self.generation):
            consumer.phase = ConsumerPhase.WAITING
            await self.timeout(consumer.state.processing_delay_ms / 1000)
            if not consumer._is_current(self.generation):
                return

            consumer.phase = ConsumerPhase.PROCESSING
            await self.timeout(consumer.config.processing_time_ms / 1000)
            if not consumer._is_current(self.generation):
                return

            if not consumer._process_next():
                return
