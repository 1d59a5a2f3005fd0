"""Binding table: which queues a routing key reaches."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .errors import InvalidBindingPattern, InvalidConfiguration


class ExchangeType(Enum):
    """Routing behaviours an exchange can have."""

    DIRECT = "direct"
    TOPIC = "topic"
    FANOUT = "fanout"


@dataclass(frozen=True)
class Binding:
    """Associates a queue with a routing pattern."""

    exchange_type: ExchangeType
    pattern: str
    queue_id: str

    def matches(self, routing_key: str) -> bool:
        if self.exchange_type is ExchangeType.FANOUT:
            return True
        if self.exchange_type is ExchangeType.DIRECT:
            return self.pattern == routing_key
        return topic_matches(self.pattern, routing_key)

    def __str__(self) -> str:
        return f"Binding({self.exchange_type.value}, {self.pattern!r} -> {self.queue_id})"


def validate_pattern(exchange_type: ExchangeType, pattern: str):
    """Reject patterns that can never be matched correctly."""
    if exchange_type is ExchangeType.FANOUT:
        return
    if exchange_type is ExchangeType.DIRECT:
        if pattern == "":
            raise InvalidBindingPattern(pattern, "direct bindings need a routing key")
        return

    segments = pattern.split(".")
    for i, segment in enumerate(segments):
        if segment == "":
            raise InvalidBindingPattern(pattern, "empty segment")
        if segment == "#" and i != len(segments) - 1:
            raise InvalidBindingPattern(pattern, "'#' must be the last segment")


def topic_matches(pattern: str, routing_key: str) -> bool:
    """Match a topic pattern against a routing key.

    ``*`` consumes exactly one segment and ``#`` consumes whatever is
    left of the key, including nothing.
    """
    pattern_parts = pattern.split(".")
    key_parts = routing_key.split(".")

    i = 0
    for part in pattern_parts:
        if part == "#":
            return True
        if i >= len(key_parts):
            return False
        if part != "*" and part != key_parts[i]:
            return False
        i += 1

    return i == len(key_parts)


class BindingTable:
    """Ordered collection of bindings."""

    def __init__(self):
        self.bindings: List[Binding] = []

    def add(self, binding: Binding) -> Binding:
        """Register a binding after validating its pattern."""
        validate_pattern(binding.exchange_type, binding.pattern)
        if binding not in self.bindings:
            self.bindings.append(binding)
        return binding

    def remove(self, binding: Binding) -> bool:
        if binding in self.bindings:
            self.bindings.remove(binding)
            return True
        return False

    def remove_queue(self, queue_id: str) -> int:
        """Drop every binding that targets a queue."""
        before = len(self.bindings)
        self.bindings = [b for b in self.bindings if b.queue_id != queue_id]
        return before - len(self.bindings)

    def references(self, queue_id: str) -> List[Binding]:
        return [b for b in self.bindings if b.queue_id == queue_id]

    def matching_queues(self, exchange_type: ExchangeType, routing_key: str) -> List[str]:
        """Queue ids reached by a routing key, each at most once."""
        matched: List[str] = []
        for binding in self.bindings:
            if binding.exchange_type is not exchange_type:
                continue
            if binding.queue_id not in matched and binding.matches(routing_key):
                matched.append(binding.queue_id)
        return matched

    def retype(self, exchange_type: ExchangeType, patterns: Optional[Dict[str, str]] = None):
        """Re-register every binding under a new exchange type.

        ``patterns`` maps queue ids to replacement patterns; fanout
        bindings carry no pattern, so leaving fanout needs one for each
        of their queues. Everything is validated before the table
        changes.
        """
        patterns = patterns or {}
        retyped: List[Binding] = []
        for binding in self.bindings:
            pattern = patterns.get(binding.queue_id, binding.pattern)
            new = Binding(exchange_type, pattern, binding.queue_id)
            if new not in retyped:
                retyped.append(new)

        if exchange_type is not ExchangeType.FANOUT:
            missing = sorted({b.queue_id for b in retyped if b.pattern == ""})
            if missing:
                raise InvalidConfiguration(
                    f"No {exchange_type.value} pattern for queue(s): {', '.join(missing)}",
                    {"exchange_type": exchange_type.value, "queues": missing},
                )
        for binding in retyped:
            validate_pattern(exchange_type, binding.pattern)
        self.bindings = retyped

    def __len__(self) -> int:
        return len(self.bindings)
