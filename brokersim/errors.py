"""Exception types raised by the broker simulator."""

from typing import Any, Dict, Optional


class BrokerError(Exception):
    """Base class for structural broker errors."""

    error_code: str = "BROKER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidBindingPattern(BrokerError):
    error_code = "INVALID_BINDING_PATTERN"

    def __init__(self, pattern: str, reason: str):
        super().__init__(
            f"Invalid binding pattern '{pattern}': {reason}",
            {"pattern": pattern, "reason": reason},
        )
        self.pattern = pattern


class InvalidRoutingKey(BrokerError):
    error_code = "INVALID_ROUTING_KEY"

    def __init__(self, routing_key: str, exchange_type: str):
        super().__init__(
            f"Routing key required for {exchange_type} exchange",
            {"routing_key": routing_key, "exchange_type": exchange_type},
        )


class QueueNotFound(BrokerError):
    error_code = "QUEUE_NOT_FOUND"

    def __init__(self, queue_id: str):
        super().__init__(f"Queue '{queue_id}' not found", {"queue_id": queue_id})
        self.queue_id = queue_id


class QueueInUse(BrokerError):
    error_code = "QUEUE_IN_USE"

    def __init__(self, queue_id: str, binding_count: int):
        super().__init__(
            f"Queue '{queue_id}' has {binding_count} active binding(s); "
            "unbind them first",
            {"queue_id": queue_id, "binding_count": binding_count},
        )
        self.queue_id = queue_id
        self.binding_count = binding_count


class InvalidStatusTransition(BrokerError):
    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, message_id: str, current: str, requested: str):
        super().__init__(
            f"Message {message_id} cannot move from {current} to {requested}",
            {"message_id": message_id, "current": current, "requested": requested},
        )


class InvalidConfiguration(BrokerError, ValueError):
    error_code = "INVALID_CONFIGURATION"
