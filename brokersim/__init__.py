"""In-process exchange and queue simulator on an asimpy virtual clock."""

from .bindings import Binding, BindingTable, ExchangeType, topic_matches
from .broker import Broker
from .config import BrokerConfig, ConfigStore, load_config_from_env
from .consumer import ConsumerError, ConsumerLoop, ConsumerPhase, ConsumerState, Subscription
from .errors import (
    BrokerError,
    InvalidBindingPattern,
    InvalidConfiguration,
    InvalidRoutingKey,
    InvalidStatusTransition,
    QueueInUse,
    QueueNotFound,
)
from .exchange import Exchange, PublishResult
from .history import MessageHistory
from .message import Message, MessageStatus
from .message_queue import MessageQueue
from .metrics import MessageRates, MetricsPoint, WindowSpec, rates, time_series

__all__ = [
    "Binding",
    "BindingTable",
    "Broker",
    "BrokerConfig",
    "BrokerError",
    "ConfigStore",
    "ConsumerError",
    "ConsumerLoop",
    "ConsumerPhase",
    "ConsumerState",
    "Exchange",
    "ExchangeType",
    "InvalidBindingPattern",
    "InvalidConfiguration",
    "InvalidRoutingKey",
    "InvalidStatusTransition",
    "Message",
    "MessageHistory",
    "MessageQueue",
    "MessageRates",
    "MessageStatus",
    "MetricsPoint",
    "PublishResult",
    "QueueInUse",
    "QueueNotFound",
    "Subscription",
    "WindowSpec",
    "load_config_from_env",
    "rates",
    "time_series",
    "topic_matches",
]
