"""Broker configuration."""

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .bindings import ExchangeType
from .errors import InvalidConfiguration

logger = logging.getLogger(__name__)

MIN_PROCESSING_DELAY_MS = 1000
MAX_PROCESSING_DELAY_MS = 5000
DELAY_STEP_MS = 500

PERSISTENCE_MODES = ("memory", "disk")

_RECOGNISED_BOOL_VALUES = frozenset(("1", "true", "yes", "0", "false", "no"))


@dataclass(frozen=True)
class BrokerConfig:
    """Settings injected into the exchange and consumer loops.

    ``persistence`` accepts ``disk`` but only in-memory state is kept.
    ``retention_hours`` and ``compression`` are carried for collaborators
    that archive or transform payloads; the broker itself ignores them.
    """

    exchange_type: ExchangeType = ExchangeType.DIRECT
    persistence: str = "memory"
    retention_hours: int = 24
    compression: bool = False
    processing_delay_ms: int = 2000
    processing_time_ms: int = 500
    auto_scale: bool = False
    history_limit: int = 100
    seed: Optional[int] = None

    def validate(self) -> "BrokerConfig":
        if not isinstance(self.exchange_type, ExchangeType):
            raise InvalidConfiguration(
                f"Unknown exchange type {self.exchange_type!r}",
                {"exchange_type": self.exchange_type},
            )
        if self.persistence not in PERSISTENCE_MODES:
            raise InvalidConfiguration(
                f"Persistence must be one of {', '.join(PERSISTENCE_MODES)}",
                {"persistence": self.persistence},
            )
        check_processing_delay(self.processing_delay_ms)
        if self.processing_time_ms <= 0:
            raise InvalidConfiguration(
                "Processing time must be positive",
                {"processing_time_ms": self.processing_time_ms},
            )
        if self.retention_hours <= 0:
            raise InvalidConfiguration(
                "Retention must be at least one hour",
                {"retention_hours": self.retention_hours},
            )
        if self.history_limit <= 0:
            raise InvalidConfiguration(
                "History limit must be positive",
                {"history_limit": self.history_limit},
            )
        return self

    def with_changes(self, **changes: Any) -> "BrokerConfig":
        return replace(self, **changes).validate()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["exchange_type"] = self.exchange_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrokerConfig":
        values = dict(data)
        if "exchange_type" in values:
            values["exchange_type"] = parse_exchange_type(values["exchange_type"])
        unknown = set(values) - set(cls.__dataclass_fields__)
        if unknown:
            raise InvalidConfiguration(
                f"Unknown setting(s): {', '.join(sorted(unknown))}",
                {"unknown": sorted(unknown)},
            )
        return cls(**values).validate()


def check_processing_delay(delay_ms: int) -> int:
    if not MIN_PROCESSING_DELAY_MS <= delay_ms <= MAX_PROCESSING_DELAY_MS:
        raise InvalidConfiguration(
            f"Processing delay must be between {MIN_PROCESSING_DELAY_MS} "
            f"and {MAX_PROCESSING_DELAY_MS} ms",
            {"processing_delay_ms": delay_ms},
        )
    return delay_ms


def parse_exchange_type(value: Any) -> ExchangeType:
    if isinstance(value, ExchangeType):
        return value
    try:
        return ExchangeType(str(value).lower())
    except ValueError:
        raise InvalidConfiguration(
            f"Unknown exchange type {value!r}", {"exchange_type": value}
        ) from None


def _parse_bool(value: str, default: bool) -> bool:
    """Parse a boolean environment variable.

    Unrecognised values log a warning and fall back to *default*.
    """
    if not value:
        return default
    normalised = value.lower()
    if normalised not in _RECOGNISED_BOOL_VALUES:
        logger.warning(
            "Unrecognised boolean value %r, using default %s. "
            "Expected one of: true/1/yes or false/0/no.",
            value,
            default,
        )
        return default
    return normalised in ("1", "true", "yes")


def _parse_int(name: str, default: Optional[str]) -> Optional[int]:
    """Read an integer environment variable; unset or empty gives *default*."""
    raw = os.environ.get(name) or default
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfiguration(f"{name} must be an integer", {name: raw}) from None


def load_config_from_env() -> BrokerConfig:
    return BrokerConfig(
        exchange_type=parse_exchange_type(
            os.environ.get("BROKER_EXCHANGE_TYPE", "direct")
        ),
        persistence=os.environ.get("BROKER_PERSISTENCE", "memory"),
        retention_hours=_parse_int("BROKER_RETENTION_HOURS", "24"),
        compression=_parse_bool(os.environ.get("BROKER_COMPRESSION", ""), default=False),
        processing_delay_ms=_parse_int("BROKER_PROCESSING_DELAY_MS", "2000"),
        processing_time_ms=_parse_int("BROKER_PROCESSING_TIME_MS", "500"),
        auto_scale=_parse_bool(os.environ.get("BROKER_AUTO_SCALE", ""), default=False),
        history_limit=_parse_int("BROKER_HISTORY_LIMIT", "100"),
        seed=_parse_int("BROKER_SEED", None),
    ).validate()


class ConfigStore:
    """Saves and restores a configuration as JSON on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> BrokerConfig:
        """Read the saved configuration, or defaults if nothing usable is saved."""
        if not self.path.exists():
            return BrokerConfig()
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to load broker settings from %s: %s", self.path, exc)
            return BrokerConfig()
        return BrokerConfig.from_dict(data)

    def save(self, config: BrokerConfig):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(config.to_dict(), indent=2))

    def reset(self) -> BrokerConfig:
        """Restore defaults and save them."""
        config = BrokerConfig()
        self.save(config)
        return config
