"""Pytest fixtures for broker simulator tests."""
import pytest
from asimpy import Environment, Process

from brokersim.bindings import ExchangeType
from brokersim.broker import Broker
from brokersim.config import BrokerConfig
from brokersim.exchange import Exchange


class At(Process):
    """Run a callback at a given simulated time."""

    def init(self, delay: float, action):
        self.delay = delay
        self.action = action

    async def run(self):
        await self.timeout(self.delay)
        self.action()


class FixedRandom:
    """Stand-in for random.Random returning fixed values."""

    def __init__(self, value: float = 0.9, pick_high: bool = True):
        self.value = value
        self.pick_high = pick_high

    def random(self) -> float:
        return self.value

    def randint(self, a: int, b: int) -> int:
        return b if self.pick_high else a


@pytest.fixture
def env() -> Environment:
    return Environment()


@pytest.fixture
def direct_exchange(env: Environment) -> Exchange:
    return Exchange(env, ExchangeType.DIRECT)


@pytest.fixture
def broker(env: Environment) -> Broker:
    return Broker(env, BrokerConfig(seed=7))
