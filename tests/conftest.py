import numpy as np
import pytest

from bots.services.bot_manager import BotManager
from bots.stores import InMemoryBotConfigStore
from tests.factories import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def manager(clock, rng):
    return BotManager(store=InMemoryBotConfigStore(), rng=rng, clock=clock)
