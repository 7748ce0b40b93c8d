import random
from datetime import datetime, timedelta, timezone

import pytest

from idzk.config import EngineConfig
from idzk.curves import get_curve
from idzk.ec import CurveArithmetic
from idzk.engine import ZKEngine
from idzk.randomness import HASH_ALGORITHMS, RandomnessProvider, SystemRandomness
from idzk.sigma import SigmaProtocolManager


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def curve():
    return get_curve("secp256k1")


@pytest.fixture
def arithmetic(curve):
    return CurveArithmetic(curve)


@pytest.fixture
def group(arithmetic):
    return arithmetic.group


@pytest.fixture
def manager(arithmetic):
    return SigmaProtocolManager(arithmetic, SystemRandomness())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return ZKEngine(EngineConfig(), clock=clock)


def flip_last_hex(text):
    """Change the last hex character of an encoding."""
    return text[:-1] + ("1" if text[-1] == "0" else "0")


@pytest.fixture
def tamper():
    return flip_last_hex


def upper_first_letter(text):
    """Upper-case the first a-f character of a hex encoding; same value, different bytes."""
    for i, ch in enumerate(text):
        if ch in "abcdef":
            return text[:i] + ch.upper() + text[i + 1 :]
    raise ValueError("No hex letter in {!r}".format(text))


@pytest.fixture
def recase():
    return upper_first_letter


class SeededRandomness(RandomnessProvider):
    """Reproducible scalars. Only for tests."""

    def __init__(self, seed=0):
        self.rng = random.Random(seed)

    def random_scalar(self, order):
        return self.rng.randrange(int(order))

    def hash(self, algorithm, data):
        return HASH_ALGORITHMS[algorithm](data).digest()


@pytest.fixture
def seeded():
    return SeededRandomness
