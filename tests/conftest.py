# tests/conftest.py
import random

import pytest

from services.correlations.extractors import ExtractionContext
from services.correlations.patterns import PatternCache

CSRF_VALUE = "7d1de48134af4342a9b4b8288c451f7c"


class FakeContext:
    """Stands in for fastmcp.Context; records what the tools report."""

    def __init__(self):
        self.infos = []
        self.errors = []

    async def info(self, message):
        self.infos.append(message)

    async def error(self, message):
        self.errors.append(message)


@pytest.fixture
def context():
    return ExtractionContext(pattern_cache=PatternCache(16), rng=random.Random(42))


@pytest.fixture
def ctx():
    return FakeContext()


@pytest.fixture
def csrf_value():
    return CSRF_VALUE
