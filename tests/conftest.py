import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Pin every adapter selector to its in-process implementation so no test
    reaches Redis, a database, a payment provider or a mail server unless it
    builds that adapter itself.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["CACHE_BACKEND"] = "memory"
    os.environ["PRODUCT_STORE"] = "memory"
    os.environ["PAYMENT_GATEWAYS"] = "fake"
    os.environ["EMAIL_ADAPTER"] = "fake"


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


def _reset_singletons():
    from catalogue.store import reset_product_store
    from notifications.channel import reset_channels
    from ordering.checkout import reset_checkout_service
    from payments.gateway import reset_payment_adapter
    from shared.cache import reset_cache
    from shared.ratelimit import reset_rate_limiters
    from shared.settings import reset_settings
    from shared.store import reset_store

    reset_checkout_service()
    reset_channels()
    reset_payment_adapter()
    reset_product_store()
    reset_rate_limiters()
    reset_cache()
    reset_store()
    reset_settings()


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to give every test fresh process-wide adapters"""
    _reset_singletons()
    yield
    _reset_singletons()


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def memory_store(clock):
    """A MemoryStore on the fake clock, installed as the process-wide store."""
    from shared.store import set_store
    from shared.store.memory_adapter import MemoryStore

    store = MemoryStore(clock=clock)
    set_store(store)
    return store
