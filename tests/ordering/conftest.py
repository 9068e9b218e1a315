import threading

import pytest
from catalogue.store import set_product_store
from catalogue.store.memory_adapter import MemoryProductStore
from catalogue.store.port import ProductRecord
from ordering.checkout import build_checkout_service, set_checkout_service
from ordering.checkout.session import CheckoutSessionStore
from payments.gateway import build_fake_adapter, set_payment_adapter
from payments.gateway.port import PaymentMethod
from protean.integrations.pytest import DomainFixture
from shared.cache import TagCache, set_cache
from shared.errors import OrderAlreadyExists
from shared.settings import StaticSettings


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalogue():
    store = MemoryProductStore(
        [
            ProductRecord(id="prod-tea", name="Ilam Tea", price=450.0, stock=10),
            ProductRecord(id="prod-shawl", name="Pashmina Shawl", price=3200.0, discount_price=2800.0, stock=3),
            ProductRecord(id="prod-mug", name="Clay Mug", price=150.0, stock=1),
            ProductRecord(id="prod-lamp", name="Brass Lamp", price=900.0, stock=5, is_active=False),
        ]
    )
    set_product_store(store)
    return store


@pytest.fixture()
def cache(memory_store):
    cache = TagCache(memory_store)
    set_cache(cache)
    return cache


@pytest.fixture()
def payments():
    adapter = build_fake_adapter()
    set_payment_adapter(adapter)
    return adapter


@pytest.fixture()
def khalti(payments):
    return payments.gateway_for(PaymentMethod.KHALTI)


@pytest.fixture()
def sessions(cache, clock):
    return CheckoutSessionStore(cache, clock=clock)


@pytest.fixture()
def checkout(catalogue, sessions, payments, clock):
    """Checkout service on in-process collaborators and the fake clock.

    Default pricing: 13% tax, NPR 200 shipping below NPR 200 subtotal.
    """
    service = build_checkout_service(
        sessions=sessions,
        settings=StaticSettings(),
        clock=clock,
    )
    set_checkout_service(service)
    return service


class RecordingOrderStore:
    """Order store that keeps drafts in memory; safe to call from any thread."""

    def __init__(self, fail_with=None):
        self.orders = {}
        self.fail_with = fail_with
        self._lock = threading.Lock()

    def exists(self, order_id):
        with self._lock:
            return order_id in self.orders

    def insert_order(self, draft):
        if self.fail_with is not None:
            raise self.fail_with
        with self._lock:
            if draft.order_id in self.orders:
                raise OrderAlreadyExists(draft.order_id)
            self.orders[draft.order_id] = draft
        return draft


@pytest.fixture()
def recorded_orders():
    return RecordingOrderStore()


@pytest.fixture()
def failing_orders():
    return RecordingOrderStore(fail_with=RuntimeError("disk full"))
