"""Application tests for checkout initiation."""

import json
import re
import threading

import pytest
from ordering.cart.items import AddToCart, find_cart
from ordering.checkout.service import CheckoutItem, CheckoutService, CheckoutState, generate_order_id
from ordering.checkout.session import CheckoutSessionStore
from ordering.order.order import Order
from payments.gateway import PaymentGatewayAdapter
from payments.gateway.cod_adapter import CashOnDeliveryGateway
from payments.gateway.port import PaymentMethod
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from shared.cache import TagCache
from shared.errors import (
    InsufficientInventory,
    OrderAlreadyExists,
    PaymentInitiationFailed,
    ProductNotFound,
    ProductUnavailable,
    StorageUnavailable,
)
from shared.settings import StaticSettings
from shared.store.null_adapter import NullStore

ADDRESS = {
    "full_name": "Sita Sharma",
    "phone": "9800000000",
    "address_line": "Lazimpat",
    "city": "Kathmandu",
}


def _items(*pairs):
    return [{"product_id": product_id, "quantity": quantity} for product_id, quantity in pairs]


def _order_exists(order_id):
    try:
        current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        return False
    return True


def _placed(order_id):
    messages = current_domain.event_store.store.read("ordering::order")
    return [
        m.data
        for m in messages
        if m.metadata
        and m.metadata.headers
        and m.metadata.headers.type == "Ordering.OrderPlaced.v1"
        and m.data["order_id"] == order_id
    ]


class TestOrderId:
    def test_format(self):
        assert re.fullmatch(r"order-1700000000123-[0-9a-f]{9}", generate_order_id(1_700_000_000.123))

    def test_unique(self):
        assert generate_order_id(1.0) != generate_order_id(1.0)


class TestCashOnDelivery:
    def test_creates_order_immediately(self, checkout, sessions, catalogue):
        result = checkout.initiate_checkout(
            _items(("prod-tea", 2), ("prod-mug", 1)),
            "cod",
            shipping_address=ADDRESS,
            guest_email="sita@example.com",
        )

        assert result.order_created is True
        assert result.state == CheckoutState.ORDER_CREATED
        assert result.payment_status == "Pending"
        assert result.payment_url is None
        assert result.transaction_id.startswith(f"cod-{result.order_id}-")
        assert sessions.load(result.order_id) is None

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.payment_method == "cod"
        assert order.payment_status == "Pending"
        assert order.grand_total == 1186.5
        assert catalogue.stock_of("prod-tea") == 8
        assert catalogue.stock_of("prod-mug") == 0

    def test_publishes_order_placed(self, checkout):
        result = checkout.initiate_checkout(_items(("prod-tea", 1)), PaymentMethod.COD, guest_email="sita@example.com")

        [placed] = _placed(result.order_id)
        assert placed["recipient"] == "sita@example.com"
        assert placed["payment_method"] == "cod"
        assert placed["payment_status"] == "Pending"
        assert json.loads(placed["items"])[0]["product_name"] == "Ilam Tea"

    def test_recipient_falls_back_to_address_email(self, checkout):
        result = checkout.initiate_checkout(
            _items(("prod-tea", 1)), "cod", user_id="cust-001", shipping_address={**ADDRESS, "email": "s@example.com"}
        )

        [placed] = _placed(result.order_id)
        assert placed["recipient"] == "s@example.com"

    def test_keeps_the_customer_cart(self, checkout):
        current_domain.process(AddToCart(product_id="prod-tea", quantity=1, customer_id="cust-001"), asynchronous=False)

        checkout.initiate_checkout(_items(("prod-tea", 1)), "cod", user_id="cust-001")

        assert len(find_cart(customer_id="cust-001").items) == 1

    def test_works_without_the_ephemeral_store(self, catalogue, payments, recorded_orders, clock):
        service = CheckoutService(
            products=catalogue,
            orders=recorded_orders,
            sessions=CheckoutSessionStore(TagCache(NullStore())),
            payments=payments,
            settings=StaticSettings(),
            clock=clock,
        )

        assert service.initiate_checkout(_items(("prod-tea", 1)), "cod", guest_email="g@example.com").order_created


class TestOnlinePayment:
    def test_opens_payment_session(self, checkout, sessions, khalti, catalogue, clock):
        result = checkout.initiate_checkout(
            _items(("prod-tea", 2)),
            "khalti",
            shipping_address=ADDRESS,
            guest_email="sita@example.com",
        )

        assert result.state == CheckoutState.AWAITING_PAYMENT
        assert result.order_created is False
        assert result.amount == 1017.0
        assert result.payment_url.startswith("https://pay.example.test/khalti/")

        session = sessions.load(result.order_id)
        assert session.amount == 1017.0
        assert session.method == "khalti"
        assert session.gateway_reference == result.transaction_id
        assert session.expires_at == clock() + 1800
        assert [(line.product_id, line.quantity, line.unit_price) for line in session.lines] == [("prod-tea", 2, 450.0)]

        assert not _order_exists(result.order_id)
        assert catalogue.stock_of("prod-tea") == 10

    def test_hands_amount_and_customer_to_gateway(self, checkout, khalti):
        checkout.initiate_checkout(
            _items(("prod-tea", 1), ("prod-shawl", 1)),
            "khalti",
            shipping_address=ADDRESS,
            guest_email="sita@example.com",
        )

        call = khalti.calls[0]
        assert call["amount"] == 3672.5
        assert call["product_name"] == "Ilam Tea and 1 more"
        assert call["customer"].name == "Sita Sharma"
        assert call["customer"].email == "sita@example.com"
        assert call["customer"].phone == "9800000000"

    def test_session_is_tagged(self, checkout, cache):
        result = checkout.initiate_checkout(_items(("prod-tea", 1)), "esewa", guest_email="g@example.com")

        assert cache.invalidate_by_tag(f"checkout:{result.order_id}") == 1
        assert checkout.get_session(result.order_id) is None

    def test_duplicate_items_are_folded(self, checkout, sessions):
        result = checkout.initiate_checkout(
            [CheckoutItem("prod-tea", 1), CheckoutItem("prod-tea", 2)], "khalti", guest_email="g@example.com"
        )

        lines = sessions.load(result.order_id).lines
        assert [(line.product_id, line.quantity) for line in lines] == [("prod-tea", 3)]

    def test_gateway_refusal_leaves_nothing_behind(self, checkout, sessions, khalti, catalogue):
        khalti.configure(initiate_succeeds=False, failure_reason="Merchant suspended")

        with pytest.raises(PaymentInitiationFailed) as exc:
            checkout.initiate_checkout(
                _items(("prod-tea", 1)), "khalti", guest_email="g@example.com", order_id="order-x"
            )

        assert exc.value.message == "Merchant suspended"
        assert sessions.load("order-x") is None
        assert not _order_exists("order-x")
        assert catalogue.stock_of("prod-tea") == 10

    def test_refused_order_id_can_be_retried(self, checkout, sessions, khalti):
        khalti.configure(initiate_succeeds=False)
        with pytest.raises(PaymentInitiationFailed):
            checkout.initiate_checkout(
                _items(("prod-tea", 1)), "khalti", guest_email="g@example.com", order_id="order-x"
            )

        khalti.configure()
        result = checkout.initiate_checkout(
            _items(("prod-tea", 1)), "khalti", guest_email="g@example.com", order_id="order-x"
        )

        assert sessions.load("order-x").gateway_reference == result.transaction_id

    def test_method_without_gateway_is_a_payment_failure(self, catalogue, sessions, recorded_orders, clock):
        service = CheckoutService(
            products=catalogue,
            orders=recorded_orders,
            sessions=sessions,
            payments=PaymentGatewayAdapter({PaymentMethod.COD: CashOnDeliveryGateway()}),
            settings=StaticSettings(),
            clock=clock,
        )

        with pytest.raises(PaymentInitiationFailed) as exc:
            service.initiate_checkout(_items(("prod-tea", 1)), "esewa", guest_email="g@example.com", order_id="order-e")

        assert exc.value.message == "Payment method esewa is not available"
        assert sessions.load("order-e") is None

    def test_disabled_store_refuses_online_checkout(self, catalogue, payments, recorded_orders, clock):
        service = CheckoutService(
            products=catalogue,
            orders=recorded_orders,
            sessions=CheckoutSessionStore(TagCache(NullStore())),
            payments=payments,
            settings=StaticSettings(),
            clock=clock,
        )

        with pytest.raises(StorageUnavailable):
            service.initiate_checkout(_items(("prod-tea", 1)), "khalti", guest_email="g@example.com")
        assert payments.gateway_for(PaymentMethod.KHALTI).calls == []


class TestValidation:
    @pytest.mark.parametrize(
        "items",
        [
            [],
            None,
            _items(("prod-tea", 0)),
            _items(("prod-tea", -1)),
            [{"product_id": "prod-tea", "quantity": "2"}],
            [{"product_id": "prod-tea", "quantity": True}],
            [{"quantity": 1}],
        ],
    )
    def test_malformed_items(self, checkout, items):
        with pytest.raises(ValidationError):
            checkout.initiate_checkout(items, "cod", guest_email="g@example.com")

    def test_unsupported_method(self, checkout):
        with pytest.raises(ValidationError) as exc:
            checkout.initiate_checkout(_items(("prod-tea", 1)), "paypal", guest_email="g@example.com")
        assert "method" in exc.value.messages

    def test_needs_customer_or_guest_email(self, checkout):
        with pytest.raises(ValidationError) as exc:
            checkout.initiate_checkout(_items(("prod-tea", 1)), "cod")
        assert "guest_email" in exc.value.messages

    def test_unknown_product(self, checkout, khalti):
        with pytest.raises(ProductNotFound):
            checkout.initiate_checkout(_items(("prod-none", 1)), "khalti", guest_email="g@example.com")
        assert khalti.calls == []

    def test_inactive_product(self, checkout):
        with pytest.raises(ProductUnavailable):
            checkout.initiate_checkout(_items(("prod-lamp", 1)), "cod", guest_email="g@example.com")

    def test_insufficient_stock_checks_every_line_first(self, checkout, catalogue):
        with pytest.raises(InsufficientInventory) as exc:
            checkout.initiate_checkout(_items(("prod-tea", 1), ("prod-shawl", 4)), "cod", guest_email="g@example.com")

        assert exc.value.available == 3
        assert catalogue.stock_of("prod-tea") == 10


class TestClientSuppliedOrderId:
    def test_accepted_when_unused(self, checkout):
        result = checkout.initiate_checkout(
            _items(("prod-tea", 1)), "khalti", guest_email="g@example.com", order_id="order-abc"
        )
        assert result.order_id == "order-abc"

    def test_refused_while_session_is_live(self, checkout, sessions, khalti):
        first = checkout.initiate_checkout(
            _items(("prod-tea", 1)), "khalti", guest_email="g@example.com", order_id="order-abc"
        )

        with pytest.raises(OrderAlreadyExists):
            checkout.initiate_checkout(
                _items(("prod-tea", 2)), "khalti", guest_email="g@example.com", order_id="order-abc"
            )

        assert len(khalti.calls) == 1
        session = sessions.load("order-abc")
        assert session.gateway_reference == first.transaction_id
        assert session.lines[0].quantity == 1

    def test_racing_submits_open_one_payment(self, catalogue, sessions, payments, khalti, recorded_orders, clock):
        service = CheckoutService(
            products=catalogue,
            orders=recorded_orders,
            sessions=sessions,
            payments=payments,
            settings=StaticSettings(),
            clock=clock,
        )

        barrier = threading.Barrier(6)
        outcomes = []
        lock = threading.Lock()

        def submit(quantity):
            barrier.wait()
            try:
                result = service.initiate_checkout(
                    _items(("prod-tea", quantity)), "khalti", guest_email="g@example.com", order_id="order-abc"
                )
                outcome = (quantity, result.transaction_id)
            except OrderAlreadyExists:
                outcome = None
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=submit, args=(n,)) for n in range(1, 7)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        [(quantity, transaction_id)] = [o for o in outcomes if o is not None]
        assert outcomes.count(None) == 5
        assert len(khalti.calls) == 1
        session = sessions.load("order-abc")
        assert session.gateway_reference == transaction_id
        assert session.lines[0].quantity == quantity

    def test_refused_when_order_exists(self, checkout):
        checkout.initiate_checkout(_items(("prod-tea", 1)), "cod", guest_email="g@example.com", order_id="order-abc")

        with pytest.raises(OrderAlreadyExists):
            checkout.initiate_checkout(
                _items(("prod-tea", 1)), "cod", guest_email="g@example.com", order_id="order-abc"
            )
