"""Tests for the ShoppingCart aggregate."""

import pytest
from ordering.cart.cart import CartItem, ShoppingCart, cart_tag
from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated, CartsMerged
from protean.exceptions import ValidationError


class TestCartCreation:
    def test_customer_cart(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        assert cart.customer_id == "cust-001"
        assert cart.session_id is None
        assert cart.created_at is not None
        assert len(cart.items) == 0

    def test_guest_cart(self):
        cart = ShoppingCart.create(session_id="sess-001")
        assert cart.session_id == "sess-001"
        assert cart.customer_id is None

    def test_needs_an_owner(self):
        with pytest.raises(ValidationError):
            ShoppingCart.create()


class TestCacheTag:
    def test_customer_tag(self):
        assert ShoppingCart.create(customer_id="cust-001").cache_tag() == "cart:user:cust-001"

    def test_guest_tag(self):
        assert ShoppingCart.create(session_id="sess-001").cache_tag() == "cart:session:sess-001"

    def test_customer_wins_over_session(self):
        assert cart_tag(customer_id="cust-001", session_id="sess-001") == "cart:user:cust-001"


class TestAddItem:
    def test_adds_new_line(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item("prod-tea", 2)

        assert len(cart.items) == 1
        assert isinstance(cart.items[0], CartItem)
        assert cart.quantity_of("prod-tea") == 2

    def test_accumulates_existing_line(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item("prod-tea", 2)
        cart.add_item("prod-tea", 1)

        assert len(cart.items) == 1
        assert cart.quantity_of("prod-tea") == 3

    def test_rejects_non_positive_quantity(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        with pytest.raises(ValidationError):
            cart.add_item("prod-tea", 0)

    def test_raises_event_with_running_quantity(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item("prod-tea", 2)
        cart.add_item("prod-tea", 3)

        event = cart._events[-1]
        assert isinstance(event, CartItemAdded)
        assert event.quantity == 3
        assert event.new_quantity == 5

    def test_quantity_of_missing_product(self):
        assert ShoppingCart.create(customer_id="cust-001").quantity_of("prod-none") == 0


class TestUpdateAndRemove:
    def test_sets_quantity(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item("prod-tea", 2)
        cart.update_item_quantity("prod-tea", 5)

        assert cart.quantity_of("prod-tea") == 5
        event = cart._events[-1]
        assert isinstance(event, CartQuantityUpdated)
        assert event.previous_quantity == 2
        assert event.new_quantity == 5

    def test_zero_removes_the_line(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item("prod-tea", 2)
        cart.update_item_quantity("prod-tea", 0)

        assert len(cart.items) == 0
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_negative_quantity(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item("prod-tea", 2)
        with pytest.raises(ValidationError):
            cart.update_item_quantity("prod-tea", -1)

    def test_update_unknown_line(self):
        with pytest.raises(ValidationError):
            ShoppingCart.create(customer_id="cust-001").update_item_quantity("prod-tea", 1)

    def test_remove_line(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item("prod-tea", 2)
        cart.add_item("prod-mug", 1)
        cart.remove_item("prod-tea")

        assert cart.quantity_of("prod-tea") == 0
        assert cart.quantity_of("prod-mug") == 1
        event = cart._events[-1]
        assert isinstance(event, CartItemRemoved)
        assert event.product_id == "prod-tea"
        assert event.quantity == 2

    def test_remove_unknown_line(self):
        with pytest.raises(ValidationError):
            ShoppingCart.create(customer_id="cust-001").remove_item("prod-tea")


class TestClearAndMerge:
    def test_clear_removes_every_line(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item("prod-tea", 1)
        cart.add_item("prod-mug", 1)
        cart.clear()

        assert len(cart.items) == 0
        event = cart._events[-1]
        assert isinstance(event, CartCleared)
        assert event.items_removed == 2

    def test_record_merge(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.record_merge(source_session_id="sess-001", items_merged_count=2)

        event = cart._events[-1]
        assert isinstance(event, CartsMerged)
        assert event.source_session_id == "sess-001"
        assert event.items_merged_count == 2
