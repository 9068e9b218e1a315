"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from payments.gateway.port import PaymentMethod
from pytest_bdd import given, parsers


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def guest_email():
    return "sita@example.com"


@pytest.fixture()
def basket():
    """Line items the shopper is about to check out."""
    return []


@pytest.fixture()
def outcome():
    """Holds the latest checkout result."""
    return {"result": None}


@pytest.fixture()
def error():
    """Container for the error raised by the last When step."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Shared Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the basket holds {qty:d} "{product_id}"'))
def basket_holds(basket, qty, product_id):
    basket.append({"product_id": product_id, "quantity": qty})


@given(parsers.cfparse('the "{method}" gateway refuses new payments'))
def gateway_refuses(payments, method):
    payments.gateway_for(PaymentMethod(method)).configure(initiate_succeeds=False)


@given(parsers.cfparse('the "{method}" gateway declines verification'))
def gateway_declines(payments, method):
    payments.gateway_for(PaymentMethod(method)).configure(verify_succeeds=False)


@given(parsers.cfparse("{minutes:d} minutes pass"))
def minutes_pass(clock, minutes):
    clock.advance(minutes * 60)
