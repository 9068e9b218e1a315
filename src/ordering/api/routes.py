"""FastAPI routes for the Ordering domain: carts and checkout."""

import os
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    CartIdResponse,
    CartViewResponse,
    InitiateCheckoutRequest,
    InitiateCheckoutResponse,
    MergeGuestCartRequest,
    MergeResponse,
    UpdateCartItemRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import merge_guest_cart_to_user
from ordering.cart.view import get_cart_view
from ordering.checkout import get_checkout_service
from payments.gateway.esewa_adapter import ESewaGateway
from payments.gateway.khalti_adapter import KhaltiGateway
from payments.gateway.port import PaymentMethod
from shared.errors import StorefrontError
from shared.http import rate_limited

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("", response_model=CartViewResponse, dependencies=[Depends(rate_limited("api"))])
async def view_cart(customer_id: str | None = None, session_id: str | None = None) -> CartViewResponse:
    if not customer_id and not session_id:
        raise ValidationError({"cart": ["customer_id or session_id is required"]})
    return CartViewResponse(**get_cart_view(customer_id=customer_id, session_id=session_id))


@cart_router.post(
    "/items",
    status_code=201,
    response_model=CartIdResponse,
    dependencies=[Depends(rate_limited("api"))],
)
async def add_cart_item(body: AddToCartRequest) -> CartIdResponse:
    command = AddToCart(
        product_id=body.product_id,
        quantity=body.quantity,
        customer_id=body.customer_id,
        session_id=body.session_id,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=cart_id)


@cart_router.put(
    "/items/{product_id}",
    response_model=CartIdResponse,
    dependencies=[Depends(rate_limited("api"))],
)
async def update_cart_item(product_id: str, body: UpdateCartItemRequest) -> CartIdResponse:
    """Set the quantity of a product in the cart; 0 removes it."""
    command = UpdateCartQuantity(
        product_id=product_id,
        new_quantity=body.quantity,
        customer_id=body.customer_id,
        session_id=body.session_id,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=cart_id)


@cart_router.delete(
    "/items/{product_id}",
    response_model=CartIdResponse,
    dependencies=[Depends(rate_limited("api"))],
)
async def remove_cart_item(
    product_id: str, customer_id: str | None = None, session_id: str | None = None
) -> CartIdResponse:
    command = RemoveFromCart(product_id=product_id, customer_id=customer_id, session_id=session_id)
    cart_id = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=cart_id)


@cart_router.post("/merge", response_model=MergeResponse, dependencies=[Depends(rate_limited("auth"))])
async def merge_guest_cart(body: MergeGuestCartRequest) -> MergeResponse:
    """Fold a guest session's cart into the customer's cart (called at login)."""
    merged = merge_guest_cart_to_user(session_id=body.session_id, customer_id=body.customer_id)
    return MergeResponse(items_merged=merged)


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post(
    "/initiate",
    status_code=201,
    response_model=InitiateCheckoutResponse,
    dependencies=[Depends(rate_limited("api"))],
)
async def initiate_checkout(body: InitiateCheckoutRequest) -> InitiateCheckoutResponse:
    result = get_checkout_service().initiate_checkout(
        items=[item.model_dump() for item in body.items],
        method=body.method,
        shipping_address=body.shipping_address.model_dump() if body.shipping_address else None,
        guest_email=body.guest_email,
        user_id=body.user_id,
        order_id=body.order_id,
    )
    return InitiateCheckoutResponse(
        order_id=result.order_id,
        order_created=result.order_created,
        method=result.method.value,
        amount=result.amount,
        payment_url=result.payment_url,
        transaction_id=result.transaction_id,
    )


@checkout_router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    dependencies=[Depends(rate_limited("api"))],
)
async def verify_payment(body: VerifyPaymentRequest) -> VerifyPaymentResponse:
    result = get_checkout_service().verify_payment(body.transaction_id, body.order_id)
    return VerifyPaymentResponse(
        order_id=result.order_id,
        transaction_id=result.transaction_id,
        grand_total=result.amount,
        payment_status=result.payment_status,
    )


def _redirect(base_url: str, **params) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v})
    separator = "&" if "?" in base_url else "?"
    return RedirectResponse(f"{base_url}{separator}{query}" if query else base_url, status_code=303)


@checkout_router.get("/callback")
async def payment_callback(request: Request, method: str) -> RedirectResponse:
    """Gateway return URL: verify the payment, then send the shopper on."""
    success_url = os.environ.get("PAYMENT_SUCCESS_URL", "/")
    failure_url = os.environ.get("PAYMENT_FAILURE_URL", "/")
    query = dict(request.query_params)

    if method == PaymentMethod.ESEWA.value:
        params = ESewaGateway.parse_callback(query)
        # eSewa echoes the payment id "<order_id>-<ms>" as oid
        order_id, transaction_id = params["oid"].rsplit("-", 1)[0], params["refId"]
    elif method == PaymentMethod.KHALTI.value:
        params = KhaltiGateway.parse_callback(query)
        order_id, transaction_id = params["purchase_order_id"], params["pidx"]
    else:
        return _redirect(failure_url, error="UnsupportedMethod")

    if not order_id or not transaction_id:
        return _redirect(failure_url, error="MissingParameters")

    try:
        result = get_checkout_service().verify_payment(transaction_id, order_id)
    except StorefrontError as exc:
        logger.warning("Payment callback rejected", order_id=order_id, method=method, error=exc.message)
        return _redirect(failure_url, order_id=order_id, error=type(exc).__name__)

    return _redirect(success_url, order_id=result.order_id)
