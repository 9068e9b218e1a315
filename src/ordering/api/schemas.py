"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands and checkout types.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    full_name: str
    phone: str
    email: str | None = None
    address_line: str
    city: str
    province: str | None = None
    postal_code: str | None = None
    country: str = "Nepal"


class CheckoutItemSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    customer_id: str | None = None
    session_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"product_id": "prod-001", "quantity": 2, "session_id": "sess-7f3a"},
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=0)
    customer_id: str | None = None
    session_id: str | None = None


class MergeGuestCartRequest(BaseModel):
    session_id: str
    customer_id: str


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class InitiateCheckoutRequest(BaseModel):
    items: list[CheckoutItemSchema] = Field(min_length=1)
    method: str
    shipping_address: AddressSchema | None = None
    guest_email: str | None = None
    user_id: str | None = None
    order_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "method": "khalti",
                    "guest_email": "guest@example.com",
                    "shipping_address": {
                        "full_name": "Sita Sharma",
                        "phone": "9800000000",
                        "address_line": "Lazimpat",
                        "city": "Kathmandu",
                    },
                }
            ]
        }
    }


class VerifyPaymentRequest(BaseModel):
    transaction_id: str
    order_id: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartIdResponse(BaseModel):
    cart_id: str


class MergeResponse(BaseModel):
    items_merged: int


class CartLineSchema(BaseModel):
    product_id: str
    name: str | None = None
    unit_price: float
    quantity: int
    line_total: float
    available: bool


class CartViewResponse(BaseModel):
    cart_id: str | None = None
    customer_id: str | None = None
    session_id: str | None = None
    items: list[CartLineSchema] = []
    item_count: int = 0
    total: float = 0.0


class InitiateCheckoutResponse(BaseModel):
    order_id: str
    order_created: bool
    method: str
    amount: float
    payment_url: str | None = None
    transaction_id: str | None = None


class VerifyPaymentResponse(BaseModel):
    order_id: str
    transaction_id: str
    grand_total: float
    payment_status: str
