"""Price summary for a checkout.

Rates come from the settings provider on every call, so admin changes apply
to the next checkout without a restart.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass

from ordering.order.store import OrderLine
from shared.settings import DEFAULTS, SettingsProvider


@dataclass(frozen=True)
class PriceSummary:
    subtotal: float
    shipping_cost: float
    tax_total: float
    grand_total: float
    currency: str = "NPR"

    def to_dict(self) -> dict:
        return asdict(self)


def summarize(lines: Iterable[OrderLine], settings: SettingsProvider) -> PriceSummary:
    subtotal = round(sum(line.unit_price * line.quantity for line in lines), 2)

    tax_rate = settings.get_value("tax_rate", DEFAULTS["tax_rate"])
    shipping_rate = settings.get_value("shipping_rate", DEFAULTS["shipping_rate"])
    threshold = settings.get_value("free_shipping_threshold", DEFAULTS["free_shipping_threshold"])

    shipping = 0.0 if subtotal >= threshold else shipping_rate
    tax = round(subtotal * tax_rate, 2)

    return PriceSummary(
        subtotal=subtotal,
        shipping_cost=round(shipping, 2),
        tax_total=tax,
        grand_total=round(subtotal + shipping + tax, 2),
    )
