"""Template registry: maps notification kinds to template classes.

Each template renders ``{"subject", "body"}`` from a plain context dict.
"""

from notifications.templates.order_confirmation import OrderConfirmationTemplate

ORDER_CONFIRMATION = "order_confirmation"

TEMPLATE_REGISTRY: dict[str, type] = {
    ORDER_CONFIRMATION: OrderConfirmationTemplate,
}


def get_template(kind: str):
    """Look up a template class by notification kind."""
    template_cls = TEMPLATE_REGISTRY.get(kind)
    if template_cls is None:
        raise ValueError(f"No template registered for notification kind: {kind}")
    return template_cls
