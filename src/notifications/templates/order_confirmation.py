"""Order confirmation template: sent once an order has been created."""


class OrderConfirmationTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        currency = context.get("currency", "NPR")
        grand_total = float(context.get("grand_total") or 0)
        payment_method = context.get("payment_method", "")

        lines = []
        for item in context.get("items", []):
            lines.append(
                f"  {item.get('product_name', item.get('product_id'))} x {item.get('quantity')}"
                f"  {currency} {float(item.get('line_total') or 0):.2f}"
            )

        body = [f"Your order #{order_id} has been confirmed.", ""]
        if lines:
            body.extend(["Items:", *lines, ""])
        body.append(f"Order Total: {currency} {grand_total:.2f}")
        if payment_method == "cod":
            body.append("Please keep the exact amount ready at delivery.")
        body.extend(["", "We'll notify you once your order ships.", "", "Thank you for shopping with us!"])

        return {"subject": f"Order #{order_id} Confirmed", "body": "\n".join(body)}
