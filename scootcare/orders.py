from typing import List, Optional
from .models import Order

TABLE = "orders"

CLOSING_LINES = {
    "processing": "We're preparing your order for shipment.",
    "shipped": "Your order has shipped and is on its way!",
    "delivered": "Your order has been delivered. Enjoy your new scooter!",
}
DEFAULT_CLOSING = "Please contact support if you have any questions about your order."

AUTH_REQUIRED_REPLY = "Authentication required: please log in to view your order status."
NO_ORDERS_REPLY = ("No orders found: I don't see any orders associated with your account. "
                   "Would you like to browse our scooter models, get help placing a new order, or contact support?")

def list_orders(backend, owner_id: str) -> List[Order]:
    rows = backend.select(TABLE, {"owner_id": owner_id}, order_by="created_at", desc=True)
    return [Order.from_row(r) for r in rows]

def latest_order(backend, owner_id: str) -> Optional[Order]:
    rows = backend.select(TABLE, {"owner_id": owner_id}, order_by="created_at", desc=True, limit=1)
    return Order.from_row(rows[0]) if rows else None

def format_order_status(order: Order) -> str:
    d = order.expected_delivery_date
    delivery = f"{d:%A}, {d:%B} {d.day}, {d.year}" if d else "not yet scheduled"
    status = order.status.lower()
    placed = order.created_at
    return ("Order Status Update\n"
            f"- Product: {order.model_name}\n"
            f"- Status: {order.status[:1].upper()}{order.status[1:]}\n"
            f"- Expected Delivery: {delivery}\n"
            f"- Order Date: {placed:%B} {placed.day}, {placed.year}\n\n"
            f"{CLOSING_LINES.get(status, DEFAULT_CLOSING)}")

def order_tracking(backend):
    """Resolver for the "order_tracking" knowledge function: latest order of the asking user."""
    def resolve(context) -> str:
        if not context.user_id:
            return AUTH_REQUIRED_REPLY
        order = latest_order(backend, context.user_id)
        if order is None:
            return NO_ORDERS_REPLY
        return format_order_status(order)
    return resolve
