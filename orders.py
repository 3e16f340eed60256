import logging
import time
from datetime import datetime, timezone
from typing import Iterable, List

from database import JsonStore
from errors import EmptyCartError
from schemas import CartItem, Order, OrderIn, PaymentIn, PaymentRecord, Totals

logger = logging.getLogger("storefront.orders")

SHIPPING_FLAT = 5.99
TAX_RATE = 0.08


def compute_totals(items: Iterable[CartItem], shipping_flat: float = SHIPPING_FLAT, tax_rate: float = TAX_RATE) -> Totals:
    subtotal = round(sum(it.price * it.quantity for it in items), 2)
    shipping = shipping_flat if subtotal > 0 else 0.0
    tax = round(subtotal * tax_rate, 2)
    total = round(subtotal + shipping + tax, 2)
    return Totals(subtotal=subtotal, shipping=shipping, tax=tax, total=total)


def redact(payment: PaymentIn) -> PaymentRecord:
    return PaymentRecord(
        card_name=payment.card_name,
        card_number_last4=payment.card_number[-4:],
        expiry=payment.expiry,
    )


def next_order_id(orders) -> str:
    stamp = int(time.time() * 1000)
    used = {o.get("id") for o in orders}
    while f"ORD-{stamp}" in used:
        stamp += 1
    return f"ORD-{stamp}"


class OrderProcessor:
    collection = "orders"

    def __init__(self, store: JsonStore, shipping_flat: float = SHIPPING_FLAT, tax_rate: float = TAX_RATE):
        self.store = store
        self.shipping_flat = shipping_flat
        self.tax_rate = tax_rate

    def list(self) -> List[Order]:
        return [Order.model_validate(o) for o in self.store.read(self.collection)]

    def place(self, order_in: OrderIn) -> Order:
        with self.store.transaction(self.collection, "cart"):
            cart = [CartItem.model_validate(it) for it in self.store.read("cart")]
            if not cart:
                raise EmptyCartError("Cart is empty")

            orders = self.store.read(self.collection)
            order = Order(
                id=next_order_id(orders),
                date=datetime.now(timezone.utc).isoformat(),
                customer=order_in.customer,
                items=cart,
                payment=redact(order_in.payment),
                totals=compute_totals(cart, self.shipping_flat, self.tax_rate),
                status="Processing",
            )
            orders.append(order.to_record())
            self.store.write_many({self.collection: orders, "cart": []})

        logger.info("Placed order %s (%d items, total %.2f)", order.id, len(cart), order.totals.total)
        return order
