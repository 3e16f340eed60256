import logging
from typing import List

from database import JsonStore
from errors import NotFoundError
from schemas import CartItem

logger = logging.getLogger("storefront.cart")


def find_line(items, product_id: int, size: str) -> int:
    for i, it in enumerate(items):
        if it.get("productId") == product_id and it.get("size") == size:
            return i
    return -1


class CartLedger:
    """Cart line items, one per (productId, size) pair."""

    collection = "cart"

    def __init__(self, store: JsonStore):
        self.store = store

    def list(self) -> List[CartItem]:
        return [CartItem.model_validate(it) for it in self.store.read(self.collection)]

    def add(self, product_id: int, size: str) -> List[CartItem]:
        with self.store.transaction(self.collection, "products"):
            items = self.store.read(self.collection)
            i = find_line(items, product_id, size)
            if i != -1:
                items[i]["quantity"] += 1
            else:
                product = next((p for p in self.store.read("products") if p.get("id") == product_id), None)
                if product is None:
                    raise NotFoundError("Product not found")
                line = CartItem(
                    product_id=product_id,
                    size=size,
                    name=product["name"],
                    price=product["price"],
                    image=product["image"],
                    quantity=1,
                )
                items.append(line.to_record())
            self.store.write(self.collection, items)

        logger.info("Added product %s (%s) to cart", product_id, size)
        return [CartItem.model_validate(it) for it in items]

    def adjust(self, product_id: int, size: str, delta: int) -> List[CartItem]:
        with self.store.transaction(self.collection):
            items = self.store.read(self.collection)
            i = find_line(items, product_id, size)
            if i == -1:
                raise NotFoundError("Item not found in cart")
            quantity = items[i]["quantity"] + delta
            if quantity <= 0:
                items.pop(i)
            else:
                items[i]["quantity"] = quantity
            self.store.write(self.collection, items)

        return [CartItem.model_validate(it) for it in items]

    def remove(self, product_id: int, size: str) -> List[CartItem]:
        with self.store.transaction(self.collection):
            items = self.store.read(self.collection)
            i = find_line(items, product_id, size)
            if i == -1:
                raise NotFoundError("Item not found in cart")
            items.pop(i)
            self.store.write(self.collection, items)

        logger.info("Removed product %s (%s) from cart", product_id, size)
        return [CartItem.model_validate(it) for it in items]
