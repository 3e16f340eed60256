"""
CartLedger: line items keyed by (productId, size).
"""
import random

import pytest

from conftest import product_record
from errors import NotFoundError


@pytest.fixture
def stocked(store):
    store.write("products", [product_record(1, "Tee", 10.0), product_record(2, "Cap", 5.0)])
    return store


class TestAdd:

    def test_add_snapshots_product(self, cart, stocked):
        items = cart.add(1, "M")
        assert len(items) == 1
        line = items[0]
        assert (line.product_id, line.size, line.quantity) == (1, "M", 1)
        assert (line.name, line.price, line.image) == ("Tee", 10.0, "/img/placeholder.jpg")

    def test_same_key_increments(self, cart, stocked):
        cart.add(1, "M")
        items = cart.add(1, "M")
        assert len(items) == 1
        assert items[0].quantity == 2

    def test_different_size_is_a_new_line(self, cart, stocked):
        cart.add(1, "M")
        items = cart.add(1, "L")
        assert [(it.size, it.quantity) for it in items] == [("M", 1), ("L", 1)]

    def test_unknown_product(self, cart, stocked):
        with pytest.raises(NotFoundError):
            cart.add(99, "M")
        assert cart.list() == []

    def test_snapshot_survives_product_change(self, cart, stocked):
        cart.add(1, "M")
        stocked.write("products", [product_record(1, "Renamed", 99.0)])
        assert cart.list()[0].name == "Tee"


class TestAdjustRemove:

    def test_adjust(self, cart, stocked):
        cart.add(1, "M")
        items = cart.adjust(1, "M", 3)
        assert items[0].quantity == 4
        items = cart.adjust(1, "M", -2)
        assert items[0].quantity == 2

    def test_adjust_to_zero_removes(self, cart, stocked):
        cart.add(1, "M")
        cart.add(2, "S")
        items = cart.adjust(1, "M", -1)
        assert [(it.product_id, it.size) for it in items] == [(2, "S")]

    def test_adjust_below_zero_removes(self, cart, stocked):
        cart.add(1, "M")
        assert cart.adjust(1, "M", -10) == []

    def test_adjust_missing_line(self, cart, stocked):
        with pytest.raises(NotFoundError):
            cart.adjust(1, "M", 1)

    def test_remove(self, cart, stocked):
        cart.add(1, "M")
        cart.add(1, "M")
        assert cart.remove(1, "M") == []
        with pytest.raises(NotFoundError):
            cart.remove(1, "M")

    def test_quantity_never_drops_below_one(self, cart, stocked, store):
        rng = random.Random(7)
        keys = [(1, "S"), (1, "M"), (2, "M")]
        for _ in range(200):
            product_id, size = rng.choice(keys)
            if rng.random() < 0.5:
                cart.add(product_id, size)
            else:
                try:
                    cart.adjust(product_id, size, rng.randint(-3, 2))
                except NotFoundError:
                    pass
            assert all(it["quantity"] >= 1 for it in store.read("cart"))
