"""
Tests for cart models and the cart state store
"""
from decimal import Decimal

import pytest

from cartsync.cart.models import Cart, CartItem, items_from_payload
from cartsync.cart.state import (
    CartState,
    CartStateStore,
    add_line,
    remove_line,
    restore_line,
    set_line_quantity,
)
from cartsync.errors import CartValidationError


class TestCartItem:
    """Tests for CartItem dataclass."""

    def test_defaults(self):
        """Missing optional fields get the documented defaults."""
        item = CartItem.from_dict({"itemId": "r1"})

        assert item.item_id == "r1"
        assert item.quantity == 1
        assert item.price == Decimal("0")
        assert item.condition == "VG+"
        assert item.weight == 180
        assert item.images == []

    @pytest.mark.parametrize("key", ["itemId", "item_id", "id", "discogsReleaseId", "recordId"])
    def test_alias_id_keys(self, key):
        item = CartItem.from_dict({key: 4242})
        assert item.item_id == "4242"

    def test_itemid_takes_precedence(self):
        item = CartItem.from_dict({"id": "other", "itemId": "main"})
        assert item.item_id == "main"

    def test_price_is_decimal(self):
        item = CartItem.from_dict({"itemId": "r1", "price": "12.50", "quantity": 3})

        assert item.price == Decimal("12.50")
        assert item.total_price == Decimal("37.50")

    def test_float_price_has_no_binary_noise(self):
        item = CartItem.from_dict({"itemId": "r1", "price": 0.1})
        assert item.price == Decimal("0.1")

    def test_cover_image_lifted_into_images(self):
        item = CartItem.from_dict({"itemId": "r1", "cover_image": "https://img.test/c.jpg"})
        assert item.images == ["https://img.test/c.jpg"]

    def test_image_objects_reduced_to_urls(self):
        item = CartItem.from_dict({
            "itemId": "r1",
            "images": [{"uri": "https://img.test/1.jpg"}, "https://img.test/2.jpg", {}],
            "cover_image": "https://img.test/ignored.jpg",
        })
        assert item.images == ["https://img.test/1.jpg", "https://img.test/2.jpg"]

    def test_empty_id_rejected(self):
        with pytest.raises(CartValidationError):
            CartItem.from_dict({"itemId": "   ", "title": "No id"})

    def test_zero_quantity_rejected(self):
        with pytest.raises(CartValidationError):
            CartItem(item_id="r1", quantity=0)

    def test_non_dict_rejected(self):
        with pytest.raises(CartValidationError):
            CartItem.from_dict(["r1"])

    def test_to_dict(self):
        """Test serialization to dict."""
        item = CartItem(item_id="r1", title="Blue Train", price="19.99", quantity=2)
        data = item.to_dict()

        assert data["itemId"] == "r1"
        assert data["price"] == "19.99"
        assert data["quantity"] == 2
        assert CartItem.from_dict(data) == item

    def test_copy_does_not_share_images(self):
        item = CartItem(item_id="r1", images=["a"])
        clone = item.copy()
        clone.images.append("b")

        assert item.images == ["a"]


class TestCart:
    def test_from_dict(self):
        cart = Cart.from_dict({"items": [{"itemId": "r1", "quantity": 2}], "isOpen": True})

        assert cart.is_guest
        assert cart.is_open
        assert cart.total_items == 2

    def test_items_must_be_list(self):
        with pytest.raises(ValueError):
            Cart.from_dict({"items": "r1"})

    def test_payload_batch_rejected_on_bad_entry(self):
        with pytest.raises(CartValidationError):
            items_from_payload([{"itemId": "r1"}, {"title": "no id"}])

    def test_subtotal_and_find(self):
        cart = Cart(owner_id="owner-1", items=[
            CartItem(item_id="a", price="10.00", quantity=2),
            CartItem(item_id="b", price="5.50"),
        ])

        assert not cart.is_guest
        assert cart.subtotal == Decimal("25.50")
        assert cart.find("b").price == Decimal("5.50")
        assert cart.find("missing") is None


class TestItemTransforms:
    def test_add_new_line(self, make_item):
        items = add_line((), make_item("a"))
        assert [i.item_id for i in items] == ["a"]

    def test_add_existing_line_increases_quantity(self, make_item):
        items = add_line((make_item("a", 2),), make_item("a", 3))

        assert len(items) == 1
        assert items[0].quantity == 5

    def test_set_quantity_zero_removes(self, make_item):
        items = (make_item("a"), make_item("b"))
        assert set_line_quantity(items, "a", 0) == remove_line(items, "a")

    def test_restore_line_keeps_position(self, make_item):
        a, b, c = make_item("a"), make_item("b"), make_item("c")
        items = remove_line((a, b, c), "b")

        assert [i.item_id for i in restore_line(items, "b", b, 1)] == ["a", "b", "c"]

    def test_restore_line_without_previous_removes(self, make_item):
        items = (make_item("a"), make_item("new"))
        assert [i.item_id for i in restore_line(items, "new", None)] == ["a"]

    def test_restore_line_leaves_other_lines(self, make_item):
        items = (make_item("a", 5), make_item("b", 7))
        restored = restore_line(items, "a", make_item("a", 2), 0)

        assert [(i.item_id, i.quantity) for i in restored] == [("a", 2), ("b", 7)]


class TestCartStateStore:
    def test_starts_loading(self):
        store = CartStateStore()
        assert store.state.loading
        assert store.items == ()

    def test_set_items_clears_loading(self, make_item):
        store = CartStateStore()
        store.set_items([make_item("a", 2)])

        assert not store.state.loading
        assert store.state.total_items == 2

    def test_observers_see_every_change(self, make_item):
        store = CartStateStore()
        seen = []
        store.subscribe(lambda state: seen.append(state.total_items))

        store.set_items([make_item("a")])
        store.update_items(lambda items: add_line(items, make_item("b", 2)))

        assert seen == [1, 3]

    def test_unchanged_state_not_published(self):
        store = CartStateStore(CartState(loading=False))
        seen = []
        store.subscribe(seen.append)

        store.set_loading(False)

        assert seen == []

    def test_unsubscribe(self, make_item):
        store = CartStateStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()

        store.set_items([make_item("a")])

        assert seen == []

    def test_failing_observer_does_not_block_others(self, make_item):
        store = CartStateStore()
        seen = []

        def broken(state):
            raise RuntimeError("observer bug")

        store.subscribe(broken)
        store.subscribe(seen.append)
        store.set_items([make_item("a")])

        assert len(seen) == 1

    def test_notify_error(self):
        store = CartStateStore()
        received = []
        store.on_notification(received.append)

        store.notify_error("Could not save")

        assert received[0].is_error
        assert received[0].description == "Could not save"
        assert store.notifications == received

    def test_notification_history_bounded(self):
        store = CartStateStore(history_size=3)
        for i in range(5):
            store.notify(f"n{i}")

        assert [n.title for n in store.notifications] == ["n2", "n3", "n4"]

    def test_toggle_open(self):
        store = CartStateStore()
        store.toggle_open()
        assert store.state.is_open
