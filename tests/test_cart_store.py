import json

import pytest

from storefront.cart.cart_store import CartStore
from storefront.cart.schemas import Cart, CartLine
from storefront.errors import CacheUnavailable


def _cart(owner_id="user-1", quantity=2):
    return Cart(
        owner_id=owner_id,
        items=[
            CartLine(
                product_id="prod-1",
                name="Linen Shirt",
                unit_price=100,
                discount_unit_price=80,
                quantity=quantity,
                image_ref="https://cdn.example.com/shirt.jpg",
                size="M",
                color="red",
            )
        ],
    )


class TestCartStoreReadWrite:
    def test_set_then_get_round_trip(self, cart_store):
        assert cart_store.set("user-1", _cart())

        cart = cart_store.get("user-1")
        assert cart.owner_id == "user-1"
        assert cart.items[0].quantity == 2
        assert cart.items[0].discount_unit_price == 80

    def test_wire_format(self, cart_store, fake_redis):
        cart_store.set("user-1", _cart())

        payload = json.loads(fake_redis.data["cart-user-1"])
        assert payload["ownerId"] == "user-1"
        assert payload["items"][0] == {
            "id": "prod-1",
            "name": "Linen Shirt",
            "price": 100,
            "discountPrice": 80,
            "quantity": 2,
            "imageString": "https://cdn.example.com/shirt.jpg",
            "size": "M",
            "color": "red",
        }

    def test_optional_fields_are_omitted(self, cart_store, fake_redis):
        cart = Cart(owner_id="user-1", items=[CartLine(product_id="p", name="Mug", unit_price=45, quantity=1)])
        cart_store.set("user-1", cart)

        item = json.loads(fake_redis.data["cart-user-1"])["items"][0]
        assert "discountPrice" not in item
        assert "size" not in item
        assert "color" not in item

    def test_set_applies_ttl(self, cart_store, fake_redis):
        cart_store.set("user-1", _cart())
        assert fake_redis.ttls["cart-user-1"] == 3600

    def test_reads_legacy_user_id_key(self, cart_store, fake_redis):
        fake_redis.data["cart-user-1"] = json.dumps(
            {"userId": "user-1", "items": [{"id": "p", "name": "Mug", "price": 45, "quantity": 1, "imageString": ""}]}
        )
        assert cart_store.get("user-1").owner_id == "user-1"

    def test_missing_cart_is_none(self, cart_store):
        assert cart_store.get("nobody") is None

    def test_setting_empty_cart_deletes_record(self, cart_store, fake_redis):
        cart_store.set("user-1", _cart())
        cart_store.set("user-1", Cart(owner_id="user-1", items=[]))

        assert "cart-user-1" not in fake_redis.data
        assert cart_store.get("user-1") is None

    def test_stored_empty_cart_reads_as_missing(self, cart_store, fake_redis):
        fake_redis.data["cart-user-1"] = json.dumps({"ownerId": "user-1", "items": []})
        assert cart_store.get("user-1") is None

    def test_corrupt_payload_reads_as_missing(self, cart_store, fake_redis):
        fake_redis.data["cart-user-1"] = "{not json"
        assert cart_store.get("user-1") is None


class TestCartStoreDegradedCache:
    def test_get_failure_returns_none(self, cart_store, fake_redis):
        cart_store.set("user-1", _cart())
        fake_redis.fail_on.add("get")

        assert cart_store.get("user-1") is None
        result = cart_store.read("user-1")
        assert result.cart is None
        assert isinstance(result.error, CacheUnavailable)

    def test_set_failure_is_a_no_op(self, cart_store, fake_redis):
        fake_redis.fail_on.add("set")

        assert cart_store.set("user-1", _cart()) is False
        assert fake_redis.data == {}

    def test_delete_failure_keeps_cart(self, cart_store, fake_redis):
        cart_store.set("user-1", _cart())
        fake_redis.fail_on.add("delete")

        assert cart_store.delete("user-1") is False
        assert "cart-user-1" in fake_redis.data

    def test_no_client_behaves_like_unavailable_cache(self):
        store = CartStore(None)

        assert store.get("user-1") is None
        assert store.set("user-1", _cart()) is False
        assert store.delete("user-1") is False
        assert isinstance(store.mutate("user-1", lambda cart: cart).error, CacheUnavailable)

    def test_mutate_failure_reports_error(self, cart_store, fake_redis):
        fake_redis.fail_on.add("watch")

        result = cart_store.mutate("user-1", lambda cart: _cart())
        assert isinstance(result.error, CacheUnavailable)
        assert fake_redis.data == {}


class TestCartStoreMutate:
    def test_creates_cart(self, cart_store):
        result = cart_store.mutate("user-1", lambda cart: cart or _cart())

        assert result.error is None
        assert cart_store.get("user-1").items[0].product_id == "prod-1"

    def test_returning_empty_cart_deletes_record(self, cart_store, fake_redis):
        cart_store.set("user-1", _cart())

        def clear(cart):
            cart.items = []
            return cart

        result = cart_store.mutate("user-1", clear)
        assert result.cart is None
        assert "cart-user-1" not in fake_redis.data

    def test_concurrent_write_is_retried_not_lost(self, cart_store, fake_redis):
        cart_store.set("user-1", _cart(quantity=1))
        interfered = []

        def increment(cart):
            if not interfered:
                # Another request bumps the quantity between our read and our write
                interfered.append(True)
                cart_store.set("user-1", _cart(quantity=5))
            cart.items[0].quantity += 1
            return cart

        result = cart_store.mutate("user-1", increment)

        assert result.error is None
        assert cart_store.get("user-1").items[0].quantity == 6

    def test_gives_up_after_retries(self, cart_store):
        cart_store.set("user-1", _cart(quantity=1))

        def always_conflicting(cart):
            cart_store.set("user-1", _cart(quantity=3))
            return cart

        result = cart_store.mutate("user-1", always_conflicting)
        assert isinstance(result.error, CacheUnavailable)

    def test_mutation_exception_leaves_cart_untouched(self, cart_store):
        cart_store.set("user-1", _cart(quantity=2))

        def broken(cart):
            raise ValueError("boom")

        with pytest.raises(ValueError):
            cart_store.mutate("user-1", broken)
        assert cart_store.get("user-1").items[0].quantity == 2
