import pytest
from sqlalchemy.exc import OperationalError

from storefront.catalog.models import Product
from storefront.orders.direct_order import DirectOrderService
from storefront.orders.models import Order
from storefront.orders.repository import OrderRepository


@pytest.fixture()
def service(db):
    return DirectOrderService(db)


def _stock(db, product_id):
    db.expire_all()
    return db.get(Product, product_id).stock


class TestPlaceDirectOrder:
    def test_places_order_and_decrements_stock(self, service, db, identity, product):
        result = service.place(identity, product.id, size="M", color="red", quantity=2)

        assert result.success
        order = db.get(Order, result.order_id)
        # on sale: 2 x 80, no shipping on this path
        assert order.total == 16000
        item = order.items[0]
        assert (item.price, item.quantity, item.vendor_id) == (8000, 2, "vendor-a")
        assert (item.size, item.color) == ("M", "red")
        assert _stock(db, product.id) == 18

    def test_success_message_uses_short_order_number(self, service, identity, product):
        result = service.place(identity, product.id)

        assert result.message.startswith(f"Order #{result.order_id[-8:].upper()} placed successfully!")

    def test_regular_price_when_not_on_sale(self, service, db, identity, product_factory):
        product_factory(id="prod-lamp", price=300.0, discount_price=250.0, is_sale=False)

        result = service.place(identity, "prod-lamp")

        assert db.get(Order, result.order_id).items[0].price == 30000

    def test_below_minimum_is_rejected_without_stock_change(self, service, db, identity, product_factory):
        product_factory(id="prod-bulk", min_order_quantity=5, stock=50)

        result = service.place(identity, "prod-bulk", quantity=2)

        assert not result.success
        assert result.error_code == "validation-error"
        assert result.error == "Minimum order quantity is 5. Please increase your quantity."
        assert _stock(db, "prod-bulk") == 50
        assert db.query(Order).count() == 0

    def test_above_maximum_is_rejected(self, service, identity, product_factory):
        product_factory(id="prod-limited", max_order_quantity=2)

        result = service.place(identity, "prod-limited", quantity=3)

        assert result.error == "Maximum order quantity is 2. Please reduce your quantity."

    def test_insufficient_stock(self, service, db, identity, plain_product):
        result = service.place(identity, plain_product.id, quantity=6)

        assert not result.success
        assert result.error_code == "insufficient-stock"
        assert result.error == "Insufficient stock available"
        assert _stock(db, plain_product.id) == 5
        assert db.query(Order).count() == 0

    def test_whole_stock_can_be_bought(self, service, db, identity, plain_product):
        assert service.place(identity, plain_product.id, quantity=5).success
        assert _stock(db, plain_product.id) == 0

    def test_unknown_product(self, service, identity):
        result = service.place(identity, "missing")

        assert result.error_code == "not-found"

    def test_requires_identity(self, service, db, product):
        result = service.place(None, product.id)

        assert result.error_code == "auth-required"
        assert result.error == "Please sign in to place an order"
        assert _stock(db, product.id) == 20

    def test_lost_stock_race_rolls_back_order(self, service, db, identity, plain_product, monkeypatch):
        # Stock is sold out by another request after the availability check
        monkeypatch.setattr(OrderRepository, "decrement_stock", lambda self, product_id, quantity: False)

        result = service.place(identity, plain_product.id, quantity=2)

        assert result.error_code == "insufficient-stock"
        assert db.query(Order).count() == 0
        assert _stock(db, plain_product.id) == 5

    def test_persistence_failure_is_reported(self, service, db, identity, product, monkeypatch):
        def failing_decrement(self, product_id, quantity):
            raise OperationalError("UPDATE products", {}, Exception("connection reset"))

        monkeypatch.setattr(OrderRepository, "decrement_stock", failing_decrement)

        result = service.place(identity, product.id)

        assert result.error_code == "order-creation-failed"
        assert result.error == "Failed to place order. Please try again."
        assert db.query(Order).count() == 0
        assert _stock(db, product.id) == 20
