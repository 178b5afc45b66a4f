from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from inventory_app.errors import (
    EmptyOrder, InfrastructureError, InsufficientStock, InvalidPrice, InvalidQuantity,
    OrderNotFound, OrderNumberConflict, ProductNotFound, ValidationError,
)
from inventory_app.models.inventory_history import InventoryHistory
from inventory_app.models.order import Order, OrderItem
from inventory_app.services import inventory_history, orders as orders_service
from inventory_app.services import products as products_service
from inventory_app.services.orders import OrderLineRequest


def _stock(db, product_id, user):
    return products_service.get_owned(db, product_id, user).quantity


def _order_entries(db, user):
    return inventory_history.list_history_by_action(db, "ORDER", user)


class TestPlaceOrder:
    def test_single_line(self, db, user, make_product):
        product = make_product(sku="A1", price=Decimal("5.00"), quantity=10)

        order = orders_service.place_order(db, [OrderLineRequest(product.id, 3)], user)

        assert order.order_number.startswith("ORD-")
        assert len(order.order_number) == 12
        assert order.status == "PENDING"
        assert order.user_id == user.id
        assert order.total_amount == Decimal("15.00")
        assert len(order.items) == 1
        item = order.items[0]
        assert item.product_id == product.id
        assert item.quantity == 3
        assert item.unit_price == Decimal("5.00")
        assert item.total_price == Decimal("15.00")

        assert _stock(db, product.id, user) == 7
        entries = _order_entries(db, user)
        assert len(entries) == 1
        assert (entries[0].previous_quantity, entries[0].new_quantity) == (10, 7)
        assert entries[0].description == f"Заказ {order.order_number}: списано 3 шт."

    def test_total_is_exact_sum_of_lines(self, db, user, make_product):
        a = make_product(sku="A1", price=Decimal("0.10"), quantity=100)
        b = make_product(sku="B2", name="Сахар", price=Decimal("0.20"), quantity=100)

        order = orders_service.place_order(
            db, [OrderLineRequest(a.id, 3), OrderLineRequest(b.id, 7)], user
        )

        assert order.total_amount == Decimal("1.70")
        assert sum(i.total_price for i in order.items) == order.total_amount

    def test_client_price_is_kept(self, db, user, make_product):
        product = make_product(price=Decimal("5.00"))

        order = orders_service.place_order(
            db, [OrderLineRequest(product.id, 2, unit_price=Decimal("4.50"))], user
        )

        assert order.items[0].unit_price == Decimal("4.50")
        assert order.total_amount == Decimal("9.00")

    def test_price_snapshot_survives_product_update(self, db, user, make_product):
        product = make_product(price=Decimal("5.00"))
        order = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        products_service.update_product(db, product.id, {
            "sku": "A1", "name": "Молоко", "price": Decimal("9.99"), "quantity": 9,
        }, user)

        order = orders_service.get_order(db, order.id, user)
        assert order.items[0].unit_price == Decimal("5.00")
        assert order.total_amount == Decimal("5.00")

    def test_same_product_on_several_lines(self, db, user, make_product):
        product = make_product(quantity=10)

        order = orders_service.place_order(
            db, [OrderLineRequest(product.id, 2), OrderLineRequest(product.id, 3)], user
        )

        assert len(order.items) == 2
        assert _stock(db, product.id, user) == 5
        entries = _order_entries(db, user)
        assert len(entries) == 1
        assert (entries[0].previous_quantity, entries[0].new_quantity) == (10, 5)

    def test_several_lines_checked_against_total(self, db, user, make_product):
        product = make_product(quantity=4)

        with pytest.raises(InsufficientStock) as exc_info:
            orders_service.place_order(
                db, [OrderLineRequest(product.id, 3), OrderLineRequest(product.id, 2)], user
            )

        assert exc_info.value.available == 4
        assert exc_info.value.requested == 5
        assert _stock(db, product.id, user) == 4


class TestPlaceOrderRejected:
    def test_empty(self, db, user):
        with pytest.raises(EmptyOrder):
            orders_service.place_order(db, [], user)
        assert db.query(Order).count() == 0

    def test_unknown_product(self, db, user, make_product):
        product = make_product()
        with pytest.raises(ProductNotFound):
            orders_service.place_order(
                db, [OrderLineRequest(product.id, 1), OrderLineRequest(99999, 1)], user
            )
        assert _stock(db, product.id, user) == 10

    def test_missing_product_id(self, db, user):
        with pytest.raises(ProductNotFound):
            orders_service.place_order(db, [OrderLineRequest(None, 1)], user)

    def test_foreign_product(self, db, user, other_user, make_product):
        foreign = make_product(owner=other_user)
        with pytest.raises(ProductNotFound):
            orders_service.place_order(db, [OrderLineRequest(foreign.id, 1)], user)
        assert _stock(db, foreign.id, other_user) == 10

    @pytest.mark.parametrize("quantity", [0, -2, None])
    def test_invalid_quantity(self, db, user, make_product, quantity):
        product = make_product()
        with pytest.raises(InvalidQuantity):
            orders_service.place_order(db, [OrderLineRequest(product.id, quantity)], user)

    def test_insufficient_stock_changes_nothing(self, db, user, make_product):
        milk = make_product(sku="A1", quantity=10)
        sugar = make_product(sku="B2", name="Сахар", quantity=2)

        with pytest.raises(InsufficientStock) as exc_info:
            orders_service.place_order(
                db, [OrderLineRequest(milk.id, 5), OrderLineRequest(sugar.id, 3)], user
            )

        err = exc_info.value
        assert (err.product_name, err.available, err.requested) == ("Сахар", 2, 3)
        assert "Недостаточно товара 'Сахар'" in err.message
        assert _stock(db, milk.id, user) == 10
        assert _stock(db, sugar.id, user) == 2
        assert db.query(Order).count() == 0
        assert db.query(OrderItem).count() == 0
        assert _order_entries(db, user) == []

    def test_negative_unit_price(self, db, user, make_product):
        product = make_product()
        with pytest.raises(InvalidPrice):
            orders_service.place_order(
                db, [OrderLineRequest(product.id, 1, unit_price=Decimal("-1"))], user
            )
        assert _stock(db, product.id, user) == 10

    def test_database_failure_rolls_back_everything(self, db, user, make_product, monkeypatch):
        product = make_product(quantity=10)

        def broken_record(*args, **kwargs):
            raise OperationalError("INSERT INTO inventory_history", {}, Exception("disk I/O error"))

        monkeypatch.setattr(inventory_history, "record", broken_record)

        with pytest.raises(InfrastructureError):
            orders_service.place_order(db, [OrderLineRequest(product.id, 3)], user)

        assert _stock(db, product.id, user) == 10
        assert db.query(Order).count() == 0
        assert db.query(InventoryHistory).count() == 1


class TestOrderNumber:
    def test_numbers_are_unique(self, db, user, make_product):
        product = make_product(quantity=10)
        numbers = {
            orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user).order_number
            for _ in range(5)
        }
        assert len(numbers) == 5

    def test_taken_number_is_a_conflict(self, db, user, make_product, monkeypatch):
        product = make_product(quantity=10)
        first = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        monkeypatch.setattr(orders_service, "make_order_number", lambda: first.order_number)
        with pytest.raises(OrderNumberConflict):
            orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)
        assert _stock(db, product.id, user) == 9

    def test_retry_on_taken_number(self, db, user, make_product, monkeypatch):
        product = make_product(quantity=10)
        first = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        numbers = iter([first.order_number, "ORD-0000BEEF"])
        monkeypatch.setattr(orders_service, "make_order_number", lambda: next(numbers))

        order = orders_service.place_order_with_retry(db, [OrderLineRequest(product.id, 2)], user)

        assert order.order_number == "ORD-0000BEEF"
        assert _stock(db, product.id, user) == 7
        assert db.query(Order).count() == 2

    def test_retry_when_number_is_taken_at_insert(self, db, user, make_product, monkeypatch):
        product = make_product(quantity=10)
        first = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        # пропускаем предварительную проверку: дубль ловит уникальный индекс
        numbers = iter([first.order_number, "ORD-0000CAFE"])
        monkeypatch.setattr(orders_service, "_new_order_number", lambda db: next(numbers))

        order = orders_service.place_order_with_retry(db, [OrderLineRequest(product.id, 2)], user)

        assert order.order_number == "ORD-0000CAFE"
        assert _stock(db, product.id, user) == 7
        assert db.query(Order).count() == 2

    def test_number_taken_at_insert_is_a_conflict(self, db, user, make_product, monkeypatch):
        product = make_product(quantity=10)
        first = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        monkeypatch.setattr(orders_service, "_new_order_number", lambda db: first.order_number)
        with pytest.raises(OrderNumberConflict) as exc_info:
            orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        assert exc_info.value.order_number == first.order_number
        assert _stock(db, product.id, user) == 9

    def test_retry_gives_up(self, db, user, make_product, monkeypatch):
        product = make_product(quantity=10)
        first = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        monkeypatch.setattr(orders_service, "make_order_number", lambda: first.order_number)
        with pytest.raises(OrderNumberConflict):
            orders_service.place_order_with_retry(db, [OrderLineRequest(product.id, 1)], user, attempts=2)
        assert db.query(Order).count() == 1


class TestStatus:
    def test_any_status_is_accepted(self, db, user, make_product):
        product = make_product()
        order = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        updated = orders_service.update_order_status(db, order.id, "SHIPPED", user)
        assert updated.status == "SHIPPED"

        updated = orders_service.update_order_status(db, order.id, "на упаковке", user)
        assert updated.status == "на упаковке"
        assert _stock(db, product.id, user) == 9

    def test_blank_status(self, db, user, make_product):
        product = make_product()
        order = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)
        with pytest.raises(ValidationError):
            orders_service.update_order_status(db, order.id, "   ", user)

    def test_foreign_order(self, db, user, other_user, make_product):
        product = make_product(owner=other_user)
        foreign = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], other_user)

        with pytest.raises(OrderNotFound):
            orders_service.update_order_status(db, foreign.id, "CANCELLED", user)
        assert orders_service.get_order(db, foreign.id, other_user).status == "PENDING"


class TestQueries:
    def test_reads_are_repeatable(self, db, user, make_product):
        product = make_product()
        order = orders_service.place_order(db, [OrderLineRequest(product.id, 2)], user)

        first = orders_service.get_order(db, order.id, user)
        second = orders_service.get_order(db, order.id, user)
        assert (first.order_number, first.total_amount, first.status) == (
            second.order_number, second.total_amount, second.status
        )
        assert _stock(db, product.id, user) == 8

    def test_owner_isolation(self, db, user, other_user, make_product):
        mine = make_product(owner=user)
        theirs = make_product(owner=other_user)
        own_order = orders_service.place_order(db, [OrderLineRequest(mine.id, 1)], user)
        foreign = orders_service.place_order(db, [OrderLineRequest(theirs.id, 1)], other_user)

        assert [o.id for o in orders_service.list_orders(db, user)] == [own_order.id]
        assert orders_service.get_order(db, foreign.id, user) is None

    def test_by_status_and_count(self, db, user, make_product):
        product = make_product()
        first = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)
        orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)
        orders_service.update_order_status(db, first.id, "SHIPPED", user)

        assert [o.id for o in orders_service.list_orders_by_status(db, "SHIPPED", user)] == [first.id]
        assert orders_service.count_orders_by_status(db, user, "PENDING") == 1
        assert orders_service.count_orders_by_status(db, user, "DELIVERED") == 0

    def test_recent(self, db, user, make_product):
        product = make_product()
        order = orders_service.place_order(db, [OrderLineRequest(product.id, 1)], user)

        assert [o.id for o in orders_service.list_recent_orders(db, user, days=1)] == [order.id]
