"""
Order fulfillment pipeline tests: allocation, acceptance and rejection.
"""

from decimal import Decimal

import pytest

from unitrack.errors import InsufficientStock, InvalidTransition, NotFound, OrderNotFound, Unauthorized, ValidationError
from unitrack.models import Item, ItemStatus, LedgerEntry, Order, OrderItem, OrderStatus, Product, TransactionType
from unitrack.services import item_service, order_service
from unitrack.services.order_service import OrderLine


def _statuses(db_session, product_id):
    return {
        item.serial_id: item.status
        for item in db_session.query(Item).filter_by(product_id=product_id).order_by(Item.serial_id)
    }


class TestPlaceOrder:
    def test_allocates_lowest_serials(self, db_session, stocked_product, customer, line_price):
        order_id = order_service.process_order(
            user_id=customer.id,
            lines=[OrderLine(product_id=stocked_product.id, quantity=2, price=line_price)],
        )

        order = db_session.get(Order, order_id)
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("1999.98")
        assert order.order_number.startswith("ORD-")
        assert [line.item_serial for line in order.lines] == ["LP-HE-01", "LP-HE-02"]
        assert all(line.price == line_price for line in order.lines)

        assert _statuses(db_session, stocked_product.id) == {
            "LP-HE-01": ItemStatus.SOLD,
            "LP-HE-02": ItemStatus.SOLD,
            "LP-HE-03": ItemStatus.AVAILABLE,
        }

        sales = db_session.query(LedgerEntry).filter_by(order_id=order_id).all()
        assert len(sales) == 2
        assert {s.transaction_type for s in sales} == {TransactionType.SALE}
        assert {s.user_id for s in sales} == {customer.id}

    def test_skips_units_that_are_not_available(self, db_session, stocked_product, customer, line_price):
        db_session.query(Item).filter_by(serial_id="LP-HE-01").update({"status": ItemStatus.DAMAGED})
        db_session.commit()

        order_id = order_service.process_order(
            user_id=customer.id,
            lines=[{"product_id": stocked_product.id, "quantity": 1, "price": "999.99"}],
        )

        assert [line.item_serial for line in db_session.get(Order, order_id).lines] == ["LP-HE-02"]

    def test_shortfall_persists_nothing(self, db_session, stocked_product, customer, line_price):
        ledger_before = db_session.query(LedgerEntry).count()

        with pytest.raises(InsufficientStock) as excinfo:
            order_service.process_order(
                user_id=customer.id,
                lines=[(stocked_product.id, 4, line_price)],
            )

        assert excinfo.value.available == 3
        assert excinfo.value.requested == 4
        assert "Laptop Pro" in excinfo.value.message
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert db_session.query(LedgerEntry).count() == ledger_before
        assert set(_statuses(db_session, stocked_product.id).values()) == {ItemStatus.AVAILABLE}

    def test_shortfall_on_second_line_rolls_back_first(
        self, db_session, stocked_product, electronics, warehouse, customer, line_price
    ):
        mouse = Product(name="Wireless Mouse", product_type_id=electronics.id)
        db_session.add(mouse)
        db_session.commit()
        item_service.add_stock(product_id=mouse.id, quantity=1, actor_id=warehouse.id)

        with pytest.raises(InsufficientStock):
            order_service.process_order(
                user_id=customer.id,
                lines=[
                    (stocked_product.id, 2, line_price),
                    (mouse.id, 2, "19.99"),
                ],
            )

        assert set(_statuses(db_session, stocked_product.id).values()) == {ItemStatus.AVAILABLE}
        assert db_session.query(Order).count() == 0

    def test_staff_can_order_for_customer(self, db_session, stocked_product, admin, customer, line_price):
        order_id = order_service.process_order(
            user_id=customer.id,
            lines=[(stocked_product.id, 1, line_price)],
            actor_id=admin.id,
        )

        order = db_session.get(Order, order_id)
        assert order.user_id == customer.id
        entry = db_session.query(LedgerEntry).filter_by(order_id=order_id).one()
        assert entry.user_id == admin.id

    def test_warehouse_orders_for_customer_without_orders_create(
        self, db_session, stocked_product, warehouse, customer, line_price,
    ):
        order_id = order_service.process_order(
            user_id=customer.id, lines=[(stocked_product.id, 1, line_price)], actor_id=warehouse.id,
        )

        assert db_session.get(Order, order_id).user_id == customer.id

    def test_customer_cannot_order_for_another_customer(
        self, db_session, stocked_product, customer, other_customer,
    ):
        with pytest.raises(Unauthorized):
            order_service.process_order(
                user_id=other_customer.id, lines=[(stocked_product.id, 2, "0.01")], actor_id=customer.id,
            )

        assert db_session.query(Order).count() == 0
        assert set(_statuses(db_session, stocked_product.id).values()) == {ItemStatus.AVAILABLE}

    def test_analyst_cannot_order(self, db_session, stocked_product, analyst, line_price):
        with pytest.raises(Unauthorized):
            order_service.process_order(user_id=analyst.id, lines=[(stocked_product.id, 1, line_price)])

    @pytest.mark.parametrize("lines", [
        [],
        [("x", 0, "1.00")],
        [("x", 1, "-1")],
        [("x", 1, "1.001")],
        ["not a line"],
    ])
    def test_validates_lines(self, db_session, stocked_product, customer, lines):
        with pytest.raises(ValidationError):
            order_service.process_order(user_id=customer.id, lines=lines)

    def test_unknown_product(self, db_session, stocked_product, customer):
        with pytest.raises(NotFound):
            order_service.process_order(user_id=customer.id, lines=[("missing", 1, "1.00")])


class TestAcceptAndReject:
    @pytest.fixture
    def order_id(self, stocked_product, customer, line_price):
        return order_service.process_order(
            user_id=customer.id, lines=[(stocked_product.id, 2, line_price)],
        )

    def test_accept_leaves_items_sold(self, db_session, stocked_product, order_id, warehouse):
        before = _statuses(db_session, stocked_product.id)

        order = order_service.complete_order(order_id=order_id, actor_id=warehouse.id)

        assert order.status == OrderStatus.DELIVERED
        assert _statuses(db_session, stocked_product.id) == before

    def test_reject_marks_units_unavailable(self, db_session, stocked_product, order_id, warehouse):
        order = order_service.reject_order(order_id=order_id, actor_id=warehouse.id, reason="Payment failed")

        assert order.status == OrderStatus.REJECTED
        assert _statuses(db_session, stocked_product.id) == {
            "LP-HE-01": ItemStatus.UNAVAILABLE,
            "LP-HE-02": ItemStatus.UNAVAILABLE,
            "LP-HE-03": ItemStatus.AVAILABLE,
        }

        rejections = db_session.query(LedgerEntry).filter_by(
            order_id=order_id, transaction_type=TransactionType.REJECTION
        ).all()
        assert len(rejections) == 2
        assert all(r.notes == f"Order {order.order_number} rejected: Payment failed" for r in rejections)
        assert all(r.user_id == warehouse.id for r in rejections)

    def test_reject_requires_reason(self, db_session, order_id, warehouse):
        with pytest.raises(ValidationError):
            order_service.reject_order(order_id=order_id, actor_id=warehouse.id, reason="")
        assert db_session.get(Order, order_id).status == OrderStatus.PENDING

    def test_only_pending_orders_change(self, db_session, order_id, warehouse):
        order_service.complete_order(order_id=order_id, actor_id=warehouse.id)

        with pytest.raises(InvalidTransition):
            order_service.reject_order(order_id=order_id, actor_id=warehouse.id, reason="too late")
        with pytest.raises(InvalidTransition):
            order_service.complete_order(order_id=order_id, actor_id=warehouse.id)

    def test_customer_cannot_accept(self, db_session, order_id, customer):
        with pytest.raises(Unauthorized):
            order_service.complete_order(order_id=order_id, actor_id=customer.id)

    def test_unknown_order(self, db_session, warehouse, setup_roles):
        with pytest.raises(OrderNotFound):
            order_service.complete_order(order_id="missing", actor_id=warehouse.id)


def test_order_reject_scenario(db_session, stocked_product, customer, warehouse, line_price):
    """Three units; order two; reject; the third stays available."""
    order_id = order_service.process_order(
        user_id=customer.id, lines=[(stocked_product.id, 2, line_price)],
    )
    order_service.reject_order(order_id=order_id, actor_id=warehouse.id, reason="Out of delivery area")

    statuses = _statuses(db_session, stocked_product.id)
    assert statuses["LP-HE-01"] == ItemStatus.UNAVAILABLE
    assert statuses["LP-HE-02"] == ItemStatus.UNAVAILABLE
    assert statuses["LP-HE-03"] == ItemStatus.AVAILABLE

    types = [
        e.transaction_type
        for e in db_session.query(LedgerEntry).filter_by(item_serial="LP-HE-01").order_by(LedgerEntry.created_at)
    ]
    assert sorted(types) == sorted([TransactionType.INVENTORY_ADDITION, TransactionType.SALE, TransactionType.REJECTION])


class TestOrderVisibility:
    @pytest.fixture
    def order_id(self, stocked_product, customer, line_price):
        return order_service.process_order(user_id=customer.id, lines=[(stocked_product.id, 1, line_price)])

    def test_owner_and_staff_can_read(self, db_session, order_id, customer, warehouse):
        assert order_service.get_order_for_actor(order_id, customer.id).id == order_id
        assert order_service.get_order_for_actor(order_id, warehouse.id).id == order_id

    def test_other_customer_cannot_read(self, db_session, order_id, other_customer):
        with pytest.raises(Unauthorized):
            order_service.get_order_for_actor(order_id, other_customer.id)

    def test_unknown_order(self, db_session, customer):
        with pytest.raises(OrderNotFound):
            order_service.get_order_for_actor("missing", customer.id)
