import pytest

from unitrack.errors import AlreadyResolved, InvalidTransition, Unauthorized, ValidationError
from unitrack.models import Item, ItemStatus, LedgerEntry, Order, OrderStatus, RefundStatus, TransactionType
from unitrack.services import order_service, refund_service


@pytest.fixture
def delivered_order(stocked_product, customer, warehouse, line_price):
    order_id = order_service.process_order(
        user_id=customer.id, lines=[(stocked_product.id, 2, line_price)],
    )
    order_service.complete_order(order_id=order_id, actor_id=warehouse.id)
    return order_id


@pytest.fixture
def refund_request(delivered_order, customer):
    return refund_service.create_refund_request(
        order_id=delivered_order,
        user_id=customer.id,
        description="Arrived with a dead pixel",
        photo_url="https://img.example.com/refunds/1.jpg",
    )


def test_create_refund_request(db_session, refund_request, customer):
    assert refund_request.status == RefundStatus.PENDING
    assert refund_request.user_id == customer.id
    assert refund_request.photo_url.endswith("1.jpg")


def test_only_owner_can_request(db_session, delivered_order, other_customer):
    with pytest.raises(Unauthorized):
        refund_service.create_refund_request(
            order_id=delivered_order, user_id=other_customer.id, description="not mine",
        )


def test_pending_order_cannot_be_refunded(db_session, stocked_product, customer, line_price):
    order_id = order_service.process_order(user_id=customer.id, lines=[(stocked_product.id, 1, line_price)])

    with pytest.raises(InvalidTransition):
        refund_service.create_refund_request(order_id=order_id, user_id=customer.id, description="changed my mind")


def test_one_pending_request_per_order(db_session, refund_request, delivered_order, customer):
    with pytest.raises(InvalidTransition):
        refund_service.create_refund_request(order_id=delivered_order, user_id=customer.id, description="again")


def test_description_required(db_session, delivered_order, customer):
    with pytest.raises(ValidationError):
        refund_service.create_refund_request(order_id=delivered_order, user_id=customer.id, description=" ")


def test_approve_sends_items_to_repair(db_session, refund_request, delivered_order, warehouse):
    refund = refund_service.process_refund(
        refund_request_id=refund_request.id, actor_id=warehouse.id, notes="Courier confirmed damage",
    )

    assert refund.status == RefundStatus.APPROVED
    assert refund.reviewed_by == warehouse.id
    assert refund.reviewed_at is not None
    assert refund.admin_notes == "Courier confirmed damage"

    order = db_session.get(Order, delivered_order)
    assert order.status == OrderStatus.REFUNDED

    serials = [line.item_serial for line in order.lines]
    statuses = {db_session.get(Item, s).status for s in serials}
    assert statuses == {ItemStatus.IN_REPAIR}

    refunds = db_session.query(LedgerEntry).filter_by(
        order_id=delivered_order, transaction_type=TransactionType.REFUND
    ).all()
    assert sorted(r.item_serial for r in refunds) == serials


def test_approve_twice(db_session, refund_request, warehouse):
    refund_service.process_refund(refund_request_id=refund_request.id, actor_id=warehouse.id)

    with pytest.raises(AlreadyResolved):
        refund_service.process_refund(refund_request_id=refund_request.id, actor_id=warehouse.id)
    with pytest.raises(AlreadyResolved):
        refund_service.reject_refund(refund_request_id=refund_request.id, actor_id=warehouse.id, notes="no")


def test_reject_leaves_order_and_items(db_session, refund_request, delivered_order, warehouse):
    refund = refund_service.reject_refund(
        refund_request_id=refund_request.id, actor_id=warehouse.id, notes="No damage visible in photo",
    )

    assert refund.status == RefundStatus.REJECTED
    assert refund.admin_notes == "No damage visible in photo"

    order = db_session.get(Order, delivered_order)
    assert order.status == OrderStatus.DELIVERED
    assert {line.item.status for line in order.lines} == {ItemStatus.SOLD}


def test_reject_requires_notes(db_session, refund_request, warehouse):
    with pytest.raises(ValidationError):
        refund_service.reject_refund(refund_request_id=refund_request.id, actor_id=warehouse.id, notes="")


def test_customer_cannot_approve(db_session, refund_request, customer):
    with pytest.raises(Unauthorized):
        refund_service.process_refund(refund_request_id=refund_request.id, actor_id=customer.id)

    assert refund_service.get_refund_request(refund_request.id).status == RefundStatus.PENDING


def test_new_request_after_rejection(db_session, refund_request, delivered_order, customer, warehouse):
    refund_service.reject_refund(refund_request_id=refund_request.id, actor_id=warehouse.id, notes="Need photo")

    second = refund_service.create_refund_request(
        order_id=delivered_order, user_id=customer.id, description="Photo attached",
    )

    assert [r.id for r in refund_service.list_refund_requests(status=RefundStatus.PENDING)] == [second.id]
