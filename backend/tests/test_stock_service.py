import pytest

from unitrack.errors import NotFound, ValidationError
from unitrack.models import ItemStatus, Product
from unitrack.services import item_service, location_service, order_service, stock_service


def test_counts_follow_item_rows(db_session, stocked_product, customer, warehouse, line_price):
    order_id = order_service.process_order(user_id=customer.id, lines=[(stocked_product.id, 2, line_price)])
    order_service.reject_order(order_id=order_id, actor_id=warehouse.id, reason="Address invalid")

    counts = stock_service.get_status_counts(stocked_product.id)

    assert counts == {
        ItemStatus.AVAILABLE: 1,
        ItemStatus.SOLD: 0,
        ItemStatus.DAMAGED: 0,
        ItemStatus.IN_REPAIR: 0,
        ItemStatus.UNAVAILABLE: 2,
    }
    assert db_session.get(Product, stocked_product.id).quantity == 1


def test_projection_ignores_cached_quantity(db_session, stocked_product):
    product = db_session.get(Product, stocked_product.id)
    product.quantity = 999
    db_session.commit()

    summary = stock_service.get_product_stock(stocked_product.id)

    assert summary["available"] == 3
    assert summary["total_items"] == 3
    assert summary["cached_quantity"] == 999

    assert stock_service.sync_cached_quantity(stocked_product.id) == 3
    db_session.commit()
    assert db_session.get(Product, stocked_product.id).quantity == 3


def test_product_stock_includes_location(db_session, stocked_product, warehouse):
    assert stock_service.get_product_stock(stocked_product.id)["location"] is None

    location_service.relocate(product_id=stocked_product.id, target_shelf="A1", target_slot="01", actor_id=warehouse.id)

    assert stock_service.get_product_stock(stocked_product.id)["location"]["code"] == "A1-01"


def test_unknown_product(db_session):
    with pytest.raises(NotFound):
        stock_service.get_product_stock("missing")


def test_overview_lists_products_without_items(db_session, stocked_product, electronics):
    db_session.add(Product(name="Camera Kit", product_type_id=electronics.id))
    db_session.commit()

    overview = stock_service.get_inventory_overview()

    assert [row["name"] for row in overview] == ["Camera Kit", "Laptop Pro"]
    assert overview[0]["total_items"] == 0
    assert overview[1]["counts"][ItemStatus.AVAILABLE] == 3


def test_shelf_occupancy_groups_by_product(db_session, stocked_product, electronics, warehouse):
    mouse = Product(name="Wireless Mouse", product_type_id=electronics.id)
    db_session.add(mouse)
    db_session.commit()
    item_service.add_stock(product_id=mouse.id, quantity=2, actor_id=warehouse.id)

    location_service.relocate(product_id=stocked_product.id, target_shelf="A1", target_slot="01", actor_id=warehouse.id)
    location_service.relocate(product_id=mouse.id, target_shelf="A1", target_slot="01", actor_id=warehouse.id)

    shelves = stock_service.get_shelf_occupancy()

    assert len(shelves) == 1
    assert shelves[0]["shelf_number"] == "A1"
    (slot,) = shelves[0]["slots"]
    assert slot["item_count"] == 5
    assert [(p["name"], p["item_count"]) for p in slot["products"]] == [("Laptop Pro", 3), ("Wireless Mouse", 2)]


def test_low_stock_threshold_is_inclusive(db_session, stocked_product, electronics, warehouse):
    mouse = Product(name="Wireless Mouse", product_type_id=electronics.id)
    db_session.add(mouse)
    db_session.commit()
    item_service.add_stock(product_id=mouse.id, quantity=5, actor_id=warehouse.id)

    low = stock_service.get_low_stock_products(threshold=3)
    assert [row["name"] for row in low] == ["Laptop Pro"]

    assert stock_service.get_low_stock_products(threshold=2) == []


def test_low_stock_default_threshold(app, db_session, stocked_product):
    assert app.config["LOW_STOCK_THRESHOLD"] >= 3
    assert [row["name"] for row in stock_service.get_low_stock_products()] == ["Laptop Pro"]


def test_low_stock_skips_inactive_products(db_session, stocked_product):
    product = db_session.get(Product, stocked_product.id)
    product.is_active = False
    db_session.commit()

    assert stock_service.get_low_stock_products(threshold=10) == []


@pytest.mark.parametrize("threshold", [-1, "3", True])
def test_low_stock_rejects_bad_threshold(db_session, threshold):
    with pytest.raises(ValidationError):
        stock_service.get_low_stock_products(threshold=threshold)
