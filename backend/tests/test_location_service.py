"""
Location transfer tests: whole-batch relocation and slot resolution.
"""

import pytest
from sqlalchemy import false

from unitrack.errors import NotFound, Unauthorized, ValidationError
from unitrack.extensions import db
from unitrack.models import Item, LedgerEntry, Location, TransactionType
from unitrack.services import location_service


def _location_codes(db_session, product_id):
    items = db_session.query(Item).filter_by(product_id=product_id)
    return {item.location.code if item.location else None for item in items}


def test_relocate_moves_every_unit(db_session, stocked_product, warehouse):
    moved = location_service.relocate(
        product_id=stocked_product.id, target_shelf="A1", target_slot="01", actor_id=warehouse.id,
    )

    assert moved == 3
    assert _location_codes(db_session, stocked_product.id) == {"A1-01"}

    entries = db_session.query(LedgerEntry).filter_by(transaction_type=TransactionType.LOCATION_CHANGE).all()
    assert len(entries) == 3
    target = location_service.get_location("A1", "01")
    assert {e.destination_location_id for e in entries} == {target.id}
    assert {e.source_location_id for e in entries} == {None}


def test_second_move_records_source(db_session, stocked_product, warehouse):
    location_service.relocate(product_id=stocked_product.id, target_shelf="A1", target_slot="01", actor_id=warehouse.id)
    first = location_service.get_location("A1", "01")

    location_service.relocate(product_id=stocked_product.id, target_shelf="c3", target_slot="12", actor_id=warehouse.id)
    second = location_service.get_location("C3", "12")

    assert _location_codes(db_session, stocked_product.id) == {"C3-12"}
    moves = db_session.query(LedgerEntry).filter_by(destination_location_id=second.id).all()
    assert {m.source_location_id for m in moves} == {first.id}


def test_relocate_to_current_slot_moves_nothing(db_session, stocked_product, warehouse):
    location_service.relocate(product_id=stocked_product.id, target_shelf="A1", target_slot="01", actor_id=warehouse.id)
    before = db_session.query(LedgerEntry).count()

    moved = location_service.relocate(
        product_id=stocked_product.id, target_shelf="A1", target_slot="01", actor_id=warehouse.id,
    )

    assert moved == 0
    assert db_session.query(LedgerEntry).count() == before
    assert db_session.query(Location).count() == 1


def test_default_capacity(app, db_session, stocked_product, warehouse):
    location_service.relocate(product_id=stocked_product.id, target_shelf="A1", target_slot="02", actor_id=warehouse.id)

    assert location_service.get_location("A1", "02").capacity == app.config["DEFAULT_LOCATION_CAPACITY"]


def test_product_without_items(db_session, product, warehouse):
    with pytest.raises(NotFound):
        location_service.relocate(product_id=product.id, target_shelf="A1", target_slot="01", actor_id=warehouse.id)
    assert db_session.query(Location).count() == 0


def test_unknown_product(db_session, warehouse):
    with pytest.raises(NotFound):
        location_service.relocate(product_id="missing", target_shelf="A1", target_slot="01", actor_id=warehouse.id)


def test_inactive_slot(db_session, stocked_product, warehouse):
    db_session.add(Location(shelf_number="Z9", slot_number="99", capacity=5, is_active=False))
    db_session.commit()

    with pytest.raises(ValidationError):
        location_service.relocate(product_id=stocked_product.id, target_shelf="Z9", target_slot="99", actor_id=warehouse.id)
    assert _location_codes(db_session, stocked_product.id) == {None}


def test_customer_cannot_relocate(db_session, stocked_product, customer):
    with pytest.raises(Unauthorized):
        location_service.relocate(product_id=stocked_product.id, target_shelf="A1", target_slot="01", actor_id=customer.id)


def test_resolve_location_falls_back_when_creation_races(db_session, monkeypatch):
    winner = Location(shelf_number="B1", slot_number="04", capacity=10, is_active=True)
    db_session.add(winner)
    db_session.commit()
    winner_id = winner.id

    # The first lookup misses (the other writer has not committed yet from our point of view).
    real_query = db.session.query
    misses = {"left": 1}

    class MissOnce:
        def __init__(self, q):
            self._q = q

        def filter_by(self, **kwargs):
            if misses["left"]:
                misses["left"] -= 1
                return self._q.filter(false())
            return self._q.filter_by(**kwargs)

    def query(*entities):
        q = real_query(*entities)
        return MissOnce(q) if entities == (Location,) else q

    monkeypatch.setattr(db.session, "query", query)

    location = location_service.resolve_location("B1", "04")

    assert location.id == winner_id
    monkeypatch.undo()
    assert db_session.query(Location).count() == 1


def test_parse_location_code():
    assert location_service.parse_location_code("a1-01") == ("A1", "01")
    with pytest.raises(ValidationError):
        location_service.parse_location_code("A101")
