"""
Pytest fixtures for unitrack backend tests.

Provides test database setup, role/permission seeding, actor profiles,
a stocked product and the test client.
"""

from decimal import Decimal

import pytest
from unitrack import create_app
from unitrack.config import TestingConfig
from unitrack.extensions import db
from unitrack.models import Product, ProductType, Profile
from unitrack.services import item_service, permission_service, pricing_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def notifications(app):
    """Capture (level, message) notifications instead of logging them."""
    sent = []
    previous = app.config.get("NOTIFIER")
    app.config["NOTIFIER"] = lambda level, message: sent.append((level, message))
    yield sent
    app.config["NOTIFIER"] = previous


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup default roles and permissions."""
    permission_service.create_default_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()
    db_session.commit()


def _profile(db_session, name, email, role):
    profile = Profile(name=name, email=email, role=role)
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture(scope='function')
def admin(db_session, setup_roles):
    return _profile(db_session, "Alex Admin", "admin@unitrack.local", "admin")


@pytest.fixture(scope='function')
def warehouse(db_session, setup_roles):
    return _profile(db_session, "Wren Warehouse", "warehouse@unitrack.local", "warehouse")


@pytest.fixture(scope='function')
def customer(db_session, setup_roles):
    return _profile(db_session, "Casey Customer", "casey@example.com", "customer")


@pytest.fixture(scope='function')
def other_customer(db_session, setup_roles):
    return _profile(db_session, "Morgan Customer", "morgan@example.com", "customer")


@pytest.fixture(scope='function')
def analyst(db_session, setup_roles):
    return _profile(db_session, "Avery Analyst", "analyst@unitrack.local", "analyst")


@pytest.fixture(scope='function')
def electronics(db_session):
    product_type = ProductType(name="Home Electronics", description="Consumer devices")
    db_session.add(product_type)
    db_session.commit()
    return product_type


@pytest.fixture(scope='function')
def product(db_session, electronics, admin):
    """'Laptop Pro' priced at 999.99 with no units yet."""
    product = Product(name="Laptop Pro", product_type_id=electronics.id, quantity=0, is_active=True)
    db_session.add(product)
    db_session.commit()
    pricing_service.set_price(product_id=product.id, amount="999.99", actor_id=admin.id)
    return product


@pytest.fixture(scope='function')
def stocked_product(product, warehouse):
    """'Laptop Pro' with three available units LP-HE-01..03."""
    item_service.add_stock(product_id=product.id, quantity=3, actor_id=warehouse.id)
    return product


@pytest.fixture(scope='function')
def line_price():
    return Decimal("999.99")
