"""
Pytest fixtures for Larder backend tests.

Provides a fresh in-memory database per test, seeded users (one per role),
a location, a supplier, two items, and a purchase order factory.
"""

from decimal import Decimal

import pytest
from larder import create_app
from larder.extensions import db
from larder.models import InventoryItem, Location, StockLevel, Supplier, User
from larder.services import order_lifecycle, order_service


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'OVER_RECEIPT_POLICY': 'ALLOW',
        'DB_RETRY_BACKOFF': 0.0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


@pytest.fixture(scope='function')
def users(db_session):
    """One user per role: admin, manager, staff."""
    created = {
        "admin": User(name="Ada Admin", email="admin@larder.test", role="ADMIN"),
        "manager": User(name="Max Manager", email="manager@larder.test", role="MANAGER"),
        "staff": User(name="Sam Staff", email="staff@larder.test", role="STAFF"),
    }
    db_session.add_all(created.values())
    db_session.commit()
    return created


@pytest.fixture(scope='function')
def admin(users):
    return users["admin"]


@pytest.fixture(scope='function')
def manager(users):
    return users["manager"]


@pytest.fixture(scope='function')
def staff(users):
    return users["staff"]


@pytest.fixture(scope='function')
def location(db_session):
    loc = Location(name="Main Kitchen")
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture(scope='function')
def other_location(db_session):
    loc = Location(name="Bar")
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture(scope='function')
def supplier(db_session):
    sup = Supplier(name="Green Valley Produce", contact_name="Jo", email="orders@greenvalley.test")
    db_session.add(sup)
    db_session.commit()
    return sup


@pytest.fixture(scope='function')
def flour(db_session, location):
    """Item with unit cost 4.00 and no stock row yet."""
    item = InventoryItem(name="Flour", unit="KG", unit_cost=Decimal("4.00"), location_id=location.id)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def tomatoes(db_session, location):
    """Item with unit cost 2.50 and no stock row yet."""
    item = InventoryItem(name="Tomatoes", unit="KG", unit_cost=Decimal("2.50"), location_id=location.id)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def set_stock(db_session):
    """Seed a StockLevel row directly: set_stock(item, location, quantity)."""
    def _set(item, loc, quantity):
        level = StockLevel.query.filter_by(inventory_item_id=item.id, location_id=loc.id).first()
        if level is None:
            level = StockLevel(inventory_item_id=item.id, location_id=loc.id, quantity=Decimal(str(quantity)))
            db_session.add(level)
        else:
            level.quantity = Decimal(str(quantity))
        db_session.commit()
        return level
    return _set


# Path from DRAFT to each status reachable without receiving
_PATH_TO = {
    "DRAFT": [],
    "SUBMITTED": ["SUBMITTED"],
    "APPROVED": ["SUBMITTED", "APPROVED"],
    "ORDERED": ["SUBMITTED", "APPROVED", "ORDERED"],
}


@pytest.fixture(scope='function')
def make_order(manager, supplier, location):
    """
    Create a purchase order and walk it to `status`.

    lines: list of (item, quantity_ordered, unit_cost).
    """
    def _make(lines, status="ORDERED", tax=0, shipping_cost=0):
        result = order_service.create_purchase_order(
            supplier_id=supplier.id,
            location_id=location.id,
            lines=[
                {"inventory_item_id": item.id, "quantity_ordered": qty, "unit_cost": cost}
                for item, qty, cost in lines
            ],
            created_by_user_id=manager.id,
            actor_role=manager.role,
            tax=tax,
            shipping_cost=shipping_cost,
        )
        assert result.ok, result.error
        order = result.value
        for target in _PATH_TO[status]:
            step = order_lifecycle.transition_purchase_order(
                order.id, target, actor_id=manager.id, actor_role=manager.role
            )
            assert step.ok, step.error
        return order_service.get_purchase_order(order.id)
    return _make


@pytest.fixture(scope='function')
def auth_headers():
    """Headers the upstream gateway would set for `user`."""
    def _headers(user):
        return {"X-User-Id": str(user.id)}
    return _headers
