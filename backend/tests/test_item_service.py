from decimal import Decimal

from larder.models import AuditLog, StockLevel
from larder.services import item_service, stock_ledger


def test_create_item_with_zero_stock_at_home_location(manager, location):
    result = item_service.create_inventory_item(
        name="  Olive Oil ",
        location_id=location.id,
        unit="l",
        unit_cost="9.80",
        par_level="4",
        gl_code="5010",
        actor_id=manager.id,
        actor_role=manager.role,
    )

    assert result.ok, result.error
    item = result.value
    assert item.name == "Olive Oil"
    assert item.unit == "L"
    assert item.unit_cost == Decimal("9.80")
    level = StockLevel.query.filter_by(inventory_item_id=item.id, location_id=location.id).one()
    assert level.quantity == Decimal("0")
    assert AuditLog.query.filter_by(action="CREATE_ITEM", entity_id=item.id).count() == 1


def test_create_item_validation(manager, staff, location):
    assert item_service.create_inventory_item(
        name="", location_id=location.id, actor_id=manager.id, actor_role=manager.role
    ).code == "INVALID_INPUT"
    assert item_service.create_inventory_item(
        name="Salt", location_id=99999, actor_id=manager.id, actor_role=manager.role
    ).code == "NOT_FOUND"
    assert item_service.create_inventory_item(
        name="Salt", location_id=location.id, unit_cost="-1", actor_id=manager.id, actor_role=manager.role
    ).code == "INVALID_INPUT"
    assert item_service.create_inventory_item(
        name="Salt", location_id=location.id, actor_id=staff.id, actor_role=staff.role
    ).code == "PERMISSION_DENIED"


def test_cost_edit_records_price_history(flour, manager):
    result = item_service.update_inventory_item(
        flour.id, {"unit_cost": "4.25", "notes": "New mill"}, actor_id=manager.id, actor_role=manager.role
    )

    assert result.ok
    assert result.value.unit_cost == Decimal("4.25")
    history = item_service.list_price_history(flour.id)
    assert len(history) == 1
    assert history[0].old_price == Decimal("4.00")
    assert history[0].new_price == Decimal("4.25")
    assert history[0].source == "EDIT"

    entry = AuditLog.query.filter_by(action="UPDATE_ITEM").one()
    assert set(entry.details["changes"]) == {"unit_cost", "notes"}


def test_unchanged_cost_records_nothing(flour, manager):
    result = item_service.update_inventory_item(
        flour.id, {"unit_cost": "4.0000"}, actor_id=manager.id, actor_role=manager.role
    )

    assert result.ok
    assert item_service.list_price_history(flour.id) == []
    assert AuditLog.query.count() == 0


def test_price_history_newest_first(flour, manager):
    for cost in ("4.10", "4.20", "4.30"):
        item_service.update_inventory_item(flour.id, {"unit_cost": cost}, actor_id=manager.id, actor_role=manager.role)

    history = item_service.list_price_history(flour.id, limit=2)

    assert [h.new_price for h in history] == [Decimal("4.30"), Decimal("4.20")]


def test_update_rejects_unknown_fields_and_staff(flour, manager, staff):
    assert item_service.update_inventory_item(
        flour.id, {"quantity": 5}, actor_id=manager.id, actor_role=manager.role
    ).code == "INVALID_INPUT"
    assert item_service.update_inventory_item(
        flour.id, {"name": "Rye"}, actor_id=staff.id, actor_role=staff.role
    ).code == "PERMISSION_DENIED"
    assert item_service.update_inventory_item(
        99999, {"name": "Rye"}, actor_id=manager.id, actor_role=manager.role
    ).code == "ITEM_NOT_FOUND"


def test_update_never_touches_stock(flour, location, manager):
    stock_ledger.apply_delta(flour.id, location.id, 3, actor_id=manager.id)

    item_service.update_inventory_item(flour.id, {"par_level": "10"}, actor_id=manager.id, actor_role=manager.role)

    assert stock_ledger.get_stock_level(flour.id, location.id) == Decimal("3")


def test_unit_must_be_a_string(flour, manager, location):
    assert item_service.update_inventory_item(
        flour.id, {"unit": 5}, actor_id=manager.id, actor_role=manager.role
    ).code == "INVALID_INPUT"
    assert item_service.update_inventory_item(
        flour.id, {"sku": 12}, actor_id=manager.id, actor_role=manager.role
    ).code == "INVALID_INPUT"
    assert item_service.create_inventory_item(
        name="Salt", location_id=location.id, unit=["KG"], actor_id=manager.id, actor_role=manager.role
    ).code == "INVALID_INPUT"

    blank = item_service.update_inventory_item(flour.id, {"unit": ""}, actor_id=manager.id, actor_role=manager.role)
    assert blank.ok
    assert blank.value.unit == "EACH"


def test_list_inventory_items_by_location(flour, tomatoes, location, other_location, manager):
    olives = item_service.create_inventory_item(
        name="Olives", location_id=other_location.id, actor_id=manager.id, actor_role=manager.role
    ).value

    assert [i.name for i in item_service.list_inventory_items()] == ["Flour", "Olives", "Tomatoes"]
    assert [i.name for i in item_service.list_inventory_items(location_id=location.id)] == ["Flour", "Tomatoes"]
    assert [i.id for i in item_service.list_inventory_items(location_id=other_location.id)] == [olives.id]


def test_deactivate_item_keeps_stock_and_hides_it(flour, location, manager, staff, set_stock):
    set_stock(flour, location, 7)

    assert item_service.deactivate_inventory_item(
        flour.id, actor_id=staff.id, actor_role=staff.role
    ).code == "PERMISSION_DENIED"

    result = item_service.deactivate_inventory_item(flour.id, actor_id=manager.id, actor_role=manager.role)

    assert result.ok
    assert result.value.is_active is False
    assert stock_ledger.get_stock_level(flour.id, location.id) == Decimal("7")
    assert item_service.list_inventory_items() == []
    assert [i.id for i in item_service.list_inventory_items(active_only=False)] == [flour.id]
    assert AuditLog.query.filter_by(action="DEACTIVATE_ITEM", entity_id=flour.id).count() == 1

    assert item_service.deactivate_inventory_item(flour.id, actor_id=manager.id, actor_role=manager.role).ok
    assert AuditLog.query.filter_by(action="DEACTIVATE_ITEM").count() == 1
    assert item_service.deactivate_inventory_item(
        99999, actor_id=manager.id, actor_role=manager.role
    ).code == "ITEM_NOT_FOUND"
