"""
Waste deduction tests.

Logging waste snapshots the item's cost, deducts from stock (clamped at
zero), and records an audit entry, all in one transaction.
"""

import logging
from datetime import datetime
from decimal import Decimal

from larder.models import AuditLog, WasteLog
from larder.services import item_service, stock_ledger, waste_service


def test_waste_cost_and_stock_deduction(tomatoes, location, staff, set_stock):
    set_stock(tomatoes, location, 10)

    result = waste_service.log_waste(tomatoes.id, location.id, 3, "SPOILED", "Mouldy crate", actor_id=staff.id)

    assert result.ok
    waste = waste_service.get_waste_log(result.value)
    assert waste.quantity == Decimal("3")
    assert waste.unit_cost == Decimal("2.50")
    assert waste.total_cost == Decimal("7.50")
    assert waste.logged_by_user_id == staff.id
    assert stock_ledger.get_stock_level(tomatoes.id, location.id) == Decimal("7")


def test_waste_audit_entry(tomatoes, location, staff, set_stock):
    set_stock(tomatoes, location, 10)

    result = waste_service.log_waste(tomatoes.id, location.id, 3, "EXPIRED", None, actor_id=staff.id)

    entry = AuditLog.query.filter_by(action="LOG_WASTE").one()
    assert entry.entity_id == tomatoes.id
    assert entry.details["waste_log_id"] == result.value
    assert entry.details["reason"] == "EXPIRED"
    assert Decimal(entry.details["total_cost"]) == Decimal("7.50")
    assert Decimal(entry.details["previous_stock"]) == Decimal("10")
    assert Decimal(entry.details["adjustment"]) == Decimal("-3")
    assert Decimal(entry.details["new_stock"]) == Decimal("7")


def test_waste_beyond_stock_clamps_to_zero(tomatoes, location, staff, set_stock, caplog):
    set_stock(tomatoes, location, 2)

    with caplog.at_level(logging.WARNING, logger="larder.services.waste_service"):
        result = waste_service.log_waste(tomatoes.id, location.id, 3, "DAMAGED", None, actor_id=staff.id)

    assert result.ok
    assert stock_ledger.get_stock_level(tomatoes.id, location.id) == Decimal("0")
    # Cost reflects what was wasted, not what the ledger could deduct
    assert waste_service.get_waste_log(result.value).total_cost == Decimal("7.50")
    assert "clamped" in caplog.text


def test_waste_without_stock_row_is_recordable(tomatoes, location, staff):
    result = waste_service.log_waste(tomatoes.id, location.id, "1.5", "PREP_WASTE", None, actor_id=staff.id)

    assert result.ok
    assert stock_ledger.get_stock_level(tomatoes.id, location.id) == Decimal("0")


def test_missing_item_fails_and_writes_nothing(location, staff):
    result = waste_service.log_waste(99999, location.id, 1, "SPOILED", None, actor_id=staff.id)

    assert result.code == "ITEM_NOT_FOUND"
    assert WasteLog.query.count() == 0
    assert AuditLog.query.count() == 0


def test_missing_location_rolls_back_waste_row(tomatoes, staff):
    result = waste_service.log_waste(tomatoes.id, 99999, 1, "SPOILED", None, actor_id=staff.id)

    assert result.code == "NOT_FOUND"
    assert WasteLog.query.count() == 0
    assert AuditLog.query.count() == 0


def test_quantity_must_be_positive(tomatoes, location, staff):
    for quantity in (0, -1, "0.000"):
        result = waste_service.log_waste(tomatoes.id, location.id, quantity, "SPOILED", None, actor_id=staff.id)
        assert result.code == "INVALID_INPUT"
    assert WasteLog.query.count() == 0


def test_non_finite_or_oversized_quantity_is_invalid_input(tomatoes, location, staff, set_stock):
    set_stock(tomatoes, location, 10)

    for quantity in ("1e30", Decimal("NaN"), Decimal("Infinity")):
        result = waste_service.log_waste(tomatoes.id, location.id, quantity, "SPOILED", None, actor_id=staff.id)
        assert result.code == "INVALID_INPUT"

    assert WasteLog.query.count() == 0
    assert AuditLog.query.count() == 0
    assert stock_ledger.get_stock_level(tomatoes.id, location.id) == Decimal("10")


def test_reason_must_be_known(tomatoes, location, staff):
    result = waste_service.log_waste(tomatoes.id, location.id, 1, "EATEN_BY_CHEF", None, actor_id=staff.id)

    assert result.code == "INVALID_INPUT"


def test_unit_cost_is_snapshotted(tomatoes, location, staff, manager, set_stock):
    set_stock(tomatoes, location, 10)
    waste_id = waste_service.log_waste(tomatoes.id, location.id, 2, "SPOILED", None, actor_id=staff.id).value

    item_service.update_inventory_item(
        tomatoes.id, {"unit_cost": "3.10"}, actor_id=manager.id, actor_role=manager.role
    )

    waste = waste_service.get_waste_log(waste_id)
    assert waste.unit_cost == Decimal("2.50")
    assert waste.total_cost == Decimal("5.00")


def test_list_waste_logs_newest_first(tomatoes, location, other_location, staff):
    waste_service.log_waste(tomatoes.id, location.id, 1, "SPOILED", None, actor_id=staff.id,
                            wasted_at=datetime(2026, 3, 1, 9, 0))
    waste_service.log_waste(tomatoes.id, location.id, 2, "EXPIRED", None, actor_id=staff.id,
                            wasted_at=datetime(2026, 3, 2, 9, 0))
    waste_service.log_waste(tomatoes.id, other_location.id, 4, "OTHER", None, actor_id=staff.id)

    logs = waste_service.list_waste_logs(location_id=location.id)

    assert [log.reason for log in logs] == ["EXPIRED", "SPOILED"]
    assert len(waste_service.list_waste_logs()) == 3
