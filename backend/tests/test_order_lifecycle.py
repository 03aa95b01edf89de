"""
Purchase order state machine tests.

Only transitions in the table are legal; everything else fails with
INVALID_TRANSITION and leaves the order untouched.
"""

from datetime import datetime

import pytest

from larder.extensions import db
from larder.models import AuditLog
from larder.permissions import ROLE_PERMISSIONS
from larder.services import order_service
from larder.services.errors import InvalidTransitionError
from larder.services.order_lifecycle import (
    ALLOWED_TRANSITIONS,
    ORDER_STATUSES,
    allowed_targets,
    can_transition,
    transition_purchase_order,
)


ILLEGAL_PAIRS = [
    (src, dst)
    for src in ORDER_STATUSES
    for dst in ORDER_STATUSES + ("BOGUS",)
    if dst not in ALLOWED_TRANSITIONS[src]
]
LEGAL_PAIRS = [(src, dst) for src in ORDER_STATUSES for dst in sorted(ALLOWED_TRANSITIONS[src])]


@pytest.fixture
def draft_order(make_order, flour):
    return make_order([(flour, 10, "4.00")], status="DRAFT")


def _force_status(order, status):
    order.status = status
    db.session.commit()


def test_pure_helpers():
    assert can_transition("DRAFT", "SUBMITTED")
    assert not can_transition("DRAFT", "APPROVED")
    assert not can_transition("UNKNOWN", "DRAFT")
    assert allowed_targets("ORDERED") == {"PARTIALLY_RECEIVED", "RECEIVED", "CANCELLED"}
    assert allowed_targets("RECEIVED") == frozenset()
    assert allowed_targets("CANCELLED") == frozenset()


@pytest.mark.parametrize("src,dst", ILLEGAL_PAIRS)
def test_illegal_transition_fails_and_keeps_status(draft_order, admin, src, dst):
    _force_status(draft_order, src)

    result = transition_purchase_order(draft_order.id, dst, actor_id=admin.id, actor_role=admin.role)

    assert not result.ok
    assert isinstance(result.error, InvalidTransitionError)
    assert result.message == f"Cannot transition from {src} to {dst}"
    assert order_service.get_purchase_order(draft_order.id).status == src
    assert AuditLog.query.filter_by(action="UPDATE_ORDER_STATUS").count() == 0


@pytest.mark.parametrize("src,dst", LEGAL_PAIRS)
def test_legal_transition_succeeds(draft_order, admin, src, dst):
    _force_status(draft_order, src)

    result = transition_purchase_order(draft_order.id, dst, actor_id=admin.id, actor_role=admin.role)

    assert result.ok, result.error
    assert order_service.get_purchase_order(draft_order.id).status == dst


@pytest.mark.parametrize("target", ["DRAFT", "SUBMITTED", "APPROVED", "ORDERED", "RECEIVED", "CANCELLED"])
def test_cancelled_order_is_terminal(draft_order, admin, target):
    assert transition_purchase_order(draft_order.id, "CANCELLED", actor_id=admin.id, actor_role=admin.role).ok

    result = transition_purchase_order(draft_order.id, target, actor_id=admin.id, actor_role=admin.role)

    assert result.code == "INVALID_TRANSITION"
    assert order_service.get_purchase_order(draft_order.id).status == "CANCELLED"


def test_staff_cannot_submit_or_approve(draft_order, staff, admin):
    submit = transition_purchase_order(draft_order.id, "SUBMITTED", actor_id=staff.id, actor_role=staff.role)
    assert submit.code == "PERMISSION_DENIED"
    assert order_service.get_purchase_order(draft_order.id).status == "DRAFT"

    _force_status(draft_order, "SUBMITTED")
    approve = transition_purchase_order(draft_order.id, "APPROVED", actor_id=staff.id, actor_role=staff.role)
    assert approve.code == "PERMISSION_DENIED"
    assert order_service.get_purchase_order(draft_order.id).status == "SUBMITTED"


def test_approval_follows_the_approve_permission(draft_order, manager, monkeypatch):
    _force_status(draft_order, "SUBMITTED")
    monkeypatch.setitem(
        ROLE_PERMISSIONS, "MANAGER", ROLE_PERMISSIONS["MANAGER"] - {"orders:approve"}
    )

    denied = transition_purchase_order(draft_order.id, "APPROVED", actor_id=manager.id, actor_role=manager.role)

    assert denied.code == "PERMISSION_DENIED"
    assert order_service.get_purchase_order(draft_order.id).status == "SUBMITTED"


def test_invalid_transition_checked_before_role(draft_order, staff):
    result = transition_purchase_order(draft_order.id, "APPROVED", actor_id=staff.id, actor_role=staff.role)

    assert result.code == "INVALID_TRANSITION"


def test_staff_can_mark_ordered_and_cancel(draft_order, staff):
    _force_status(draft_order, "APPROVED")

    assert transition_purchase_order(draft_order.id, "ORDERED", actor_id=staff.id, actor_role=staff.role).ok
    assert transition_purchase_order(draft_order.id, "CANCELLED", actor_id=staff.id, actor_role=staff.role).ok


def test_approval_stamps_approver(draft_order, manager, admin):
    transition_purchase_order(draft_order.id, "SUBMITTED", actor_id=manager.id, actor_role=manager.role)
    result = transition_purchase_order(draft_order.id, "APPROVED", actor_id=admin.id, actor_role=admin.role)

    assert result.value.approved_by_user_id == admin.id


def test_manual_receive_stamps_received_date(draft_order, manager):
    _force_status(draft_order, "ORDERED")

    result = transition_purchase_order(draft_order.id, "RECEIVED", actor_id=manager.id, actor_role=manager.role)

    assert result.ok
    assert result.value.received_date is not None


def test_received_date_not_overwritten(draft_order, manager):
    stamped = datetime(2026, 5, 1, 12, 0)
    draft_order.received_date = stamped
    _force_status(draft_order, "PARTIALLY_RECEIVED")

    result = transition_purchase_order(draft_order.id, "RECEIVED", actor_id=manager.id, actor_role=manager.role)

    assert result.value.received_date == stamped


def test_missing_order(admin):
    result = transition_purchase_order(424242, "SUBMITTED", actor_id=admin.id, actor_role=admin.role)

    assert result.code == "NOT_FOUND"


def test_transition_audit_entry(draft_order, manager):
    transition_purchase_order(draft_order.id, "SUBMITTED", actor_id=manager.id, actor_role=manager.role)

    entry = AuditLog.query.filter_by(action="UPDATE_ORDER_STATUS").one()
    assert entry.user_id == manager.id
    assert entry.entity_type == "PurchaseOrder"
    assert entry.entity_id == draft_order.id
    assert entry.details["from_status"] == "DRAFT"
    assert entry.details["to_status"] == "SUBMITTED"
