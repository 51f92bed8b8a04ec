"""Tests for the order / delivery status rules."""

from datetime import date

import pytest

from storefront.core.errors import (
    InvalidPriority,
    InvalidStatus,
    InvalidTransition,
    MissingFailureReason,
    Unauthorized,
)
from storefront.schemas.order import Delivery, DeliveryStatus, Order, OrderStatus, Priority
from storefront.services import order_state


class TestVocabulary:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("pending", OrderStatus.PENDING),
            ("Shipped", OrderStatus.SHIPPED),
            ("canceled", OrderStatus.CANCELLED),
            (" DELIVERED ", OrderStatus.DELIVERED),
        ],
    )
    def test_order_status_parsing(self, raw, expected):
        assert order_state.parse_status("order", raw) == expected

    def test_delivery_aliases(self):
        assert order_state.parse_status("delivery", "in-transit") == DeliveryStatus.IN_TRANSIT
        assert order_state.parse_status("delivery", "picked-up") == DeliveryStatus.PICKED_UP

    @pytest.mark.parametrize("raw", ["failed", "assigned", "lost", "", 3, None])
    def test_invalid_order_status(self, raw):
        with pytest.raises(InvalidStatus):
            order_state.parse_status("order", raw)

    def test_shipped_is_not_a_delivery_status(self):
        with pytest.raises(InvalidStatus):
            order_state.parse_status("delivery", "shipped")

    def test_priority_parsing(self):
        assert order_state.parse_priority(None) == Priority.NORMAL
        assert order_state.parse_priority("medium") == Priority.NORMAL
        assert order_state.parse_priority("URGENT") == Priority.URGENT
        assert order_state.parse_priority(Priority.LOW) == Priority.LOW

    @pytest.mark.parametrize("raw", ["asap", "", 2])
    def test_invalid_priority(self, raw):
        with pytest.raises(InvalidPriority):
            order_state.parse_priority(raw)

    def test_status_mappings_are_total(self):
        for status in OrderStatus:
            assert isinstance(order_state.order_to_delivery_status(status), DeliveryStatus)
        for status in DeliveryStatus:
            assert isinstance(order_state.delivery_to_order_status(status), OrderStatus)

    def test_status_mapping_values(self):
        assert order_state.order_to_delivery_status(OrderStatus.SHIPPED) == DeliveryStatus.IN_TRANSIT
        assert order_state.delivery_to_order_status(DeliveryStatus.PICKED_UP) == OrderStatus.SHIPPED
        assert order_state.delivery_to_order_status(DeliveryStatus.FAILED) == OrderStatus.CANCELLED


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "confirmed"),
            ("confirmed", "processing"),
            ("processing", "shipped"),
            ("shipped", "delivered"),
            ("processing", "cancelled"),
            ("shipped", "shipped"),
        ],
    )
    def test_legal_order_transitions(self, current, target):
        order_state.ensure_transition("order", current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("delivered", "pending"),
            ("shipped", "confirmed"),
            ("cancelled", "confirmed"),
            ("pending", "delivered"),
        ],
    )
    def test_illegal_order_transitions(self, current, target):
        with pytest.raises(InvalidTransition) as exc_info:
            order_state.ensure_transition("order", current, target)
        assert exc_info.value.current == current
        assert exc_info.value.target == target

    def test_driver_lifecycle(self):
        path = ["pending", "assigned", "picked_up", "in_transit", "delivered"]
        for current, target in zip(path, path[1:]):
            assert order_state.can_transition("delivery", current, target)

    def test_delivery_cannot_skip_pickup(self):
        assert not order_state.can_transition("delivery", "assigned", "delivered")
        assert not order_state.can_transition("delivery", "delivered", "picked_up")
        assert order_state.can_transition("delivery", "in_transit", "failed")

    def test_terminal_states(self):
        assert order_state.is_terminal("order", "delivered")
        assert order_state.is_terminal("delivery", "failed")
        assert not order_state.is_terminal("delivery", "in_transit")
        assert order_state.allowed_transitions("order", "cancelled") == frozenset()


class TestSanitizeUpdate:
    def test_strips_system_fields(self):
        payload = {
            "id": 5,
            "userId": 2,
            "shippedAt": "2026-10-01T10:00:00Z",
            "delivered_at": "2026-10-02T10:00:00Z",
            "createdAt": "2026-09-30T10:00:00Z",
            "status": "Shipped",
            "priority": "medium",
            "shipping_address": "4 Ngong Road",
        }

        clean = order_state.sanitize_update("order", payload)

        assert clean == {
            "status": "shipped",
            "priority": "normal",
            "shipping_address": "4 Ngong Road",
        }
        assert payload["shippedAt"] == "2026-10-01T10:00:00Z"

    def test_unset_status_is_dropped(self):
        clean = order_state.sanitize_update("order", {"status": None, "billing_address": "x"})
        assert clean == {"billing_address": "x"}

    def test_invalid_status_rejected(self):
        with pytest.raises(InvalidStatus):
            order_state.sanitize_update("order", {"status": "teleported"})

    def test_failed_delivery_needs_reason(self):
        with pytest.raises(MissingFailureReason):
            order_state.sanitize_update("delivery", {"status": "failed"})
        with pytest.raises(MissingFailureReason):
            order_state.sanitize_update("delivery", {"status": "failed", "failure_reason": "  "})

    def test_failed_delivery_reason_accepted(self):
        clean = order_state.sanitize_update(
            "delivery", {"status": "failed", "failureReason": "  Customer unreachable "}
        )
        assert clean == {"status": "failed", "failure_reason": "Customer unreachable"}


class TestReadScoping:
    def test_anonymous_is_rejected(self):
        with pytest.raises(Unauthorized):
            order_state.ensure_can_read(None, 1)

    def test_admin_reads_anyone(self, admin):
        order_state.ensure_can_read(admin, 42)

    def test_own_records_compare_as_ids(self, customer):
        order_state.ensure_can_read(customer, "1")
        order_state.ensure_can_read(customer, 1)

    def test_customer_cannot_read_other(self, customer):
        with pytest.raises(Unauthorized):
            order_state.ensure_can_read(customer, 2)

    def test_driver_cannot_read_other_driver(self, driver):
        order_state.ensure_can_read(driver, 9)
        with pytest.raises(Unauthorized):
            order_state.ensure_can_read(driver, 10)


def _delivery(id, status, driver_id=9, priority="normal", delivered_at=None):
    return Delivery(
        id=id,
        status=status,
        assigned_driver_id=driver_id,
        priority=priority,
        delivered_at=delivered_at,
    )


class TestQueries:
    def test_active_includes_picked_up(self):
        deliveries = [
            _delivery(1, "pending"),
            _delivery(2, "assigned"),
            _delivery(3, "picked_up"),
            _delivery(4, "in_transit"),
            _delivery(5, "delivered"),
            _delivery(6, "failed"),
        ]
        assert [d.id for d in order_state.active_deliveries(deliveries)] == [2, 3, 4]

    def test_completed_date_bounds_are_inclusive(self):
        deliveries = [
            _delivery(1, "delivered", delivered_at="2026-10-01T09:00:00"),
            _delivery(2, "delivered", delivered_at="2026-10-05T23:59:00"),
            _delivery(3, "delivered", delivered_at="2026-10-06T00:01:00"),
            _delivery(4, "delivered"),
            _delivery(5, "in_transit"),
        ]

        bounded = order_state.completed_deliveries(
            deliveries, date(2026, 10, 1), date(2026, 10, 5)
        )
        assert [d.id for d in bounded] == [1, 2]
        assert [d.id for d in order_state.completed_deliveries(deliveries)] == [1, 2, 3, 4]

    def test_filters(self):
        deliveries = [
            _delivery(1, "assigned", driver_id="9", priority="urgent"),
            _delivery(2, "assigned", driver_id=10),
            _delivery(3, "delivered", driver_id=9, priority="urgent"),
        ]
        assert [d.id for d in order_state.filter_by_driver(deliveries, 9)] == [1, 3]
        assert [d.id for d in order_state.filter_by_priority(deliveries, "urgent")] == [1, 3]
        assigned = order_state.filter_by_status(deliveries, "assigned", kind="delivery")
        assert [d.id for d in assigned] == [1, 2]

    def test_filter_by_unknown_status_raises(self):
        orders = [Order(id=1, status="pending")]
        with pytest.raises(InvalidStatus):
            order_state.filter_by_status(orders, "teleported")
        with pytest.raises(InvalidStatus):
            order_state.filter_by_status(orders, "in_transit")

    def test_filter_orders_by_status_alias(self):
        orders = [Order(id=1, status="cancelled"), Order(id=2, status="pending")]
        assert [o.id for o in order_state.filter_by_status(orders, "canceled")] == [1]

    def test_reassignment_warning(self):
        assert order_state.reassignment_warning(_delivery(1, "pending")) is None
        warning = order_state.reassignment_warning(_delivery(1, "in_transit"))
        assert "in_transit" in warning
