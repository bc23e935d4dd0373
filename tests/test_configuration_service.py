"""
Unit Tests for ConfigurationService.

Tests business rules:
- Line totals always equal quantity x unit price
- Contiguous sort order after removal and moves
- Direct edits are rejected once the configuration is frozen
"""
from decimal import Decimal

import pytest

from boatyard.domain.entities import PropulsionType, SnapshotTrigger
from conftest import add_items, item_input


class TestAddItem:
    """Tests for adding items."""

    def test_line_total_computed(self, draft_project, configuration_service, context):
        result = configuration_service.add_item(
            draft_project.id, item_input("Bow Thruster", quantity="3", price="1250.50"), context
        )

        assert result.ok
        item = result.value.configuration.items[0]
        assert item.line_total_excl_vat == Decimal("3751.50")
        assert item.sort_order == 0

    def test_totals_follow_items(self, project_with_items):
        configuration = project_with_items.configuration
        assert configuration.subtotal_excl_vat == Decimal("10000.00")
        assert configuration.total_excl_vat == Decimal("10000.00")
        assert configuration.vat_amount == Decimal("2100.00")
        assert configuration.total_incl_vat == Decimal("12100.00")

    def test_sort_order_appends(self, project_with_items):
        assert [i.sort_order for i in project_with_items.configuration.items] == [0, 1]

    def test_excluded_item_not_in_subtotal(self, project_with_items, configuration_service, context):
        project = add_items(
            configuration_service, project_with_items.id, context,
            item_input("Teak Deck", price="4000.00", is_included=False),
        )
        assert project.configuration.item_count == 3
        assert project.configuration.subtotal_excl_vat == Decimal("10000.00")

    def test_zero_quantity_rejected(self, draft_project, configuration_service, context):
        result = configuration_service.add_item(
            draft_project.id, item_input(quantity="0"), context
        )
        assert not result.ok
        assert result.code == "VALIDATION_ERROR"

    def test_negative_price_rejected(self, draft_project, configuration_service, context):
        result = configuration_service.add_item(
            draft_project.id, item_input(price="-1.00"), context
        )
        assert result.code == "VALIDATION_ERROR"

    def test_blank_name_rejected(self, draft_project, configuration_service, context):
        result = configuration_service.add_item(draft_project.id, item_input(name="   "), context)
        assert result.code == "VALIDATION_ERROR"

    def test_unknown_project(self, configuration_service, context):
        result = configuration_service.add_item("missing", item_input(), context)
        assert result.code == "NOT_FOUND"


class TestUpdateItem:
    """Tests for item updates."""

    def test_quantity_change_recomputes_line_total(self, project_with_items, configuration_service, context):
        battery = project_with_items.configuration.items[1]

        result = configuration_service.update_item(
            project_with_items.id, battery.id, {"quantity": Decimal("3")}, context
        )

        assert result.ok
        updated = result.value.configuration.find_item(battery.id)
        assert updated.line_total_excl_vat == Decimal("3000.00")
        assert result.value.configuration.subtotal_excl_vat == Decimal("11000.00")

    def test_line_total_is_not_writable(self, project_with_items, configuration_service, context):
        motor = project_with_items.configuration.items[0]

        result = configuration_service.update_item(
            project_with_items.id, motor.id, {"line_total_excl_vat": Decimal("1")}, context
        )

        assert not result.ok
        assert result.code == "VALIDATION_ERROR"
        assert "line_total_excl_vat" in result.error

    def test_unknown_item(self, project_with_items, configuration_service, context):
        result = configuration_service.update_item(
            project_with_items.id, "nope", {"name": "X"}, context
        )
        assert result.code == "NOT_FOUND"


class TestMalformedValues:
    """Wrongly typed or non-numeric values come back as validation failures."""

    @pytest.mark.parametrize("updates, field", [
        ({"quantity": "abc"}, "quantity"),
        ({"quantity": "NaN"}, "quantity"),
        ({"unit_price_excl_vat": "Infinity"}, "unit_price_excl_vat"),
        ({"unit_cost": "twelve"}, "unit_cost"),
        ({"quantity": True}, "quantity"),
        ({"quantity": [1]}, "quantity"),
        ({"name": 5}, "name"),
        ({"category": None}, "category"),
        ({"is_included": "yes"}, "is_included"),
        ({"lead_time_days": "14"}, "lead_time_days"),
        ({"lead_time_days": -3}, "lead_time_days"),
    ])
    def test_update_rejected(self, project_with_items, configuration_service, context, updates, field):
        battery = project_with_items.configuration.items[1]

        result = configuration_service.update_item(project_with_items.id, battery.id, updates, context)

        assert result.ok is False
        assert result.code == "VALIDATION_ERROR"
        assert field in result.error

    def test_project_untouched(self, project_with_items, configuration_service, project_service, context):
        battery = project_with_items.configuration.items[1]
        configuration_service.update_item(project_with_items.id, battery.id, {"quantity": "abc"}, context)

        project = project_service.get_by_id(project_with_items.id).value
        assert project.version == project_with_items.version
        assert project.configuration.subtotal_excl_vat == Decimal("10000.00")

    def test_optional_text_may_be_cleared(self, project_with_items, configuration_service, context):
        motor = project_with_items.configuration.items[0]

        result = configuration_service.update_item(
            project_with_items.id, motor.id, {"supplier": None, "lead_time_days": 0}, context
        )

        assert result.ok, result.error
        updated = result.value.configuration.find_item(motor.id)
        assert updated.supplier is None
        assert updated.lead_time_days == 0

    def test_add_rejects_nan_price(self, draft_project, configuration_service, context):
        result = configuration_service.add_item(draft_project.id, item_input(price="NaN"), context)
        assert result.code == "VALIDATION_ERROR"

    def test_add_rejects_unknown_item_type(self, draft_project, configuration_service, context):
        result = configuration_service.add_item(draft_project.id, item_input(item_type="BUNDLE"), context)
        assert result.code == "VALIDATION_ERROR"
        assert "item_type" in result.error


class TestOrdering:
    """Tests for remove, move and reorder."""

    def _three_items(self, project_with_items, configuration_service, context):
        return add_items(
            configuration_service, project_with_items.id, context,
            item_input("Navigation Package", price="2500.00"),
        )

    def test_remove_renumbers(self, project_with_items, configuration_service, context):
        project = self._three_items(project_with_items, configuration_service, context)
        first = project.configuration.sorted_items()[0]

        result = configuration_service.remove_item(project.id, first.id, context)

        assert result.ok
        remaining = result.value.configuration.sorted_items()
        assert [i.name for i in remaining] == ["Battery Pack 60kWh", "Navigation Package"]
        assert [i.sort_order for i in remaining] == [0, 1]
        assert result.value.configuration.subtotal_excl_vat == Decimal("4500.00")

    def test_move_down(self, project_with_items, configuration_service, context):
        motor = project_with_items.configuration.sorted_items()[0]

        result = configuration_service.move_item(project_with_items.id, motor.id, "down", context)

        names = [i.name for i in result.value.configuration.sorted_items()]
        assert names == ["Battery Pack 60kWh", "Electric Motor 40kW"]

    def test_move_first_item_up_is_noop(self, project_with_items, configuration_service, context):
        motor = project_with_items.configuration.sorted_items()[0]

        result = configuration_service.move_item(project_with_items.id, motor.id, "up", context)

        assert result.ok
        assert result.value.configuration.sorted_items()[0].id == motor.id

    def test_invalid_direction(self, project_with_items, configuration_service, context):
        motor = project_with_items.configuration.items[0]
        result = configuration_service.move_item(project_with_items.id, motor.id, "left", context)
        assert result.code == "VALIDATION_ERROR"

    def test_reorder(self, project_with_items, configuration_service, context):
        project = self._three_items(project_with_items, configuration_service, context)
        ids = [i.id for i in project.configuration.sorted_items()]

        result = configuration_service.reorder_items(project.id, list(reversed(ids)), context)

        ordered = result.value.configuration.sorted_items()
        assert [i.id for i in ordered] == list(reversed(ids))
        assert [i.sort_order for i in ordered] == [0, 1, 2]

    def test_reorder_requires_every_item(self, project_with_items, configuration_service, context):
        ids = [i.id for i in project_with_items.configuration.items]
        result = configuration_service.reorder_items(project_with_items.id, ids[:1], context)
        assert result.code == "VALIDATION_ERROR"


class TestPricingSettings:
    """Tests for discount and propulsion."""

    def test_discount_applied(self, project_with_items, configuration_service, context):
        result = configuration_service.set_discount(project_with_items.id, Decimal("10"), context)

        configuration = result.value.configuration
        assert configuration.discount_amount == Decimal("1000.00")
        assert configuration.total_excl_vat == Decimal("9000.00")
        assert configuration.vat_amount == Decimal("1890.00")
        assert configuration.total_incl_vat == Decimal("10890.00")

    def test_discount_out_of_range(self, project_with_items, configuration_service, context):
        result = configuration_service.set_discount(project_with_items.id, Decimal("120"), context)
        assert result.code == "VALIDATION_ERROR"

    def test_propulsion_type(self, draft_project, configuration_service, context):
        result = configuration_service.set_propulsion_type(draft_project.id, "Hybrid", context)
        assert result.value.configuration.propulsion_type == PropulsionType.HYBRID

    def test_unknown_propulsion_type(self, draft_project, configuration_service, context):
        result = configuration_service.set_propulsion_type(draft_project.id, "Sail", context)
        assert result.code == "VALIDATION_ERROR"


class TestFrozenConfiguration:
    """Direct edits after order confirmation are policy errors."""

    def test_add_item_rejected(self, confirmed_project, configuration_service, context):
        result = configuration_service.add_item(confirmed_project.id, item_input("Extra"), context)

        assert result.ok is False
        assert result.code == "POLICY_ERROR"
        assert "frozen" in result.error

    def test_update_item_rejected(self, confirmed_project, configuration_service, context):
        motor = confirmed_project.configuration.items[0]
        result = configuration_service.update_item(
            confirmed_project.id, motor.id, {"quantity": Decimal("2")}, context
        )
        assert result.code == "POLICY_ERROR"

    def test_remove_and_discount_rejected(self, confirmed_project, configuration_service, context):
        motor = confirmed_project.configuration.items[0]
        assert configuration_service.remove_item(confirmed_project.id, motor.id, context).code == "POLICY_ERROR"
        assert configuration_service.set_discount(confirmed_project.id, Decimal("5"), context).code == "POLICY_ERROR"

    def test_configuration_unchanged(self, confirmed_project, configuration_service, project_service, context):
        configuration_service.add_item(confirmed_project.id, item_input("Extra"), context)

        project = project_service.get_by_id(confirmed_project.id).value
        assert project.configuration.item_count == 2
        assert project.version == confirmed_project.version

    def test_move_and_reorder_rejected(self, confirmed_project, configuration_service, project_service, context):
        ordered = confirmed_project.configuration.sorted_items()

        moved = configuration_service.move_item(confirmed_project.id, ordered[0].id, "down", context)
        reordered = configuration_service.reorder_items(
            confirmed_project.id, [i.id for i in reversed(ordered)], context
        )

        assert moved.code == "POLICY_ERROR"
        assert reordered.code == "POLICY_ERROR"
        project = project_service.get_by_id(confirmed_project.id).value
        assert [(i.id, i.sort_order) for i in project.configuration.sorted_items()] == \
            [(i.id, i.sort_order) for i in ordered]


class TestSnapshots:
    """Tests for configuration snapshot queries."""

    def test_no_snapshot_before_confirmation(self, project_with_items, configuration_service):
        assert configuration_service.get_snapshots(project_with_items.id).value == []
        assert configuration_service.get_current_snapshot(project_with_items.id).value is None

    def test_snapshot_taken_on_confirmation(self, confirmed_project, configuration_service):
        snapshots = configuration_service.get_snapshots(confirmed_project.id).value
        current = configuration_service.get_current_snapshot(confirmed_project.id).value

        assert [s.snapshot_number for s in snapshots] == [1]
        assert current.id == snapshots[0].id
        assert current.trigger == SnapshotTrigger.ORDER_CONFIRMED
        assert current.data.subtotal_excl_vat == Decimal("10000.00")

    def test_unknown_project(self, configuration_service):
        assert configuration_service.get_snapshots("missing").code == "NOT_FOUND"
