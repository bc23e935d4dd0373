"""
Unit Tests for BOMService.

Tests business rules:
- Actual supplier cost wins; otherwise sell price x estimation ratio
- Snapshots are append-only and numbered sequentially
- Order confirmation generates the baseline BOM
"""
import csv
import io
from decimal import Decimal

import pytest

from boatyard.domain.entities import SnapshotTrigger
from conftest import add_items, item_input


@pytest.fixture
def costed_project(draft_project, configuration_service, context):
    """One item with a known cost (100 x 2) and one without (sell price 1,000)."""
    return add_items(
        configuration_service, draft_project.id, context,
        item_input("Bilge Pump", quantity="2", price="150.00", cost="100.00",
                   category="Plumbing", supplier="Whale", lead_time_days=7),
        item_input("Navigation Package", quantity="1", price="1000.00",
                   category="Electronics", lead_time_days=35),
    )


class TestGenerateBOM:
    """Tests for BOM generation and cost resolution."""

    def test_actual_and_estimated_costs(self, costed_project, bom_service, context):
        result = bom_service.generate_bom(costed_project.id, context)

        assert result.ok
        bom = result.value
        assert bom.actual_cost_total == Decimal("200.00")
        assert bom.estimated_cost_total == Decimal("600.00")
        assert bom.estimated_cost_count == 1
        assert bom.total_cost_excl_vat == Decimal("800.00")
        assert bom.total_parts == Decimal("3")
        assert bom.cost_estimation_ratio == Decimal("0.6")
        assert bom.trigger == SnapshotTrigger.MANUAL

    def test_item_cost_types(self, costed_project, bom_service, context):
        bom = bom_service.generate_bom(costed_project.id, context).value

        pump, navigation = bom.items
        assert pump.cost_type == "ACTUAL"
        assert pump.estimation_ratio is None
        assert navigation.cost_type == "ESTIMATED"
        assert navigation.unit_cost == Decimal("600.00")
        assert navigation.sell_price == Decimal("1000.00")

    def test_excluded_items_skipped(self, costed_project, configuration_service, bom_service, context):
        add_items(
            configuration_service, costed_project.id, context,
            item_input("Teak Deck", price="4000.00", is_included=False),
        )
        bom = bom_service.generate_bom(costed_project.id, context).value
        assert [i.name for i in bom.items] == ["Bilge Pump", "Navigation Package"]

    def test_ratio_from_settings(self, costed_project, bom_service, settings_service, context):
        settings_service.update_cost_estimation(default_ratio=Decimal("0.5"))

        bom = bom_service.generate_bom(costed_project.id, context).value

        assert bom.estimated_cost_total == Decimal("500.00")

    def test_snapshots_append(self, costed_project, bom_service, context):
        bom_service.generate_bom(costed_project.id, context)
        bom_service.generate_bom(costed_project.id, context)

        boms = bom_service.get_all_boms(costed_project.id).value
        assert [b.snapshot_number for b in boms] == [1, 2]
        assert bom_service.get_latest_bom(costed_project.id).value.snapshot_number == 2

    def test_empty_configuration_rejected(self, draft_project, bom_service, context):
        result = bom_service.generate_bom(draft_project.id, context)
        assert result.code == "VALIDATION_ERROR"

    def test_no_bom_yet(self, costed_project, bom_service):
        assert bom_service.get_latest_bom(costed_project.id).value is None
        assert bom_service.calculate_margin(costed_project.id).value is None

    def test_baseline_on_order_confirmation(self, confirmed_project):
        bom = confirmed_project.latest_bom

        assert bom.snapshot_number == 1
        assert bom.trigger == SnapshotTrigger.ORDER_CONFIRMED
        assert bom.configuration_snapshot_id == confirmed_project.latest_configuration_snapshot.id
        assert bom.actual_cost_total == Decimal("5200.00")
        assert bom.estimated_cost_total == Decimal("1200.00")


class TestAnalysis:
    """Tests for estimation, category and margin reporting."""

    def test_estimation_summary(self, costed_project, bom_service, context):
        bom = bom_service.generate_bom(costed_project.id, context).value

        summary = bom_service.get_estimation_summary(bom)

        assert summary.estimated_count == 1
        assert summary.estimated_value_share == Decimal("0.7500")
        assert summary.is_high_estimation is True

    def test_low_estimation_share(self, confirmed_project, bom_service):
        summary = bom_service.get_estimation_summary(confirmed_project.latest_bom)
        assert summary.is_high_estimation is False

    def test_cost_by_category(self, costed_project, bom_service, context):
        bom = bom_service.generate_bom(costed_project.id, context).value

        categories = bom_service.get_cost_summary_by_category(bom)

        assert [c.category for c in categories] == ["Electronics", "Plumbing"]
        assert categories[0].cost == Decimal("600.00")
        assert categories[0].estimated_cost == Decimal("600.00")
        assert categories[0].percentage == Decimal("75.0")

    def test_critical_path(self, costed_project, bom_service, context):
        bom = bom_service.generate_bom(costed_project.id, context).value
        critical = bom_service.get_critical_path_items(bom, limit=1)
        assert [i.name for i in critical] == ["Navigation Package"]

    def test_margin(self, confirmed_project, bom_service):
        margin = bom_service.calculate_margin(confirmed_project.id).value

        assert margin.sell_price == Decimal("10000.00")
        assert margin.cost == Decimal("6400.00")
        assert margin.margin == Decimal("3600.00")
        assert margin.margin_percent == Decimal("36.0")


class TestCSVExport:
    """Tests for CSV export."""

    def test_rows_and_cost_type(self, costed_project, bom_service, context):
        bom = bom_service.generate_bom(costed_project.id, context).value

        rows = list(csv.DictReader(io.StringIO(bom_service.export_to_csv(bom))))

        assert len(rows) == 2
        assert rows[0]["Name"] == "Bilge Pump"
        assert rows[0]["Cost Type"] == "ACTUAL"
        assert rows[0]["Supplier"] == "Whale"
        assert rows[1]["Cost Type"] == "ESTIMATED"
        assert rows[1]["Estimation Ratio"] == "60%"
        assert rows[1]["Total Cost"] == "600.00"

    def test_header(self, costed_project, bom_service, context):
        bom = bom_service.generate_bom(costed_project.id, context).value
        header = bom_service.export_to_csv(bom).splitlines()[0]
        assert header.startswith("Article Number,Name,Category")

    def test_zero_lead_time_is_written(self, costed_project, configuration_service, bom_service, context):
        """Stock items with a lead time of 0 days keep the 0 in the export."""
        add_items(
            configuration_service, costed_project.id, context,
            item_input("Fender Set", price="80.00", cost="40.00", lead_time_days=0),
        )
        bom = bom_service.generate_bom(costed_project.id, context).value

        rows = list(csv.DictReader(io.StringIO(bom_service.export_to_csv(bom))))

        assert rows[2]["Lead Time (days)"] == "0"
        assert rows[1]["Lead Time (days)"] == "35"
