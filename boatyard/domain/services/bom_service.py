"""
BOM Service - Bill of materials baselines with cost estimation fallback.

For every included configuration item the unit cost is resolved as:
- the item's actual supplier cost (unit_cost) when known
- otherwise sell price x estimation ratio, flagged as estimated

Snapshots are append-only; regenerating always adds a new snapshot with the
next snapshot number. A high share of estimated cost is reported through
get_estimation_summary() and never blocks generation.
"""
import io
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import pandas as pd

from boatyard.domain.audit import AuditContext
from boatyard.domain.entities.base import new_id, utcnow
from boatyard.domain.entities.bom import BOMItem, BOMSnapshot
from boatyard.domain.entities.configuration import ConfigurationItem, SnapshotTrigger
from boatyard.domain.entities.project import Project
from boatyard.domain.exceptions import ValidationError
from boatyard.domain.pricing import HUNDRED, ZERO, to_decimal, to_money
from boatyard.domain.result import returns_result
from .base_service import ProjectAggregateService

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Article Number",
    "Name",
    "Category",
    "Description",
    "Quantity",
    "Unit",
    "Unit Cost",
    "Total Cost",
    "Cost Type",
    "Estimation Ratio",
    "Sell Price (if estimated)",
    "Supplier",
    "Lead Time (days)",
]


@dataclass(frozen=True)
class EstimationSummary:
    total_items: int
    estimated_count: int
    estimated_value: Decimal
    actual_value: Decimal
    estimated_value_share: Decimal  # 0..1 of total cost
    ratio: Decimal
    warn_threshold: Decimal
    is_high_estimation: bool

    def to_dict(self) -> dict:
        return {
            'total_items': self.total_items,
            'estimated_count': self.estimated_count,
            'estimated_value': str(self.estimated_value),
            'actual_value': str(self.actual_value),
            'estimated_value_share': str(self.estimated_value_share),
            'ratio': str(self.ratio),
            'warn_threshold': str(self.warn_threshold),
            'is_high_estimation': self.is_high_estimation,
        }


@dataclass(frozen=True)
class CategoryCost:
    category: str
    cost: Decimal
    estimated_cost: Decimal
    percentage: Decimal

    def to_dict(self) -> dict:
        return {
            'category': self.category,
            'cost': str(self.cost),
            'estimated_cost': str(self.estimated_cost),
            'percentage': str(self.percentage),
        }


@dataclass(frozen=True)
class MarginSummary:
    sell_price: Decimal
    cost: Decimal
    margin: Decimal
    margin_percent: Decimal
    estimated_cost_percent: Decimal

    def to_dict(self) -> dict:
        return {
            'sell_price': str(self.sell_price),
            'cost': str(self.cost),
            'margin': str(self.margin),
            'margin_percent': str(self.margin_percent),
            'estimated_cost_percent': str(self.estimated_cost_percent),
        }


def cost_item(item: ConfigurationItem, ratio: Decimal) -> BOMItem:
    """Resolve the cost of one configuration item."""
    is_estimated = item.unit_cost is None
    unit_cost = to_money(item.unit_price_excl_vat * ratio) if is_estimated else to_money(item.unit_cost)
    return BOMItem(
        id=new_id(),
        configuration_item_id=item.id,
        category=item.category,
        article_number=item.article_number,
        name=item.name,
        description=item.description,
        quantity=item.quantity,
        unit=item.unit,
        unit_cost=unit_cost,
        total_cost=to_money(unit_cost * item.quantity),
        supplier=item.supplier,
        lead_time_days=item.lead_time_days,
        is_estimated=is_estimated,
        estimation_ratio=ratio if is_estimated else None,
        sell_price=item.unit_price_excl_vat if is_estimated else None,
    )


def build_snapshot(
    project: Project,
    ratio: Decimal,
    context: AuditContext,
    trigger: SnapshotTrigger = SnapshotTrigger.MANUAL,
) -> BOMSnapshot:
    """
    Build the next BOM snapshot for a project without persisting it.

    Args:
        project: Project whose current configuration is costed
        ratio: Estimation ratio for items without a supplier cost
        context: Audit identity
        trigger: What caused the snapshot

    Returns:
        BOMSnapshot numbered one above the project's latest
    """
    ratio = to_decimal(ratio)
    items = [cost_item(item, ratio) for item in project.configuration.included_items()]

    estimated = [item for item in items if item.is_estimated]
    estimated_total = to_money(sum((item.total_cost for item in estimated), ZERO))
    actual_total = to_money(sum((item.total_cost for item in items if not item.is_estimated), ZERO))
    config_snapshot = project.latest_configuration_snapshot

    return BOMSnapshot(
        id=new_id(),
        snapshot_number=len(project.bom_snapshots) + 1,
        configuration_snapshot_id=config_snapshot.id if config_snapshot else None,
        trigger=SnapshotTrigger(trigger),
        items=items,
        total_parts=sum((item.quantity for item in items), Decimal("0")),
        total_cost_excl_vat=to_money(estimated_total + actual_total),
        estimated_cost_count=len(estimated),
        estimated_cost_total=estimated_total,
        actual_cost_total=actual_total,
        cost_estimation_ratio=ratio,
        created_at=utcnow(),
        created_by=context.user_id,
    )


def get_estimation_summary(bom: BOMSnapshot, warn_threshold: Decimal = Decimal("0.3")) -> EstimationSummary:
    """Share of estimated cost in a BOM and whether it exceeds the threshold."""
    total = bom.total_cost_excl_vat
    share = (bom.estimated_cost_total / total) if total > 0 else Decimal("0")
    return EstimationSummary(
        total_items=len(bom.items),
        estimated_count=bom.estimated_cost_count,
        estimated_value=bom.estimated_cost_total,
        actual_value=bom.actual_cost_total,
        estimated_value_share=share.quantize(Decimal("0.0001")),
        ratio=bom.cost_estimation_ratio,
        warn_threshold=to_decimal(warn_threshold),
        is_high_estimation=share > to_decimal(warn_threshold),
    )


def export_to_csv(bom: BOMSnapshot) -> str:
    """
    Serialize a BOM to CSV, one row per item in configuration order.

    The Cost Type column is ACTUAL or ESTIMATED.
    """
    rows = [
        {
            "Article Number": item.article_number or "",
            "Name": item.name,
            "Category": item.category,
            "Description": item.description or "",
            "Quantity": str(item.quantity),
            "Unit": item.unit,
            "Unit Cost": str(item.unit_cost),
            "Total Cost": str(item.total_cost),
            "Cost Type": item.cost_type,
            "Estimation Ratio": f"{(item.estimation_ratio * HUNDRED).normalize():f}%" if item.is_estimated else "",
            "Sell Price (if estimated)": str(item.sell_price) if item.is_estimated else "",
            "Supplier": item.supplier or "",
            "Lead Time (days)": str(item.lead_time_days) if item.lead_time_days is not None else "",
        }
        for item in bom.items
    ]
    df = pd.DataFrame(rows, columns=CSV_COLUMNS, dtype=str)
    output = io.StringIO()
    df.to_csv(output, index=False, lineterminator="\n")
    return output.getvalue()


def get_cost_summary_by_category(bom: BOMSnapshot) -> List[CategoryCost]:
    """Cost per category, most expensive first."""
    totals = {}
    for item in bom.items:
        cost, estimated = totals.get(item.category, (ZERO, ZERO))
        totals[item.category] = (
            cost + item.total_cost,
            estimated + (item.total_cost if item.is_estimated else ZERO),
        )

    total = bom.total_cost_excl_vat
    summary = [
        CategoryCost(
            category=category,
            cost=to_money(cost),
            estimated_cost=to_money(estimated),
            percentage=(cost / total * HUNDRED).quantize(Decimal("0.1")) if total > 0 else Decimal("0.0"),
        )
        for category, (cost, estimated) in totals.items()
    ]
    return sorted(summary, key=lambda c: c.cost, reverse=True)


def get_critical_path_items(bom: BOMSnapshot, limit: int = 5) -> List[BOMItem]:
    """Items with the longest supplier lead times."""
    with_lead_time = [item for item in bom.items if item.lead_time_days and item.lead_time_days > 0]
    return sorted(with_lead_time, key=lambda item: item.lead_time_days, reverse=True)[:limit]


class BOMService(ProjectAggregateService):
    """Generate and inspect BOM snapshots for a project."""

    def get_estimation_ratio(self) -> Decimal:
        return self.settings.get_cost_estimation().default_ratio

    @returns_result
    def generate_bom(
        self,
        project_id: str,
        context: AuditContext,
        trigger: SnapshotTrigger = SnapshotTrigger.MANUAL,
    ) -> BOMSnapshot:
        """
        Append a BOM snapshot costed from the current configuration.

        Args:
            project_id: Project identifier
            context: Audit identity
            trigger: What caused the snapshot

        Returns:
            Result with the new BOMSnapshot
        """
        project = self._load(project_id)
        if not project.configuration.included_items():
            raise ValidationError("configuration", "cannot generate a BOM without included items")

        bom = build_snapshot(project, self.get_estimation_ratio(), context, trigger)
        self._save(project, {"bom_snapshots": [*project.bom_snapshots, bom]})

        logger.info(
            f"Generated BOM #{bom.snapshot_number} for {project.project_number} with "
            f"{bom.total_parts} parts ({bom.trigger.value}); {bom.estimated_cost_count} item(s) "
            f"estimated at ratio {bom.cost_estimation_ratio}"
        )
        return bom

    @returns_result
    def get_latest_bom(self, project_id: str) -> Optional[BOMSnapshot]:
        return self._load(project_id).latest_bom

    @returns_result
    def get_all_boms(self, project_id: str) -> List[BOMSnapshot]:
        return list(self._load(project_id).bom_snapshots)

    def get_estimation_summary(self, bom: BOMSnapshot,
                               warn_threshold: Optional[Decimal] = None) -> EstimationSummary:
        if warn_threshold is None:
            warn_threshold = self.settings.get_cost_estimation().warn_threshold
        return get_estimation_summary(bom, warn_threshold)

    def export_to_csv(self, bom: BOMSnapshot) -> str:
        return export_to_csv(bom)

    def get_cost_summary_by_category(self, bom: BOMSnapshot) -> List[CategoryCost]:
        return get_cost_summary_by_category(bom)

    def get_critical_path_items(self, bom: BOMSnapshot, limit: int = 5) -> List[BOMItem]:
        return get_critical_path_items(bom, limit)

    @returns_result
    def calculate_margin(self, project_id: str) -> Optional[MarginSummary]:
        """Configuration sell price against the latest BOM cost; None without a BOM."""
        project = self._load(project_id)
        bom = project.latest_bom
        if bom is None:
            return None

        sell_price = project.configuration.total_excl_vat
        cost = bom.total_cost_excl_vat
        margin = to_money(sell_price - cost)
        return MarginSummary(
            sell_price=sell_price,
            cost=cost,
            margin=margin,
            margin_percent=(margin / sell_price * HUNDRED).quantize(Decimal("0.1")) if sell_price > 0 else Decimal("0.0"),
            estimated_cost_percent=(bom.estimated_cost_total / cost * HUNDRED).quantize(Decimal("1")) if cost > 0 else Decimal("0"),
        )
