"""
BOM Entities - Point-in-time bill of materials with cost estimation bookkeeping.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from boatyard.domain.pricing import ZERO
from .base import dump_datetime, dump_decimal, load_datetime, load_decimal
from .configuration import SnapshotTrigger


@dataclass(frozen=True)
class BOMItem:
    """
    A costed part in a BOM snapshot.

    Attributes:
        unit_cost: Actual supplier cost, or sell price x estimation ratio
        is_estimated: True when unit_cost was derived from the sell price
        estimation_ratio: Ratio used for the estimate (estimated items only)
        sell_price: Unit sell price the estimate was based on (estimated items only)
    """

    id: str
    name: str
    category: str
    quantity: Decimal
    unit: str
    unit_cost: Decimal
    total_cost: Decimal
    configuration_item_id: Optional[str] = None
    article_number: Optional[str] = None
    description: Optional[str] = None
    supplier: Optional[str] = None
    lead_time_days: Optional[int] = None
    is_estimated: bool = False
    estimation_ratio: Optional[Decimal] = None
    sell_price: Optional[Decimal] = None

    @property
    def cost_type(self) -> str:
        return "ESTIMATED" if self.is_estimated else "ACTUAL"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'configuration_item_id': self.configuration_item_id,
            'category': self.category,
            'article_number': self.article_number,
            'name': self.name,
            'description': self.description,
            'quantity': dump_decimal(self.quantity),
            'unit': self.unit,
            'unit_cost': dump_decimal(self.unit_cost),
            'total_cost': dump_decimal(self.total_cost),
            'supplier': self.supplier,
            'lead_time_days': self.lead_time_days,
            'is_estimated': self.is_estimated,
            'estimation_ratio': dump_decimal(self.estimation_ratio),
            'sell_price': dump_decimal(self.sell_price),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BOMItem":
        return cls(
            id=data['id'],
            configuration_item_id=data.get('configuration_item_id'),
            category=data.get('category', 'General'),
            article_number=data.get('article_number'),
            name=data['name'],
            description=data.get('description'),
            quantity=load_decimal(data['quantity']),
            unit=data.get('unit', 'pcs'),
            unit_cost=load_decimal(data['unit_cost']),
            total_cost=load_decimal(data['total_cost']),
            supplier=data.get('supplier'),
            lead_time_days=data.get('lead_time_days'),
            is_estimated=data.get('is_estimated', False),
            estimation_ratio=load_decimal(data.get('estimation_ratio')),
            sell_price=load_decimal(data.get('sell_price')),
        )


@dataclass(frozen=True)
class BOMSnapshot:
    """
    Append-only BOM baseline. The latest snapshot is the one shown by default.

    total_cost_excl_vat always equals estimated_cost_total + actual_cost_total.
    """

    id: str
    snapshot_number: int
    trigger: SnapshotTrigger
    cost_estimation_ratio: Decimal
    created_at: datetime
    created_by: str
    items: List[BOMItem] = field(default_factory=list)
    configuration_snapshot_id: Optional[str] = None
    total_parts: Decimal = Decimal("0")
    total_cost_excl_vat: Decimal = ZERO
    estimated_cost_count: int = 0
    estimated_cost_total: Decimal = ZERO
    actual_cost_total: Decimal = ZERO

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'snapshot_number': self.snapshot_number,
            'configuration_snapshot_id': self.configuration_snapshot_id,
            'trigger': self.trigger.value,
            'items': [item.to_dict() for item in self.items],
            'total_parts': dump_decimal(self.total_parts),
            'total_cost_excl_vat': dump_decimal(self.total_cost_excl_vat),
            'estimated_cost_count': self.estimated_cost_count,
            'estimated_cost_total': dump_decimal(self.estimated_cost_total),
            'actual_cost_total': dump_decimal(self.actual_cost_total),
            'cost_estimation_ratio': dump_decimal(self.cost_estimation_ratio),
            'created_at': dump_datetime(self.created_at),
            'created_by': self.created_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BOMSnapshot":
        return cls(
            id=data['id'],
            snapshot_number=data['snapshot_number'],
            configuration_snapshot_id=data.get('configuration_snapshot_id'),
            trigger=SnapshotTrigger(data['trigger']),
            items=[BOMItem.from_dict(item) for item in data.get('items', [])],
            total_parts=load_decimal(data['total_parts']),
            total_cost_excl_vat=load_decimal(data['total_cost_excl_vat']),
            estimated_cost_count=data['estimated_cost_count'],
            estimated_cost_total=load_decimal(data['estimated_cost_total']),
            actual_cost_total=load_decimal(data['actual_cost_total']),
            cost_estimation_ratio=load_decimal(data['cost_estimation_ratio']),
            created_at=load_datetime(data['created_at']),
            created_by=data['created_by'],
        )
