"""
Configuration Entities - Equipment line items owned by a project.

A configuration's totals are a pure function of its items and its
discount/VAT settings. Every constructor path below recomputes them, so a
caller never observes a total inconsistent with its inputs.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from boatyard.domain.pricing import (
    ZERO,
    calculate_line_total,
    calculate_totals,
    to_decimal,
)
from .base import (
    dump_datetime,
    dump_decimal,
    load_datetime,
    load_decimal,
    new_id,
    utcnow,
)


class ConfigurationItemType(str, Enum):
    """Source of a configuration item."""
    ARTICLE = "ARTICLE"
    KIT = "KIT"
    CUSTOM = "CUSTOM"
    LEGACY = "LEGACY"


class PropulsionType(str, Enum):
    ELECTRIC = "Electric"
    HYBRID = "Hybrid"
    DIESEL = "Diesel"
    OUTBOARD = "Outboard"


class SnapshotTrigger(str, Enum):
    """What caused a configuration or BOM snapshot to be taken."""
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    AMENDMENT = "AMENDMENT"
    MANUAL = "MANUAL"


# Fields a caller may change on an existing item. Line totals, ids and
# ordering are owned by the services.
EDITABLE_ITEM_FIELDS = frozenset({
    "name",
    "description",
    "category",
    "article_number",
    "quantity",
    "unit",
    "unit_price_excl_vat",
    "unit_cost",
    "supplier",
    "lead_time_days",
    "is_included",
    "ce_relevant",
    "safety_critical",
})

DECIMAL_ITEM_FIELDS = frozenset({"quantity", "unit_price_excl_vat", "unit_cost"})


@dataclass(frozen=True)
class ConfigurationItemInput:
    """Input for adding an item to a configuration (directly or by amendment)."""
    name: str
    quantity: Decimal
    unit_price_excl_vat: Decimal
    unit: str = "pcs"
    category: str = "General"
    item_type: ConfigurationItemType = ConfigurationItemType.CUSTOM
    description: Optional[str] = None
    article_number: Optional[str] = None
    unit_cost: Optional[Decimal] = None
    supplier: Optional[str] = None
    lead_time_days: Optional[int] = None
    is_included: bool = True
    ce_relevant: bool = False
    safety_critical: bool = False


@dataclass(frozen=True)
class ConfigurationItem:
    """
    Single equipment line in a configuration.

    Attributes:
        id: Unique identifier
        name: Display name (e.g. 'Electric Motor 40kW')
        quantity: Ordered quantity
        unit_price_excl_vat: Sell price per unit
        line_total_excl_vat: quantity x unit price, always recomputed
        unit_cost: Actual supplier cost per unit, None when unknown
        is_included: False for items that are excluded but still visible
        sort_order: Render and amendment order (0..n-1)
    """

    id: str
    name: str
    quantity: Decimal
    unit: str
    unit_price_excl_vat: Decimal
    line_total_excl_vat: Decimal
    category: str = "General"
    item_type: ConfigurationItemType = ConfigurationItemType.CUSTOM
    description: Optional[str] = None
    article_number: Optional[str] = None
    unit_cost: Optional[Decimal] = None
    supplier: Optional[str] = None
    lead_time_days: Optional[int] = None
    is_included: bool = True
    ce_relevant: bool = False
    safety_critical: bool = False
    sort_order: int = 0

    @classmethod
    def create(cls, item_input: ConfigurationItemInput, sort_order: int) -> "ConfigurationItem":
        """Build a new item from input, computing its line total."""
        quantity = to_decimal(item_input.quantity)
        unit_price = to_decimal(item_input.unit_price_excl_vat)
        return cls(
            id=new_id(),
            name=item_input.name.strip(),
            quantity=quantity,
            unit=item_input.unit,
            unit_price_excl_vat=unit_price,
            line_total_excl_vat=calculate_line_total(quantity, unit_price),
            category=item_input.category,
            item_type=ConfigurationItemType(item_input.item_type),
            description=item_input.description,
            article_number=item_input.article_number,
            unit_cost=to_decimal(item_input.unit_cost),
            supplier=item_input.supplier,
            lead_time_days=item_input.lead_time_days,
            is_included=item_input.is_included,
            ce_relevant=item_input.ce_relevant,
            safety_critical=item_input.safety_critical,
            sort_order=sort_order,
        )

    def with_updates(self, **changes) -> "ConfigurationItem":
        """Return a copy with changes applied and the line total recomputed."""
        for key in DECIMAL_ITEM_FIELDS & changes.keys():
            changes[key] = to_decimal(changes[key])
        updated = replace(self, **changes)
        return replace(
            updated,
            line_total_excl_vat=calculate_line_total(updated.quantity, updated.unit_price_excl_vat),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'name': self.name,
            'quantity': dump_decimal(self.quantity),
            'unit': self.unit,
            'unit_price_excl_vat': dump_decimal(self.unit_price_excl_vat),
            'line_total_excl_vat': dump_decimal(self.line_total_excl_vat),
            'category': self.category,
            'item_type': self.item_type.value,
            'description': self.description,
            'article_number': self.article_number,
            'unit_cost': dump_decimal(self.unit_cost),
            'supplier': self.supplier,
            'lead_time_days': self.lead_time_days,
            'is_included': self.is_included,
            'ce_relevant': self.ce_relevant,
            'safety_critical': self.safety_critical,
            'sort_order': self.sort_order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConfigurationItem":
        quantity = load_decimal(data['quantity'])
        unit_price = load_decimal(data['unit_price_excl_vat'])
        return cls(
            id=data['id'],
            name=data['name'],
            quantity=quantity,
            unit=data.get('unit', 'pcs'),
            unit_price_excl_vat=unit_price,
            line_total_excl_vat=calculate_line_total(quantity, unit_price),
            category=data.get('category', 'General'),
            item_type=ConfigurationItemType(data.get('item_type', 'CUSTOM')),
            description=data.get('description'),
            article_number=data.get('article_number'),
            unit_cost=load_decimal(data.get('unit_cost')),
            supplier=data.get('supplier'),
            lead_time_days=data.get('lead_time_days'),
            is_included=data.get('is_included', True),
            ce_relevant=data.get('ce_relevant', False),
            safety_critical=data.get('safety_critical', False),
            sort_order=data.get('sort_order', 0),
        )


def order_items(items: Iterable[ConfigurationItem]) -> List[ConfigurationItem]:
    """Sort by sort_order; equal orders keep insertion order."""
    indexed = list(enumerate(items))
    indexed.sort(key=lambda pair: (pair[1].sort_order, pair[0]))
    return [item for _, item in indexed]


def renumber_items(items: Iterable[ConfigurationItem]) -> List[ConfigurationItem]:
    """Reassign sort_order contiguously (0..n-1) in the given order."""
    return [
        item if item.sort_order == index else replace(item, sort_order=index)
        for index, item in enumerate(items)
    ]


@dataclass(frozen=True)
class Configuration:
    """
    Equipment configuration of a project with derived pricing.

    Totals are recomputed by with_items()/with_discount()/with_vat_rate();
    never assign them directly.
    """

    items: List[ConfigurationItem] = field(default_factory=list)
    propulsion_type: PropulsionType = PropulsionType.ELECTRIC
    discount_percent: Optional[Decimal] = None
    vat_rate: Decimal = Decimal("21")

    subtotal_excl_vat: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_excl_vat: Decimal = ZERO
    vat_amount: Decimal = ZERO
    total_incl_vat: Decimal = ZERO

    is_frozen: bool = False
    frozen_at: Optional[datetime] = None
    frozen_by: Optional[str] = None
    last_modified_at: Optional[datetime] = None
    last_modified_by: Optional[str] = None

    @classmethod
    def empty(cls, vat_rate: Decimal, propulsion_type: PropulsionType = PropulsionType.ELECTRIC,
              created_by: Optional[str] = None) -> "Configuration":
        return cls(
            propulsion_type=propulsion_type,
            vat_rate=to_decimal(vat_rate),
            last_modified_at=utcnow(),
            last_modified_by=created_by,
        )

    def _recalculated(self) -> "Configuration":
        totals = calculate_totals(self.items, self.discount_percent, self.vat_rate)
        return replace(
            self,
            subtotal_excl_vat=totals.subtotal_excl_vat,
            discount_amount=totals.discount_amount,
            total_excl_vat=totals.total_excl_vat,
            vat_amount=totals.vat_amount,
            total_incl_vat=totals.total_incl_vat,
        )

    def with_items(self, items: Iterable[ConfigurationItem], modified_by: Optional[str] = None) -> "Configuration":
        """Return a copy holding the given items, with totals recomputed."""
        return replace(
            self,
            items=list(items),
            last_modified_at=utcnow(),
            last_modified_by=modified_by or self.last_modified_by,
        )._recalculated()

    def with_discount(self, discount_percent: Optional[Decimal], modified_by: Optional[str] = None) -> "Configuration":
        return replace(
            self,
            discount_percent=to_decimal(discount_percent),
            last_modified_at=utcnow(),
            last_modified_by=modified_by or self.last_modified_by,
        )._recalculated()

    def frozen(self, frozen_by: str) -> "Configuration":
        now = utcnow()
        return replace(self, is_frozen=True, frozen_at=now, frozen_by=frozen_by)

    def sorted_items(self) -> List[ConfigurationItem]:
        return order_items(self.items)

    def included_items(self) -> List[ConfigurationItem]:
        return [item for item in self.sorted_items() if item.is_included]

    def find_item(self, item_id: str) -> Optional[ConfigurationItem]:
        return next((item for item in self.items if item.id == item_id), None)

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'items': [item.to_dict() for item in self.items],
            'propulsion_type': self.propulsion_type.value,
            'discount_percent': dump_decimal(self.discount_percent),
            'vat_rate': dump_decimal(self.vat_rate),
            'subtotal_excl_vat': dump_decimal(self.subtotal_excl_vat),
            'discount_amount': dump_decimal(self.discount_amount),
            'total_excl_vat': dump_decimal(self.total_excl_vat),
            'vat_amount': dump_decimal(self.vat_amount),
            'total_incl_vat': dump_decimal(self.total_incl_vat),
            'is_frozen': self.is_frozen,
            'frozen_at': dump_datetime(self.frozen_at),
            'frozen_by': self.frozen_by,
            'last_modified_at': dump_datetime(self.last_modified_at),
            'last_modified_by': self.last_modified_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Configuration":
        configuration = cls(
            items=[ConfigurationItem.from_dict(item) for item in data.get('items', [])],
            propulsion_type=PropulsionType(data.get('propulsion_type', PropulsionType.ELECTRIC.value)),
            discount_percent=load_decimal(data.get('discount_percent')),
            vat_rate=load_decimal(data.get('vat_rate', '21')),
            is_frozen=data.get('is_frozen', False),
            frozen_at=load_datetime(data.get('frozen_at')),
            frozen_by=data.get('frozen_by'),
            last_modified_at=load_datetime(data.get('last_modified_at')),
            last_modified_by=data.get('last_modified_by'),
        )
        # Stored totals are ignored; they are always rederived from items.
        return configuration._recalculated()


@dataclass(frozen=True)
class ConfigurationSnapshot:
    """Point-in-time copy of a configuration (freeze, amendment before/after)."""
    id: str
    snapshot_number: int
    data: Configuration
    trigger: SnapshotTrigger
    created_at: datetime
    created_by: str
    trigger_reason: Optional[str] = None

    @classmethod
    def capture(cls, configuration: Configuration, snapshot_number: int, trigger: SnapshotTrigger,
                created_by: str, trigger_reason: Optional[str] = None) -> "ConfigurationSnapshot":
        return cls(
            id=new_id(),
            snapshot_number=snapshot_number,
            data=configuration,
            trigger=trigger,
            created_at=utcnow(),
            created_by=created_by,
            trigger_reason=trigger_reason,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'snapshot_number': self.snapshot_number,
            'data': self.data.to_dict(),
            'trigger': self.trigger.value,
            'trigger_reason': self.trigger_reason,
            'created_at': dump_datetime(self.created_at),
            'created_by': self.created_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConfigurationSnapshot":
        return cls(
            id=data['id'],
            snapshot_number=data['snapshot_number'],
            data=Configuration.from_dict(data['data']),
            trigger=SnapshotTrigger(data['trigger']),
            trigger_reason=data.get('trigger_reason'),
            created_at=load_datetime(data['created_at']),
            created_by=data['created_by'],
        )
