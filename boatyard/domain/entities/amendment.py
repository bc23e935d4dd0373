"""
Amendment Entity - Audited change to a frozen configuration.

Amendments are append-only. There is no update or delete path; a correction
is recorded as another amendment.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from .base import dump_datetime, dump_decimal, load_datetime, load_decimal


class AmendmentType(str, Enum):
    EQUIPMENT_ADD = "EQUIPMENT_ADD"
    EQUIPMENT_REMOVE = "EQUIPMENT_REMOVE"
    EQUIPMENT_CHANGE = "EQUIPMENT_CHANGE"
    SCOPE_CHANGE = "SCOPE_CHANGE"
    PRICE_ADJUSTMENT = "PRICE_ADJUSTMENT"
    SPECIFICATION_CHANGE = "SPECIFICATION_CHANGE"


@dataclass(frozen=True)
class ProjectAmendment:
    """
    A recorded change to a frozen configuration.

    Attributes:
        amendment_number: Per-project sequence starting at 1
        reason: Why the change was made (never empty)
        affected_items: Names of added, removed and updated items
        price_impact_excl_vat: New subtotal minus old subtotal (signed)
        before_snapshot_id: Configuration snapshot taken before the change
        after_snapshot_id: Configuration snapshot taken after the change
    """

    id: str
    amendment_number: int
    type: AmendmentType
    reason: str
    price_impact_excl_vat: Decimal
    before_snapshot_id: str
    after_snapshot_id: str
    requested_by: str
    requested_at: datetime
    created_at: datetime
    affected_items: List[str] = field(default_factory=list)
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'amendment_number': self.amendment_number,
            'type': self.type.value,
            'reason': self.reason,
            'affected_items': list(self.affected_items),
            'price_impact_excl_vat': dump_decimal(self.price_impact_excl_vat),
            'before_snapshot_id': self.before_snapshot_id,
            'after_snapshot_id': self.after_snapshot_id,
            'requested_by': self.requested_by,
            'requested_at': dump_datetime(self.requested_at),
            'approved_by': self.approved_by,
            'approved_at': dump_datetime(self.approved_at),
            'created_at': dump_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectAmendment":
        return cls(
            id=data['id'],
            amendment_number=data['amendment_number'],
            type=AmendmentType(data['type']),
            reason=data['reason'],
            affected_items=list(data.get('affected_items', [])),
            price_impact_excl_vat=load_decimal(data['price_impact_excl_vat']),
            before_snapshot_id=data['before_snapshot_id'],
            after_snapshot_id=data['after_snapshot_id'],
            requested_by=data['requested_by'],
            requested_at=load_datetime(data['requested_at']),
            approved_by=data.get('approved_by'),
            approved_at=load_datetime(data.get('approved_at')),
            created_at=load_datetime(data['created_at']),
        )
