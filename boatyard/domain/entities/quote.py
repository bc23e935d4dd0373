"""
Quote Entities - Versioned commercial offers for a project.

Each quote is an independent version with its own status. A quote's lines
are a snapshot of the configuration at creation time; later configuration
edits never change an existing quote.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from boatyard.domain.pricing import ZERO, calculate_line_total, calculate_totals, to_decimal
from .base import (
    dump_date,
    dump_datetime,
    dump_decimal,
    load_date,
    load_datetime,
    load_decimal,
    new_id,
)
from .configuration import ConfigurationItem


class QuoteStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    SUPERSEDED = "SUPERSEDED"


@dataclass(frozen=True)
class QuoteLine:
    """A priced line on a quote, copied from a configuration item."""
    id: str
    description: str
    quantity: Decimal
    unit: str
    unit_price_excl_vat: Decimal
    line_total_excl_vat: Decimal
    category: str = "General"
    configuration_item_id: Optional[str] = None
    is_optional: bool = False

    @classmethod
    def from_item(cls, item: ConfigurationItem) -> "QuoteLine":
        return cls(
            id=new_id(),
            configuration_item_id=item.id,
            category=item.category,
            description=item.name,
            quantity=item.quantity,
            unit=item.unit,
            unit_price_excl_vat=item.unit_price_excl_vat,
            line_total_excl_vat=item.line_total_excl_vat,
        )

    @classmethod
    def create(cls, description: str, quantity, unit_price_excl_vat, unit: str = "pcs",
               category: str = "General", configuration_item_id: Optional[str] = None,
               is_optional: bool = False) -> "QuoteLine":
        quantity = to_decimal(quantity)
        unit_price = to_decimal(unit_price_excl_vat)
        return cls(
            id=new_id(),
            configuration_item_id=configuration_item_id,
            category=category,
            description=description,
            quantity=quantity,
            unit=unit,
            unit_price_excl_vat=unit_price,
            line_total_excl_vat=calculate_line_total(quantity, unit_price),
            is_optional=is_optional,
        )

    def copy(self) -> "QuoteLine":
        """Same line under a new id."""
        return replace(self, id=new_id())

    @property
    def is_included(self) -> bool:
        # Optional lines are offered but not part of the quoted total.
        return not self.is_optional

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'configuration_item_id': self.configuration_item_id,
            'category': self.category,
            'description': self.description,
            'quantity': dump_decimal(self.quantity),
            'unit': self.unit,
            'unit_price_excl_vat': dump_decimal(self.unit_price_excl_vat),
            'line_total_excl_vat': dump_decimal(self.line_total_excl_vat),
            'is_optional': self.is_optional,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteLine":
        quantity = load_decimal(data['quantity'])
        unit_price = load_decimal(data['unit_price_excl_vat'])
        return cls(
            id=data['id'],
            configuration_item_id=data.get('configuration_item_id'),
            category=data.get('category', 'General'),
            description=data['description'],
            quantity=quantity,
            unit=data.get('unit', 'pcs'),
            unit_price_excl_vat=unit_price,
            line_total_excl_vat=calculate_line_total(quantity, unit_price),
            is_optional=data.get('is_optional', False),
        )


@dataclass(frozen=True)
class ProjectQuote:
    """
    One version of a quote.

    Attributes:
        quote_number: 'QUO-<year>-<seq>-v<version>' derived from the project number
        version: 1-based, equal to the number of quotes on the project at creation
        lines: Snapshot of the included configuration items
        valid_until: Last day the offer is valid
        superseded_by: Id of the quote that replaced this one
        based_on_quote_id: Source quote when created via a new version
    """

    id: str
    quote_number: str
    version: int
    status: QuoteStatus
    valid_until: date
    created_at: datetime
    created_by: str
    lines: List[QuoteLine] = field(default_factory=list)

    discount_percent: Optional[Decimal] = None
    vat_rate: Decimal = Decimal("21")
    subtotal_excl_vat: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_excl_vat: Decimal = ZERO
    vat_amount: Decimal = ZERO
    total_incl_vat: Decimal = ZERO

    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    delivery_weeks: Optional[int] = None
    notes: Optional[str] = None

    sent_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    superseded_at: Optional[datetime] = None
    superseded_by: Optional[str] = None
    based_on_quote_id: Optional[str] = None

    def recalculated(self) -> "ProjectQuote":
        """Copy with totals rederived from lines, discount and VAT rate."""
        totals = calculate_totals(self.lines, self.discount_percent, self.vat_rate)
        return replace(
            self,
            subtotal_excl_vat=totals.subtotal_excl_vat,
            discount_amount=totals.discount_amount,
            total_excl_vat=totals.total_excl_vat,
            vat_amount=totals.vat_amount,
            total_incl_vat=totals.total_incl_vat,
        )

    @property
    def is_draft(self) -> bool:
        return self.status == QuoteStatus.DRAFT

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'quote_number': self.quote_number,
            'version': self.version,
            'status': self.status.value,
            'lines': [line.to_dict() for line in self.lines],
            'discount_percent': dump_decimal(self.discount_percent),
            'vat_rate': dump_decimal(self.vat_rate),
            'subtotal_excl_vat': dump_decimal(self.subtotal_excl_vat),
            'discount_amount': dump_decimal(self.discount_amount),
            'total_excl_vat': dump_decimal(self.total_excl_vat),
            'vat_amount': dump_decimal(self.vat_amount),
            'total_incl_vat': dump_decimal(self.total_incl_vat),
            'valid_until': dump_date(self.valid_until),
            'payment_terms': self.payment_terms,
            'delivery_terms': self.delivery_terms,
            'delivery_weeks': self.delivery_weeks,
            'notes': self.notes,
            'sent_at': dump_datetime(self.sent_at),
            'accepted_at': dump_datetime(self.accepted_at),
            'rejected_at': dump_datetime(self.rejected_at),
            'superseded_at': dump_datetime(self.superseded_at),
            'superseded_by': self.superseded_by,
            'based_on_quote_id': self.based_on_quote_id,
            'created_at': dump_datetime(self.created_at),
            'created_by': self.created_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectQuote":
        quote = cls(
            id=data['id'],
            quote_number=data['quote_number'],
            version=data['version'],
            status=QuoteStatus(data['status']),
            lines=[QuoteLine.from_dict(line) for line in data.get('lines', [])],
            discount_percent=load_decimal(data.get('discount_percent')),
            vat_rate=load_decimal(data.get('vat_rate', '21')),
            valid_until=load_date(data['valid_until']),
            payment_terms=data.get('payment_terms'),
            delivery_terms=data.get('delivery_terms'),
            delivery_weeks=data.get('delivery_weeks'),
            notes=data.get('notes'),
            sent_at=load_datetime(data.get('sent_at')),
            accepted_at=load_datetime(data.get('accepted_at')),
            rejected_at=load_datetime(data.get('rejected_at')),
            superseded_at=load_datetime(data.get('superseded_at')),
            superseded_by=data.get('superseded_by'),
            based_on_quote_id=data.get('based_on_quote_id'),
            created_at=load_datetime(data['created_at']),
            created_by=data['created_by'],
        )
        return quote.recalculated()
