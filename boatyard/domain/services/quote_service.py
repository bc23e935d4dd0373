"""
Quote Service - Versioned quotes and their per-quote status machine.

Per-quote states:

    DRAFT -> SENT -> ACCEPTED | REJECTED
             SENT -> EXPIRED (validity date passed)
    DRAFT | SENT -> SUPERSEDED (replaced by a newer version)

A project holds at most one DRAFT quote. Quote status changes never move
the project status; ProjectService owns project transitions.
"""
import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boatyard.config import get_config
from boatyard.domain.audit import AuditContext
from boatyard.domain.entities.base import new_id, utcnow
from boatyard.domain.entities.project import Project
from boatyard.domain.entities.quote import ProjectQuote, QuoteLine, QuoteStatus
from boatyard.domain.exceptions import (
    InvalidTransitionError,
    PolicyError,
    QuoteNotFoundError,
    ValidationError,
)
from boatyard.domain.pricing import to_decimal
from boatyard.domain.result import returns_result
from boatyard.domain.workflow.status_machine import StatusMachine
from .base_service import ProjectAggregateService

logger = logging.getLogger(__name__)

DRAFT_UPDATE_FIELDS = frozenset({
    "lines",
    "discount_percent",
    "valid_until",
    "payment_terms",
    "delivery_terms",
    "delivery_weeks",
    "notes",
})


@dataclass(frozen=True)
class QuoteDraftOptions:
    """Optional overrides when creating a draft; unset fields use settings."""
    validity_days: Optional[int] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    delivery_weeks: Optional[int] = None
    notes: Optional[str] = None


def build_quote_number(project_number: str, version: int) -> str:
    """'PRJ-2026-0001' version 2 -> 'QUO-2026-0001-v2'."""
    _, _, body = project_number.partition("-")
    return f"{get_config().quote_number_prefix}-{body or project_number}-v{version}"


def today_utc() -> date:
    return utcnow().date()


class QuoteService(ProjectAggregateService):
    """Create, revise and progress quotes on a project."""

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_editable(self, project: Project) -> None:
        if not StatusMachine.is_editable(project.status):
            raise PolicyError(
                f"Quotes cannot be created for project {project.project_number} "
                f"in {project.status.value} status"
            )

    @staticmethod
    def _find(project: Project, quote_id: str) -> ProjectQuote:
        quote = project.find_quote(quote_id)
        if quote is None:
            raise QuoteNotFoundError(quote_id)
        return quote

    @staticmethod
    def _supersede_drafts(quotes: List[ProjectQuote], new_quote_id: str) -> List[ProjectQuote]:
        now = utcnow()
        return [
            replace(q, status=QuoteStatus.SUPERSEDED, superseded_at=now, superseded_by=new_quote_id)
            if q.status == QuoteStatus.DRAFT else q
            for q in quotes
        ]

    def _valid_until(self, validity_days: Optional[int] = None) -> date:
        days = validity_days if validity_days is not None else self.settings.get_quote_validity_days()
        if days <= 0:
            raise ValidationError("validity_days", "must be positive")
        return today_utc() + timedelta(days=days)

    def _replace_quote(self, project: Project, quote: ProjectQuote,
                       extra_changes: Optional[Dict[str, Any]] = None) -> Project:
        quotes = [quote if q.id == quote.id else q for q in project.quotes]
        changes = {"quotes": quotes}
        changes.update(extra_changes or {})
        return self._save(project, changes)

    def _move(self, project_id: str, quote_id: str, required: QuoteStatus,
              target: QuoteStatus, **stamps) -> ProjectQuote:
        project = self._load(project_id)
        quote = self._find(project, quote_id)
        if quote.status != required:
            raise InvalidTransitionError(
                "Quote", quote.status.value, target.value,
                f"quote must be {required.value}",
            )
        moved = replace(quote, status=target, **stamps)
        extra = {"current_quote_id": moved.id} if target == QuoteStatus.ACCEPTED else None
        self._replace_quote(project, moved, extra)
        logger.info(f"Quote {quote.quote_number} moved {required.value} -> {target.value}")
        return moved

    # =========================================================================
    # Commands
    # =========================================================================

    @returns_result
    def create_draft(self, project_id: str, context: AuditContext,
                     options: Optional[QuoteDraftOptions] = None) -> ProjectQuote:
        """
        Snapshot the current configuration into a new DRAFT quote.

        Any existing DRAFT is superseded by the new one.

        Args:
            project_id: Project identifier
            context: Audit identity
            options: Validity and term overrides

        Returns:
            Result with the new ProjectQuote
        """
        options = options or QuoteDraftOptions()
        project = self._load(project_id)
        self._require_editable(project)

        configuration = project.configuration
        if configuration.item_count == 0:
            raise ValidationError("configuration", "cannot create a quote without configuration items")

        version = len(project.quotes) + 1
        quote = ProjectQuote(
            id=new_id(),
            quote_number=build_quote_number(project.project_number, version),
            version=version,
            status=QuoteStatus.DRAFT,
            lines=[QuoteLine.from_item(item) for item in configuration.included_items()],
            discount_percent=configuration.discount_percent,
            vat_rate=configuration.vat_rate,
            valid_until=self._valid_until(options.validity_days),
            payment_terms=options.payment_terms or self.settings.get_default_payment_terms(),
            delivery_terms=options.delivery_terms or self.settings.get_default_delivery_terms(),
            delivery_weeks=options.delivery_weeks,
            notes=options.notes,
            created_at=utcnow(),
            created_by=context.user_id,
        ).recalculated()

        quotes = self._supersede_drafts(project.quotes, quote.id) + [quote]
        self._save(project, {"quotes": quotes, "current_quote_id": quote.id})

        logger.info(f"Created draft quote {quote.quote_number} for {project.project_number}")
        return quote

    @returns_result
    def update_draft(self, project_id: str, quote_id: str, updates: Dict[str, Any],
                     context: AuditContext) -> ProjectQuote:
        """
        Edit a DRAFT quote. Totals are recomputed from lines and discount.

        Args:
            updates: Any of lines (QuoteLine list), discount_percent, valid_until,
                payment_terms, delivery_terms, delivery_weeks, notes
        """
        unknown = sorted(set(updates) - DRAFT_UPDATE_FIELDS)
        if unknown:
            raise ValidationError(unknown[0], "field cannot be updated on a quote")

        changes = dict(updates)
        if "discount_percent" in changes:
            discount = to_decimal(changes["discount_percent"])
            if discount is not None and not Decimal("0") <= discount <= Decimal("100"):
                raise ValidationError("discount_percent", "must be between 0 and 100")
            changes["discount_percent"] = discount
        if "lines" in changes:
            changes["lines"] = list(changes["lines"])

        project = self._load(project_id)
        quote = self._find(project, quote_id)
        if quote.status != QuoteStatus.DRAFT:
            raise PolicyError(f"Quote {quote.quote_number} is {quote.status.value}; only drafts can be edited")

        updated = replace(quote, **changes).recalculated()
        self._replace_quote(project, updated)

        logger.info(f"Updated draft quote {quote.quote_number} by {context.user_id}: {sorted(updates)}")
        return updated

    @returns_result
    def mark_as_sent(self, project_id: str, quote_id: str, context: AuditContext) -> ProjectQuote:
        return self._move(project_id, quote_id, QuoteStatus.DRAFT, QuoteStatus.SENT, sent_at=utcnow())

    @returns_result
    def mark_as_accepted(self, project_id: str, quote_id: str, context: AuditContext) -> ProjectQuote:
        """Accept a SENT quote. Sibling quotes keep their status."""
        return self._move(project_id, quote_id, QuoteStatus.SENT, QuoteStatus.ACCEPTED, accepted_at=utcnow())

    @returns_result
    def mark_as_rejected(self, project_id: str, quote_id: str, context: AuditContext) -> ProjectQuote:
        return self._move(project_id, quote_id, QuoteStatus.SENT, QuoteStatus.REJECTED, rejected_at=utcnow())

    @returns_result
    def create_new_version(self, project_id: str, from_quote_id: str,
                           context: AuditContext) -> ProjectQuote:
        """
        Copy a quote's lines and terms into a fresh DRAFT.

        A DRAFT or SENT source becomes SUPERSEDED. REJECTED, EXPIRED and
        SUPERSEDED sources keep their status. ACCEPTED quotes cannot be revised.
        """
        project = self._load(project_id)
        self._require_editable(project)
        source = self._find(project, from_quote_id)
        if source.status == QuoteStatus.ACCEPTED:
            raise PolicyError(f"Quote {source.quote_number} is accepted and cannot be revised")

        version = len(project.quotes) + 1
        now = utcnow()
        quote = replace(
            source,
            id=new_id(),
            quote_number=build_quote_number(project.project_number, version),
            version=version,
            status=QuoteStatus.DRAFT,
            lines=[line.copy() for line in source.lines],
            valid_until=self._valid_until(),
            sent_at=None,
            accepted_at=None,
            rejected_at=None,
            superseded_at=None,
            superseded_by=None,
            based_on_quote_id=source.id,
            created_at=now,
            created_by=context.user_id,
        ).recalculated()

        quotes = []
        for q in project.quotes:
            # The source if still open, plus any other draft (one draft per project)
            if q.status == QuoteStatus.DRAFT or (q.id == source.id and q.status == QuoteStatus.SENT):
                q = replace(q, status=QuoteStatus.SUPERSEDED, superseded_at=now, superseded_by=quote.id)
            quotes.append(q)
        quotes.append(quote)
        self._save(project, {"quotes": quotes, "current_quote_id": quote.id})

        logger.info(f"Created quote {quote.quote_number} from {source.quote_number}")
        return quote

    @returns_result
    def expire_overdue(self, project_id: str, context: AuditContext,
                       today: Optional[date] = None) -> List[ProjectQuote]:
        """Mark SENT quotes whose validity has passed as EXPIRED."""
        today = today or today_utc()
        project = self._load(project_id)

        expired = [
            replace(q, status=QuoteStatus.EXPIRED)
            for q in project.quotes
            if q.status == QuoteStatus.SENT and q.valid_until < today
        ]
        if expired:
            by_id = {q.id: q for q in expired}
            self._save(project, {"quotes": [by_id.get(q.id, q) for q in project.quotes]})
            logger.info(f"Expired {len(expired)} quote(s) on {project.project_number}")
        return expired

    # =========================================================================
    # Queries
    # =========================================================================

    @returns_result
    def get_quotes(self, project_id: str) -> List[ProjectQuote]:
        return list(self._load(project_id).quotes)

    @returns_result
    def get_current_quote(self, project_id: str) -> Optional[ProjectQuote]:
        project = self._load(project_id)
        if project.current_quote_id is None:
            return None
        return project.find_quote(project.current_quote_id)

    @returns_result
    def has_draft_quote(self, project_id: str) -> bool:
        return bool(self._load(project_id).quotes_with_status(QuoteStatus.DRAFT))

    @returns_result
    def has_sent_quote(self, project_id: str) -> bool:
        return bool(self._load(project_id).quotes_with_status(QuoteStatus.SENT))

    @returns_result
    def has_accepted_quote(self, project_id: str) -> bool:
        return bool(self._load(project_id).quotes_with_status(QuoteStatus.ACCEPTED))
