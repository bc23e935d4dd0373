"""
Configuration Service - Direct edits to a project's equipment configuration.

Direct edits are only possible while the project status is editable
(DRAFT, QUOTED, OFFER_SENT). Once the order is confirmed every change goes
through AmendmentService.request_amendment; this service never reroutes a
call there on its own.
"""
import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from boatyard.domain.audit import AuditContext
from boatyard.domain.entities.configuration import (
    EDITABLE_ITEM_FIELDS,
    ConfigurationItem,
    ConfigurationItemInput,
    ConfigurationItemType,
    ConfigurationSnapshot,
    PropulsionType,
    order_items,
    renumber_items,
)
from boatyard.domain.entities.project import Project
from boatyard.domain.exceptions import (
    ConfigurationFrozenError,
    ConfigurationItemNotFoundError,
    ValidationError,
)
from boatyard.domain.pricing import to_decimal
from boatyard.domain.result import returns_result
from boatyard.domain.workflow.status_machine import StatusMachine
from .base_service import ProjectAggregateService

logger = logging.getLogger(__name__)

MOVE_DIRECTIONS = ("up", "down")

TEXT_ITEM_FIELDS = ("name", "unit", "category", "description", "article_number", "supplier")
REQUIRED_TEXT_FIELDS = frozenset({"name", "unit", "category"})
FLAG_ITEM_FIELDS = ("is_included", "ce_relevant", "safety_critical")


def _parse_amount(field_name: str, value: Any) -> Optional[Decimal]:
    """Parse a numeric input, rejecting booleans, garbage and NaN/Infinity."""
    if isinstance(value, bool):
        raise ValidationError(field_name, "must be a number")
    try:
        amount = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(field_name, f"'{value}' is not a number")
    if amount is not None and not amount.is_finite():
        raise ValidationError(field_name, "must be a finite number")
    return amount


def validate_item_values(values: Dict[str, Any]) -> None:
    """
    Validate user-supplied item values.

    Raises:
        ValidationError: On a wrongly typed value, an empty name, a
            non-positive quantity or a negative price/cost/lead time
    """
    for name in TEXT_ITEM_FIELDS:
        if name not in values:
            continue
        value = values[name]
        if value is None and name not in REQUIRED_TEXT_FIELDS:
            continue
        if not isinstance(value, str):
            raise ValidationError(name, "must be text")
    if "name" in values and not values["name"].strip():
        raise ValidationError("name", "must not be empty")

    for name in FLAG_ITEM_FIELDS:
        if name in values and not isinstance(values[name], bool):
            raise ValidationError(name, "must be true or false")

    if values.get("lead_time_days") is not None:
        lead_time = values["lead_time_days"]
        if isinstance(lead_time, bool) or not isinstance(lead_time, int) or lead_time < 0:
            raise ValidationError("lead_time_days", "must be a whole number of days, zero or more")

    if "quantity" in values:
        quantity = _parse_amount("quantity", values["quantity"])
        if quantity is None or quantity <= 0:
            raise ValidationError("quantity", "must be greater than zero")
    if "unit_price_excl_vat" in values:
        price = _parse_amount("unit_price_excl_vat", values["unit_price_excl_vat"])
        if price is None or price < 0:
            raise ValidationError("unit_price_excl_vat", "must not be negative")
    if "unit_cost" in values:
        cost = _parse_amount("unit_cost", values["unit_cost"])
        if cost is not None and cost < 0:
            raise ValidationError("unit_cost", "must not be negative")


def validate_item_input(item_input: ConfigurationItemInput) -> None:
    try:
        ConfigurationItemType(item_input.item_type)
    except ValueError:
        raise ValidationError("item_type", f"unknown item type '{item_input.item_type}'")
    validate_item_values({
        "name": item_input.name,
        "unit": item_input.unit,
        "category": item_input.category,
        "description": item_input.description,
        "article_number": item_input.article_number,
        "supplier": item_input.supplier,
        "quantity": item_input.quantity,
        "unit_price_excl_vat": item_input.unit_price_excl_vat,
        "unit_cost": item_input.unit_cost,
        "lead_time_days": item_input.lead_time_days,
        "is_included": item_input.is_included,
        "ce_relevant": item_input.ce_relevant,
        "safety_critical": item_input.safety_critical,
    })


def validate_item_updates(updates: Dict[str, Any]) -> None:
    unknown = sorted(set(updates) - EDITABLE_ITEM_FIELDS)
    if unknown:
        raise ValidationError(unknown[0], "field cannot be updated")
    validate_item_values(updates)


def apply_item_updates(item: ConfigurationItem, updates: Dict[str, Any]) -> ConfigurationItem:
    changes = dict(updates)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    return item.with_updates(**changes)


def next_sort_order(items: List[ConfigurationItem]) -> int:
    return max((item.sort_order for item in items), default=-1) + 1


class ConfigurationService(ProjectAggregateService):
    """Add, change, remove and order configuration items."""

    def _load_editable(self, project_id: str) -> Project:
        project = self._load(project_id)
        if not StatusMachine.is_editable(project.status) or project.configuration.is_frozen:
            raise ConfigurationFrozenError(project.status.value)
        return project

    def _save_items(self, project: Project, items: List[ConfigurationItem],
                    context: AuditContext) -> Project:
        configuration = project.configuration.with_items(items, modified_by=context.user_id)
        return self._save(project, {"configuration": configuration})

    @returns_result
    def add_item(self, project_id: str, item_input: ConfigurationItemInput,
                 context: AuditContext) -> Project:
        """
        Append an item to the configuration.

        Args:
            project_id: Project identifier
            item_input: Item values; the line total is always computed
            context: Audit identity

        Returns:
            Result with the updated Project
        """
        validate_item_input(item_input)
        project = self._load_editable(project_id)

        items = project.configuration.items
        item = ConfigurationItem.create(item_input, sort_order=next_sort_order(items))
        updated = self._save_items(project, [*items, item], context)

        logger.info(f"Added item '{item.name}' to {project.project_number}")
        return updated

    @returns_result
    def update_item(self, project_id: str, item_id: str, updates: Dict[str, Any],
                    context: AuditContext) -> Project:
        """
        Change editable fields of an item and recompute its line total.

        Raises (as a failed Result):
            ValidationError: For unknown or read-only fields and invalid values
            PolicyError: When the configuration is frozen
        """
        validate_item_updates(updates)
        project = self._load_editable(project_id)

        item = project.configuration.find_item(item_id)
        if item is None:
            raise ConfigurationItemNotFoundError(item_id)

        updated_item = apply_item_updates(item, updates)
        items = [updated_item if i.id == item_id else i for i in project.configuration.items]
        updated = self._save_items(project, items, context)

        logger.info(f"Updated item '{updated_item.name}' on {project.project_number}: {sorted(updates)}")
        return updated

    @returns_result
    def remove_item(self, project_id: str, item_id: str, context: AuditContext) -> Project:
        project = self._load_editable(project_id)

        item = project.configuration.find_item(item_id)
        if item is None:
            raise ConfigurationItemNotFoundError(item_id)

        remaining = [i for i in project.configuration.sorted_items() if i.id != item_id]
        updated = self._save_items(project, renumber_items(remaining), context)

        logger.info(f"Removed item '{item.name}' from {project.project_number}")
        return updated

    @returns_result
    def move_item(self, project_id: str, item_id: str, direction: str,
                  context: AuditContext) -> Project:
        """
        Swap an item with its neighbour and renumber sort orders 0..n-1.

        Moving the first item up or the last item down leaves the order
        unchanged and still succeeds.
        """
        if direction not in MOVE_DIRECTIONS:
            raise ValidationError("direction", f"must be one of {', '.join(MOVE_DIRECTIONS)}")
        project = self._load_editable(project_id)

        ordered = order_items(project.configuration.items)
        index = next((i for i, item in enumerate(ordered) if item.id == item_id), None)
        if index is None:
            raise ConfigurationItemNotFoundError(item_id)

        target = index - 1 if direction == "up" else index + 1
        if 0 <= target < len(ordered):
            ordered[index], ordered[target] = ordered[target], ordered[index]

        return self._save_items(project, renumber_items(ordered), context)

    @returns_result
    def reorder_items(self, project_id: str, ordered_ids: List[str],
                      context: AuditContext) -> Project:
        """Apply a complete new ordering given as a list of item ids."""
        project = self._load_editable(project_id)

        by_id = {item.id: item for item in project.configuration.items}
        if len(ordered_ids) != len(by_id) or set(ordered_ids) != set(by_id):
            raise ValidationError("ordered_ids", "must list every configuration item exactly once")

        return self._save_items(project, renumber_items(by_id[i] for i in ordered_ids), context)

    @returns_result
    def set_discount(self, project_id: str, discount_percent: Optional[Decimal],
                     context: AuditContext) -> Project:
        discount = to_decimal(discount_percent)
        if discount is not None and not Decimal("0") <= discount <= Decimal("100"):
            raise ValidationError("discount_percent", "must be between 0 and 100")
        project = self._load_editable(project_id)

        configuration = project.configuration.with_discount(discount, modified_by=context.user_id)
        updated = self._save(project, {"configuration": configuration})

        logger.info(f"Discount on {project.project_number} set to {discount}")
        return updated

    @returns_result
    def set_propulsion_type(self, project_id: str, propulsion_type: PropulsionType,
                            context: AuditContext) -> Project:
        try:
            propulsion_type = PropulsionType(propulsion_type)
        except ValueError:
            raise ValidationError("propulsion_type", f"unknown propulsion type '{propulsion_type}'")
        project = self._load_editable(project_id)
        configuration = replace(
            project.configuration,
            propulsion_type=propulsion_type,
            last_modified_by=context.user_id,
        )
        return self._save(project, {"configuration": configuration})

    @returns_result
    def get_snapshots(self, project_id: str) -> List[ConfigurationSnapshot]:
        """All configuration snapshots of a project, oldest first."""
        return list(self._load(project_id).configuration_snapshots)

    @returns_result
    def get_current_snapshot(self, project_id: str) -> Optional[ConfigurationSnapshot]:
        """The most recent snapshot, or None before the order is confirmed."""
        return self._load(project_id).latest_configuration_snapshot
