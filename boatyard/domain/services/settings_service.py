"""
Settings Service - Administrator-tunable defaults used by the lifecycle core.

Values live in the single-row settings table. The row is created from the
YAML defaults the first time it is needed.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from boatyard.models import Settings, ensure_default_settings
from boatyard.domain.exceptions import ValidationError
from boatyard.domain.pricing import to_decimal
from boatyard.domain.result import returns_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostEstimationSettings:
    default_ratio: Decimal
    warn_threshold: Decimal

    def to_dict(self) -> dict:
        return {
            'default_ratio': str(self.default_ratio),
            'warn_threshold': str(self.warn_threshold),
        }


def _as_decimal(value: float) -> Decimal:
    return Decimal(str(value))


class SettingsService:
    """Read and update the settings row."""

    def __init__(self, session: Session):
        self.session = session

    def get_settings(self) -> Settings:
        return ensure_default_settings(self.session)

    def get_cost_estimation(self) -> CostEstimationSettings:
        settings = self.get_settings()
        return CostEstimationSettings(
            default_ratio=_as_decimal(settings.cost_estimation_ratio),
            warn_threshold=_as_decimal(settings.cost_warn_threshold),
        )

    @returns_result
    def update_cost_estimation(
        self,
        default_ratio: Optional[Decimal] = None,
        warn_threshold: Optional[Decimal] = None,
    ) -> CostEstimationSettings:
        """
        Change the cost estimation ratio and/or warning threshold.

        Args:
            default_ratio: Cost as a fraction of sell price (0..1)
            warn_threshold: Estimated share of BOM cost that triggers a warning (0..1)

        Returns:
            Result with the updated CostEstimationSettings
        """
        updates = {}
        for field, value in (("default_ratio", default_ratio), ("warn_threshold", warn_threshold)):
            if value is None:
                continue
            value = to_decimal(value)
            if not Decimal("0") <= value <= Decimal("1"):
                raise ValidationError(field, "must be between 0 and 1")
            updates[field] = value

        settings = self.get_settings()
        if "default_ratio" in updates:
            settings.cost_estimation_ratio = float(updates["default_ratio"])
        if "warn_threshold" in updates:
            settings.cost_warn_threshold = float(updates["warn_threshold"])
        self.session.commit()

        logger.info(f"Cost estimation settings updated: {updates}")
        return self.get_cost_estimation()

    def get_quote_validity_days(self) -> int:
        return int(self.get_settings().quote_validity_days)

    def get_default_payment_terms(self) -> Optional[str]:
        return self.get_settings().default_payment_terms

    def get_default_delivery_terms(self) -> Optional[str]:
        return self.get_settings().default_delivery_terms

    def get_vat_rate(self) -> Decimal:
        return _as_decimal(self.get_settings().vat_rate)
