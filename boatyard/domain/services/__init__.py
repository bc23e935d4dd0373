"""
Domain Services - Lifecycle operations over the Project aggregate.
"""

from .settings_service import SettingsService, CostEstimationSettings
from .configuration_service import ConfigurationService
from .quote_service import QuoteService, QuoteDraftOptions
from .amendment_service import AmendmentService, AmendmentChanges, AmendmentEligibility, ItemUpdate
from .bom_service import BOMService, EstimationSummary, CategoryCost, MarginSummary
from .project_service import ProjectService, ProjectSummary

__all__ = [
    'SettingsService',
    'CostEstimationSettings',
    'ConfigurationService',
    'QuoteService',
    'QuoteDraftOptions',
    'AmendmentService',
    'AmendmentChanges',
    'AmendmentEligibility',
    'ItemUpdate',
    'BOMService',
    'EstimationSummary',
    'CategoryCost',
    'MarginSummary',
    'ProjectService',
    'ProjectSummary',
]
