"""
Domain Entities - Immutable business objects of the project lifecycle.
"""

from .amendment import AmendmentType, ProjectAmendment
from .bom import BOMItem, BOMSnapshot
from .configuration import (
    Configuration,
    ConfigurationItem,
    ConfigurationItemInput,
    ConfigurationItemType,
    ConfigurationSnapshot,
    PropulsionType,
    SnapshotTrigger,
)
from .project import Project, ProjectInput, ProjectStatus, ProjectType
from .quote import ProjectQuote, QuoteLine, QuoteStatus

__all__ = [
    'AmendmentType', 'ProjectAmendment',
    'BOMItem', 'BOMSnapshot',
    'Configuration', 'ConfigurationItem', 'ConfigurationItemInput',
    'ConfigurationItemType', 'ConfigurationSnapshot', 'PropulsionType', 'SnapshotTrigger',
    'Project', 'ProjectInput', 'ProjectStatus', 'ProjectType',
    'ProjectQuote', 'QuoteLine', 'QuoteStatus',
]
