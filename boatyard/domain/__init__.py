"""
Domain Layer - Project lifecycle and change-control engine.

This module contains:
- entities/: Immutable aggregate parts (Project, Configuration, quotes, amendments, BOM)
- workflow/: StatusMachine with transition guards and milestone effects
- services/: Operations returning Result values
"""

from .audit import AuditContext
from .result import Result
from .workflow.status_machine import StatusMachine, TransitionContext

__all__ = [
    'AuditContext',
    'Result',
    'StatusMachine',
    'TransitionContext',
]
