"""
Workflow - Project status graph and transition guards.
"""

from .status_machine import (
    MilestoneEffect,
    MilestoneEffectType,
    StatusInfo,
    StatusMachine,
    TransitionContext,
    TransitionValidation,
)

__all__ = [
    'MilestoneEffect',
    'MilestoneEffectType',
    'StatusInfo',
    'StatusMachine',
    'TransitionContext',
    'TransitionValidation',
]
