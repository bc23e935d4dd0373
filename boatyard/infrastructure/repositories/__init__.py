"""
Repository implementations for data access layer.
"""
from .base_repository import BaseRepository
from .project_repository import ProjectRepository

__all__ = [
    'BaseRepository',
    'ProjectRepository',
]
