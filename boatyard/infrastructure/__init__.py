"""
Infrastructure Layer - Repository implementations over the SQLAlchemy models.
"""

from .repositories import BaseRepository, ProjectRepository

__all__ = [
    'BaseRepository',
    'ProjectRepository',
]
