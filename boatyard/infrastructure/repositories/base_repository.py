"""
Base Repository - Abstract repository pattern implementation.

Provides common record access and transaction helpers for all aggregates.
"""
from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional, Type
from sqlalchemy.orm import Session

from boatyard.models import Base

T = TypeVar('T', bound=Base)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository providing common data access operations.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy database session
            model_class: The model class this repository manages
        """
        self.session = session
        self.model_class = model_class

    def find_record(self, entity_id: str) -> Optional[T]:
        """
        Retrieve a row by its primary key.

        Args:
            entity_id: Primary key value

        Returns:
            The row if found, None otherwise
        """
        return self.session.query(self.model_class).filter(
            self.model_class.id == entity_id
        ).first()

    def add(self, record: T) -> T:
        """Add a new row to the session."""
        self.session.add(record)
        return record

    def commit(self) -> None:
        """Commit the current transaction."""
        self.session.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.session.rollback()

    @abstractmethod
    def exists(self, **criteria) -> bool:
        """
        Check if a row matching the criteria exists.

        Args:
            **criteria: Field-value pairs to match

        Returns:
            True if a row exists, False otherwise
        """
        pass
