"""
Domain Exceptions for the Project Lifecycle Engine.

Custom exceptions enforcing business rules:
- Configuration freeze after order confirmation
- Quote status transitions
- Amendment eligibility
- Optimistic concurrency on the project aggregate

Services raise these internally; the service boundary converts them into
failed Results (see boatyard.domain.result).
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# =============================================================================
# Policy Exceptions
# =============================================================================

class PolicyError(DomainError):
    """Raised when the current status forbids the attempted operation."""

    def __init__(self, message: str):
        super().__init__(message, code="POLICY_ERROR")


class ConfigurationFrozenError(PolicyError):
    """Raised when a frozen configuration is edited directly."""

    def __init__(self, status: str):
        super().__init__(
            f"Configuration is frozen in {status} status; use an amendment to make changes"
        )
        self.status = status


class ProjectLockedError(PolicyError):
    """Raised when a locked (closed) project receives an amendment request."""

    def __init__(self, project_number: str):
        super().__init__(f"Project {project_number} is locked; amendments are no longer possible")
        self.project_number = project_number


# =============================================================================
# Transition Exceptions
# =============================================================================

class InvalidTransitionError(DomainError):
    """Raised when a status transition is not allowed from the current state."""

    def __init__(self, entity_type: str, current: str, target: str, reason: str = ""):
        message = f"{entity_type} cannot move from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, code="INVALID_TRANSITION")
        self.entity_type = entity_type
        self.current = current
        self.target = target


# =============================================================================
# Not Found Exceptions
# =============================================================================

class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} with id '{entity_id}' not found", code="NOT_FOUND")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ProjectNotFoundError(NotFoundError):
    """Raised when a project cannot be found."""

    def __init__(self, project_id: str):
        super().__init__("Project", project_id)


class QuoteNotFoundError(NotFoundError):
    """Raised when a quote cannot be found on a project."""

    def __init__(self, quote_id: str):
        super().__init__("Quote", quote_id)


class ConfigurationItemNotFoundError(NotFoundError):
    """Raised when a configuration item cannot be found."""

    def __init__(self, item_id: str):
        super().__init__("Configuration item", item_id)


# =============================================================================
# Validation Exceptions
# =============================================================================

class ValidationError(DomainError):
    """Raised when data validation fails."""

    def __init__(self, field: str, message: str):
        super().__init__(f"Validation failed for '{field}': {message}", code="VALIDATION_ERROR")
        self.field = field


# =============================================================================
# Persistence Exceptions
# =============================================================================

class ConcurrencyError(DomainError):
    """Raised when optimistic locking fails (version mismatch)."""

    def __init__(self, entity_type: str, entity_id: str):
        message = (
            f"Concurrent modification detected for {entity_type} '{entity_id}'. "
            f"Please refresh and try again."
        )
        super().__init__(message, code="CONCURRENCY_ERROR")
        self.entity_type = entity_type
        self.entity_id = entity_id


class PersistenceError(DomainError):
    """Raised when the repository reports that a write did not happen."""

    def __init__(self, message: str):
        super().__init__(message, code="PERSISTENCE_ERROR")
