"""Custom exception classes for the application."""

from typing import Any


class DailyAgentError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# Workflow Errors
class WorkflowError(DailyAgentError):
    """Base class for workflow errors."""

    pass


class WorkflowStoppedError(WorkflowError):
    """The queue was moved to the error state while a phase was running."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or "Workflow stopped")


class UnknownWorkflowStepError(WorkflowError):
    """The queue holds a step no executor handles."""

    def __init__(self, step: str) -> None:
        super().__init__(f"Unknown workflow step: {step}")


class ShardReconciliationError(WorkflowError):
    """Lead shards do not add up to the deduplicated pool."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Shard reconciliation failed: expected {expected} leads, found {actual}",
            details={"expected": expected, "actual": actual},
        )


class InsufficientContentError(WorkflowError):
    """Not enough validated articles after the final attempt."""

    def __init__(self, required: int, attempts: int, valid_count: int) -> None:
        super().__init__(
            f"Failed to get {required} validated articles after {attempts} attempts "
            f"(got {valid_count})",
            details={"required": required, "attempts": attempts, "valid_count": valid_count},
        )


class EditorialError(WorkflowError):
    """Layout or edition persistence failed."""

    pass


# Generator Errors
class GeneratorOutputError(DailyAgentError):
    """A generator returned output that failed validation after retries."""

    def __init__(self, generator: str, message: str) -> None:
        super().__init__(f"{generator} returned unusable output: {message}")


# Store Errors
class StoreError(DailyAgentError):
    """Document store operation failed."""

    pass


class DocumentNotFoundError(StoreError):
    """Document does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document not found: {collection}/{doc_id}")


# External API Errors
class ExternalAPIError(DailyAgentError):
    """Error calling external API."""

    def __init__(self, api_name: str, message: str) -> None:
        super().__init__(f"{api_name} API error: {message}")


class RateLimitExceededError(ExternalAPIError):
    """Rate limit exceeded for external API."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "Rate limit exceeded")


class APIKeyMissingError(ExternalAPIError):
    """API key not configured."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "API key not configured")
