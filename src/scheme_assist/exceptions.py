"""Custom exception hierarchy for the scheme assistant."""

from __future__ import annotations


class SchemeAssistError(Exception):
    """Base exception for all scheme assistant errors."""


class ExternalProviderError(SchemeAssistError):
    """A remote capability failed. Transient failures are retryable."""

    def __init__(
        self,
        service: str,
        operation: str,
        message: str = "",
        transient: bool = True,
    ) -> None:
        self.service = service
        self.operation = operation
        self.transient = transient
        super().__init__(message or f"{service}.{operation} failed")


class RetryExhaustedError(ExternalProviderError):
    """Every attempt allowed by the retry policy failed."""

    def __init__(
        self,
        service: str,
        operation: str,
        attempts: int,
        last_error: Exception,
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            service,
            operation,
            f"{service}.{operation} failed after {attempts} attempts: {last_error}",
            transient=False,
        )


class CircuitOpenError(SchemeAssistError):
    """The circuit for a dependency is open; the call was not attempted."""

    def __init__(self, service: str) -> None:
        self.service = service
        super().__init__(f"circuit open for {service}")


class ValidationError(SchemeAssistError):
    """Invalid input. Never retried."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class GroundingFailure(SchemeAssistError):
    """Generated answer does not overlap with the retrieved context."""


class WriteQueueExhausted(SchemeAssistError):
    """A queued write used up its attempts and was dead-lettered."""

    def __init__(self, operation: str, attempts: int, last_error: Exception | None) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{operation} dead-lettered after {attempts} attempts: {last_error}")


class InvalidTransitionError(SchemeAssistError):
    """Query state machine was asked to make an illegal move."""


class ConfigurationError(SchemeAssistError):
    """Error in system configuration."""
