# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exception hierarchy for the LearnTrace engine.

This module defines the error taxonomy shared by all engine components:
- EngineError: Base exception for all engine errors
- EventValidationError: Malformed input, correctable by the caller
- UnknownObjectiveError / UnknownSectionError: Course configuration bugs
- ConcurrencyConflictError: Transient same-key write collision
- CollaboratorError: Transient failure of an external collaborator
  (PersistenceError, CollaboratorTimeoutError)

Consent denial and insufficient aggregate samples are expected outcomes,
not errors. They are modelled as result objects in src.models.
"""

from typing import Any


class EngineError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
        retryable: Whether retrying the same call may succeed.
    """

    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize engine error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class EventValidationError(EngineError):
    """Raised when a raw interaction event fails validation.

    The validator itself returns failures instead of raising; this
    exception is used by callers that prefer raising semantics.

    Attributes:
        issues: List of field issues as dictionaries.
    """

    def __init__(self, message: str, issues: list[dict[str, Any]] | None = None):
        """Initialize validation error.

        Args:
            message: Human-readable error description.
            issues: Field-level issues found during validation.
        """
        self.issues = issues or []
        super().__init__(message, {"issues": self.issues} if self.issues else None)


class UnknownObjectiveError(EngineError):
    """Raised when an objective id is unknown to the course catalog."""

    def __init__(self, objective_id: str):
        self.objective_id = objective_id
        super().__init__(
            f"Unknown objective '{objective_id}'",
            {"objective_id": objective_id},
        )


class UnknownSectionError(EngineError):
    """Raised when a section id is not part of its objective."""

    def __init__(self, objective_id: str, section_id: str):
        self.objective_id = objective_id
        self.section_id = section_id
        super().__init__(
            f"Unknown section '{section_id}' for objective '{objective_id}'",
            {"objective_id": objective_id, "section_id": section_id},
        )


class ConcurrencyConflictError(EngineError):
    """Raised when a write for the same progress key collides.

    Transient: the caller or its infrastructure should retry with backoff.
    """

    retryable = True


class CollaboratorError(EngineError):
    """Base exception for transient external collaborator failures.

    Attributes:
        collaborator: Name of the collaborator that failed.
        original_error: The underlying exception, if any.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        collaborator: str,
        original_error: Exception | None = None,
    ):
        """Initialize collaborator error.

        Args:
            message: Human-readable error description.
            collaborator: Name of the failing collaborator.
            original_error: The underlying exception that caused this error.
        """
        self.collaborator = collaborator
        self.original_error = original_error
        details: dict[str, Any] = {"collaborator": collaborator}
        if original_error is not None:
            details["cause"] = repr(original_error)
        super().__init__(message, details)


class PersistenceError(CollaboratorError):
    """Raised when the progress store fails to save, load or purge."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message, "progress_store", original_error)


class CollaboratorTimeoutError(CollaboratorError):
    """Raised when a collaborator call exceeds its timeout.

    Attributes:
        timeout: Timeout in seconds that was exceeded.
    """

    def __init__(self, collaborator: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Call to {collaborator} timed out after {timeout:.2f}s",
            collaborator,
        )
