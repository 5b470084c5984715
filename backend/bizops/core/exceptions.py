"""
Error taxonomy for the conversation engine and the records API.

Flow errors carry a message that is safe to show in the chat. Store failures
are logged with full detail internally and surfaced to the user as a generic
message. The HTTP helpers follow the same rule: generic text outward,
details in the log.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


# ==============================================================================
# CONVERSATION ERRORS
# ==============================================================================

class FlowError(Exception):
    """Base class for failures that end a transition with a chat message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(FlowError):
    """Bad user input. The session stays in its current step."""


class RecordNotFound(FlowError):
    """
    A token or text referenced something that does not exist.

    `fallback_step` names the step the session returns to; None keeps the
    current step.
    """

    def __init__(self, message: str, fallback_step: str | None = None):
        super().__init__(message)
        self.fallback_step = fallback_step


class MissingArgument(Exception):
    """A token lacks its id/page argument. Acknowledged, otherwise ignored."""


class RecordStoreError(Exception):
    """Read or write against the record store failed."""

    def __init__(self, operation: str, original: Exception | None = None):
        super().__init__(f"{operation} failed: {original}")
        self.operation = operation
        self.original = original


# ==============================================================================
# HTTP ERRORS
# ==============================================================================

class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """Generic 404 that doesn't echo the lookup key."""
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Resource not found",
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """Generic 500 - logs actual error internally, hides from user."""
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred")

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )
