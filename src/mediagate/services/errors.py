"""Domain exceptions raised by the service layer.

The API layer translates these into HTTP responses; services never raise
``HTTPException`` themselves.
"""

from __future__ import annotations


class MediaGateError(RuntimeError):
    """Base exception for all service-level failures."""


class ValidationError(MediaGateError):
    """Raised for malformed input; nothing has been written."""


class NotFoundError(MediaGateError):
    """Raised when a referenced content item does not exist."""


class UnauthorizedError(MediaGateError):
    """Raised when the caller identity is missing or too weak for the operation."""


class ConflictError(MediaGateError):
    """Raised when a write collides with existing state that cannot be reused."""


class BatchTooLargeError(ValidationError):
    """Raised when a bulk request exceeds the configured batch size."""


class TransientStoreError(MediaGateError):
    """Raised on lock contention or timeouts.

    Safe to retry with the same natural key (content id, user id, reaction type).
    """
