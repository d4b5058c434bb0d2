"""Base exception classes for the insightflow domain layer."""


class InsightflowError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class so the API
    layer can map them to problem responses in one place.
    """

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
