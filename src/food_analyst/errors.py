"""Exception types shared across services and adapters."""


class FoodAnalystError(Exception):
    """Base class for application errors."""


class StorageUnavailableError(FoodAnalystError):
    """Raised when the key-value backend cannot be read or written."""

    def __init__(self, operation: str, key: str) -> None:
        super().__init__(f"Storage {operation} failed for key {key!r}")
        self.operation = operation
        self.key = key


class VisionAnalysisError(FoodAnalystError):
    """Raised when the vision model call fails or returns unusable data."""
