"""
scorebridge.errors - Exception hierarchy
"""

from typing import List


class ScorebridgeError(Exception):
    """Base class for all scorebridge errors."""


class ConfigError(ScorebridgeError):
    """Invalid or unreadable configuration."""


class ValidationError(ScorebridgeError, ValueError):
    """The message cannot be passed to the scoring script."""

    reason = "invalid"


class EmptyMessageError(ValidationError):
    """The message is missing, empty or only whitespace."""

    reason = "empty"

    def __init__(self, message: str = "Message must not be empty or whitespace."):
        super().__init__(message)


class InvalidCharactersError(ValidationError):
    """The message contains characters outside the allowed set."""

    reason = "invalid_characters"

    def __init__(self, offending: List[str]):
        self.offending = list(offending)
        listed = ", ".join(repr(c) for c in self.offending)
        super().__init__(
            f"Message contains invalid characters: {listed}. "
            f"Only letters, digits, whitespace and . , - _ are allowed."
        )


class ProvisioningError(ScorebridgeError):
    """The target environment could not be created."""
