"""
scorebridge.validator - Message validation

The message ends up on the command line of an external interpreter, so it is
checked against a whitelist before any process is spawned.
"""

import logging
import re
from typing import List, Optional

from .errors import EmptyMessageError, InvalidCharactersError, ValidationError

logger = logging.getLogger(__name__)

# Letters, digits, whitespace, period, comma, hyphen, underscore
ALLOWED_PATTERN = re.compile(r"[a-zA-Z0-9\s.,\-_]+", re.ASCII)
ALLOWED_CHAR = re.compile(r"[a-zA-Z0-9\s.,\-_]", re.ASCII)


def find_invalid_characters(message: str) -> List[str]:
    """Return each distinct disallowed character, in order of first occurrence."""
    seen = []
    for char in message:
        if not ALLOWED_CHAR.fullmatch(char) and char not in seen:
            seen.append(char)
    return seen


def validate_message(message: Optional[str]) -> str:
    """
    Validate a message before it is handed to the scoring script.

    Args:
        message: Text supplied by the caller

    Returns:
        The message, unchanged

    Raises:
        EmptyMessageError: message is None, empty or whitespace only
        InvalidCharactersError: message contains characters outside the whitelist
        ValidationError: message is not a string
    """
    if message is None:
        raise EmptyMessageError()
    if not isinstance(message, str):
        raise ValidationError(f"Message must be a string, got {type(message).__name__}")
    if not message.strip():
        raise EmptyMessageError()

    if not ALLOWED_PATTERN.fullmatch(message):
        offending = find_invalid_characters(message)
        logger.debug("Rejected message with %d invalid character(s)", len(offending))
        raise InvalidCharactersError(offending)

    return message


def is_valid_message(message: Optional[str]) -> bool:
    """Quick boolean check - True if the message passes validation."""
    try:
        validate_message(message)
    except ValidationError:
        return False
    return True
