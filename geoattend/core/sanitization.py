"""Input sanitization utilities."""
import re
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


# Maximum length constraints for security
MAX_NAME_LENGTH = 200        # Training, venue and trainee names
MAX_CONTACT_LENGTH = 100     # Phone numbers, posting locations
MAX_TIMEZONE_LENGTH = 64


def sanitize_text(text: str, max_length: Optional[int] = None, strip_html: bool = True) -> str:
    """
    Sanitize text input to prevent XSS attacks.

    Strips HTML tags and normalizes whitespace. Output is not HTML-escaped;
    rendering layers escape on output.

    Raises:
        ValueError: If text exceeds max_length or contains dangerous patterns
    """
    if not isinstance(text, str):
        raise ValueError("Input must be a string")

    sanitized = text.strip()

    # Enforce maximum length before processing to prevent length-based attacks
    if max_length and len(sanitized) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    if strip_html:
        sanitized = re.sub(r'<[^>]*>', '', sanitized)

    # Malformed tags or encoded attacks left over after stripping
    if '<' in sanitized or '>' in sanitized:
        raise ValueError("Input contains invalid HTML-like patterns")

    sanitized = re.sub(r'\s+', ' ', sanitized)

    return sanitized


def sanitize_name(name: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Sanitize a required display name (training, venue, trainee)."""
    sanitized = sanitize_text(name, max_length=max_length)

    if not sanitized:
        raise ValueError("Name cannot be empty")

    return sanitized


def validate_timezone_name(name: str) -> str:
    """
    Validate an IANA timezone name such as "Asia/Kolkata".

    Raises:
        ValueError: If the zone is unknown
    """
    if not isinstance(name, str):
        raise ValueError("Timezone must be a string")

    name = name.strip()
    if not name or len(name) > MAX_TIMEZONE_LENGTH:
        raise ValueError("Timezone is empty or too long")

    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name}")

    return name
