# utils/validators.py - Input validation utilities
import re
from urllib.parse import urlparse

from config import MAX_URL_LENGTH


class URLValidationError(Exception):
    """Custom exception for URL validation errors."""
    pass


# Any hit rejects the question
SUSPICIOUS_PATTERNS = [
    re.compile(r"[<>{}]"),                                                      # markup / template injection
    re.compile(r"javascript:|data:", re.IGNORECASE),                            # script URI schemes
    re.compile(r"\b(ignore|forget|disregard).*(previous|instruction|prompt)", re.IGNORECASE | re.DOTALL),
    re.compile(r"\b(act as|you are now|roleplay)", re.IGNORECASE),              # role change attempts
]

BLOCKED_DOMAINS = ["localhost", "127.0.0.1", "0.0.0.0", "::1", "[::1]"]

DOMAIN_PATTERN = re.compile(
    r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*\.[a-zA-Z]{2,}(:\d+)?$'
)
IP_PATTERN = re.compile(r'^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}(:\d+)?$')


def validate_input(question: str) -> bool:
    """
    Check a question for injection and prompt-manipulation patterns.

    Returns:
        True if the question is safe to forward to the model
    """
    return not any(pattern.search(question) for pattern in SUSPICIOUS_PATTERNS)


def validate_url(url: str) -> str:
    """
    Validate and normalize a URL before fetching it.

    Args:
        url: The URL string to validate

    Returns:
        Normalized URL string

    Raises:
        URLValidationError: If URL is invalid
    """
    if not url or not isinstance(url, str):
        raise URLValidationError("URL is required and must be a string")

    url = url.strip()

    if not url:
        raise URLValidationError("URL cannot be empty")

    if len(url) < 10:
        raise URLValidationError("URL is too short to be valid")

    # Check for maximum length (prevent DoS)
    if len(url) > MAX_URL_LENGTH:
        raise URLValidationError(f"URL exceeds maximum allowed length ({MAX_URL_LENGTH} characters)")

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise URLValidationError(f"Failed to parse URL: {str(e)}")

    if not parsed.scheme:
        raise URLValidationError("URL must include a scheme (http:// or https://)")

    if parsed.scheme.lower() not in ("http", "https"):
        raise URLValidationError(f"Invalid URL scheme '{parsed.scheme}'. Only http and https are supported")

    if not parsed.netloc:
        raise URLValidationError("URL must include a valid domain")

    domain = parsed.netloc.lower()

    # Datasheets are fetched server-side, so internal hosts are refused
    if any(domain.startswith(blocked) for blocked in BLOCKED_DOMAINS):
        raise URLValidationError("Local/internal URLs are not allowed")

    if not (DOMAIN_PATTERN.match(domain) or IP_PATTERN.match(domain)):
        raise URLValidationError(f"Invalid domain format: {domain}")

    return url
