# utils/__init__.py
from .logger import (
    setup_logger,
    get_server_logger,
    get_ingestion_logger,
    get_chain_logger,
)
from .validators import validate_input, validate_url, URLValidationError
from .rate_limiter import RateLimiter, get_client_ip
from .cache import ContentCache

__all__ = [
    "setup_logger",
    "get_server_logger",
    "get_ingestion_logger",
    "get_chain_logger",
    "validate_input",
    "validate_url",
    "URLValidationError",
    "RateLimiter",
    "get_client_ip",
    "ContentCache",
]
