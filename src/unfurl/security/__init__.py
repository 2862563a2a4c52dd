"""Outbound request safety checks."""

from unfurl.security.url_validator import (
    BLOCKED_NETWORKS,
    HostResolver,
    UrlValidator,
    ValidationResult,
    is_blocked_address,
    system_resolver,
)

__all__ = [
    "BLOCKED_NETWORKS",
    "HostResolver",
    "UrlValidator",
    "ValidationResult",
    "is_blocked_address",
    "system_resolver",
]
