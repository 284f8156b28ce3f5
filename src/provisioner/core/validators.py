"""Tenant naming validators."""

import re
from typing import Final

from src.provisioner.core.exceptions import InvalidSubdomainError

MAX_IDENTIFIER_LENGTH: Final[int] = 63  # DNS label and PostgreSQL identifier limit
SUBDOMAIN_REGEX: Final[str] = r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$"

_SUBDOMAIN_PATTERN: Final[re.Pattern[str]] = re.compile(SUBDOMAIN_REGEX)


def validate_subdomain(subdomain: str) -> str:
    """Validate that a subdomain is a single lowercase DNS label.

    Labels are 1-63 characters of lowercase letters, digits and hyphens,
    and may not start or end with a hyphen.

    Raises:
        InvalidSubdomainError: If the label is malformed.
    """
    if not _SUBDOMAIN_PATTERN.fullmatch(subdomain):
        raise InvalidSubdomainError(
            "Subdomain must be 1-63 lowercase letters, digits or hyphens "
            "and must not start or end with a hyphen"
        )
    return subdomain


def build_hostname(subdomain: str, domain: str) -> str:
    return f"{subdomain}.{domain}"


def build_database_name(subdomain: str, domain: str) -> str:
    """Derive the tenant database name ``{subdomain}.{domain}``.

    Raises:
        InvalidSubdomainError: If the result exceeds PostgreSQL's 63-char identifier limit.
    """
    name = build_hostname(subdomain, domain)
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidSubdomainError(
            f"Database name '{name}' exceeds PostgreSQL limit: "
            f"{len(name)} > {MAX_IDENTIFIER_LENGTH}"
        )
    return name


def build_tenant_url(subdomain: str, domain: str) -> str:
    return f"https://{build_hostname(subdomain, domain)}"

