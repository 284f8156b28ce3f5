"""Property-based tests for tenant naming validators using hypothesis."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError

from src.provisioner.core.exceptions import InvalidSubdomainError
from src.provisioner.core.validators import (
    MAX_IDENTIFIER_LENGTH,
    build_database_name,
    build_tenant_url,
    validate_subdomain,
)
from src.provisioner.schemas import TenantCreate

pytestmark = pytest.mark.unit

# Single DNS label: alphanumeric ends, hyphens allowed inside, 1-63 chars
valid_subdomain = st.from_regex(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$", fullmatch=True)


@given(subdomain=valid_subdomain)
@settings(max_examples=100)
def test_valid_subdomains_accepted(subdomain: str):
    tenant = TenantCreate(subdomain=subdomain)
    assert tenant.subdomain == subdomain


@given(subdomain=st.from_regex(r"^-[a-z0-9-]{0,20}$", fullmatch=True))
def test_leading_hyphen_rejected(subdomain: str):
    with pytest.raises(InvalidSubdomainError):
        validate_subdomain(subdomain)


@given(subdomain=st.from_regex(r"^[a-z0-9]{1,20}-$", fullmatch=True))
def test_trailing_hyphen_rejected(subdomain: str):
    with pytest.raises(InvalidSubdomainError):
        validate_subdomain(subdomain)


@given(subdomain=st.text(alphabet="abc123", min_size=64, max_size=100))
def test_long_subdomains_rejected(subdomain: str):
    with pytest.raises(ValidationError) as exc_info:
        TenantCreate(subdomain=subdomain)
    errors = exc_info.value.errors()
    assert any(error["loc"] == ("subdomain",) for error in errors)


@given(subdomain=st.from_regex(r"^[a-z0-9]*[._ /A-Z][a-z0-9]*$", fullmatch=True))
def test_invalid_characters_rejected(subdomain: str):
    with pytest.raises(InvalidSubdomainError):
        validate_subdomain(subdomain)


@pytest.mark.parametrize("raw", ["  alice ", "alice\n", "alice"])
def test_subdomain_whitespace_stripped(raw: str):
    assert TenantCreate(subdomain=raw).subdomain == "alice"


@pytest.mark.parametrize("raw", ["Alice", "ALICE", "aLice"])
def test_uppercase_subdomain_rejected(raw: str):
    with pytest.raises(ValidationError):
        TenantCreate(subdomain=raw)


def test_empty_subdomain_rejected():
    with pytest.raises(ValidationError):
        TenantCreate(subdomain="")


def test_database_name_and_url_derivation():
    assert build_database_name("alice", "example.com") == "alice.example.com"
    assert build_tenant_url("alice", "example.com") == "https://alice.example.com"


@given(subdomain=valid_subdomain, domain=st.sampled_from(["example.com", "42khartoum.com"]))
def test_database_name_respects_identifier_limit(subdomain: str, domain: str):
    """Derivation either fits PostgreSQL's identifier limit or raises."""
    name = f"{subdomain}.{domain}"
    if len(name) > MAX_IDENTIFIER_LENGTH:
        with pytest.raises(InvalidSubdomainError):
            build_database_name(subdomain, domain)
    else:
        assert build_database_name(subdomain, domain) == name


def test_longest_subdomain_for_default_domain():
    assert len(build_database_name("a" * 48, "42khartoum.com")) == MAX_IDENTIFIER_LENGTH
    with pytest.raises(InvalidSubdomainError):
        build_database_name("a" * 49, "42khartoum.com")
