"""Organization slugs: generation, validation, availability, URLs.

The slug doubles as the tenant's subdomain, so it follows DNS label rules
(lowercase letters, digits and inner hyphens) plus a length window, and
may not shadow a platform hostname such as ``app`` or ``api``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from creatorhub.core.config import SETTINGS

logger = logging.getLogger(__name__)

MIN_LENGTH = 3
MAX_LENGTH = 50

_SUBDOMAIN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

RESERVED_SUBDOMAINS = frozenset(
    {
        "www", "app", "api", "my", "admin", "dashboard", "auth", "login",
        "signup", "register", "help", "support", "docs", "blog", "mail",
        "email", "ftp", "cdn", "static", "assets", "media", "images",
        "files", "uploads", "download", "downloads", "test", "dev",
        "staging", "demo", "beta", "alpha", "store", "shop", "checkout",
        "payment", "payments", "billing", "account", "accounts", "settings",
        "profile", "user", "users", "member", "members", "community",
        "communities", "course", "courses", "stream", "live", "video",
        "videos", "webhook", "webhooks", "status", "health", "ping", "null",
        "undefined",
    }
)  # fmt: skip


class SubdomainUnavailableError(ValueError):
    """The requested subdomain is malformed, reserved or already taken."""


@dataclass(frozen=True, slots=True)
class SubdomainCheck:
    subdomain: str
    available: bool
    error: str | None = None
    url: str | None = None


def slugify(text: str) -> str:
    """Lowercase ``text`` and collapse every non-alphanumeric run to a hyphen."""
    slug = _NON_ALNUM.sub("-", (text or "").lower()).strip("-")
    return slug[:MAX_LENGTH].rstrip("-")


def format_error(subdomain: str) -> str | None:
    if (
        not _SUBDOMAIN.match(subdomain)
        or len(subdomain) < MIN_LENGTH
        or len(subdomain) > MAX_LENGTH
    ):
        return (
            f"Invalid subdomain format. Use {MIN_LENGTH}-{MAX_LENGTH} lowercase "
            "letters, numbers, and hyphens."
        )
    if subdomain in RESERVED_SUBDOMAINS:
        return "This subdomain is reserved."
    return None


def check_subdomain(subdomain: str, is_taken: Callable[[str], bool]) -> SubdomainCheck:
    """Report whether ``subdomain`` can be claimed by a new organization."""
    error = format_error(subdomain)
    if error is None and is_taken(subdomain):
        error = "This subdomain is already taken."
    if error is not None:
        return SubdomainCheck(subdomain=subdomain, available=False, error=error)
    return SubdomainCheck(
        subdomain=subdomain, available=True, url=organization_url(subdomain)
    )


def ensure_available(subdomain: str, is_taken: Callable[[str], bool]) -> str:
    check = check_subdomain(subdomain, is_taken)
    if not check.available:
        logger.warning("Rejected subdomain=%s: %s", subdomain, check.error)
        raise SubdomainUnavailableError(check.error)
    return subdomain


def unique_slug(name: str, is_taken: Callable[[str], bool]) -> str:
    """Derive a free slug from an organization name, suffixing -2, -3, ..."""
    base = slugify(name)
    if len(base) < MIN_LENGTH:
        base = f"{base}-org" if base else "org"
    if base in RESERVED_SUBDOMAINS:
        base = f"{base}-org"

    candidate = base
    counter = 2
    while is_taken(candidate):
        suffix = f"-{counter}"
        candidate = f"{base[: MAX_LENGTH - len(suffix)].rstrip('-')}{suffix}"
        counter += 1
    return candidate


def organization_host(slug: str, custom_domain: str | None = None) -> str:
    return custom_domain or f"{slug}.{SETTINGS.subdomain_base}"


def organization_url(
    slug: str, custom_domain: str | None = None, *, scheme: str = "https"
) -> str:
    return f"{scheme}://{organization_host(slug, custom_domain)}"
