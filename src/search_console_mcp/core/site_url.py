from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOMAIN_PREFIX = "sc-domain:"


def is_domain_property(site_url: str) -> bool:
    return site_url.startswith(DOMAIN_PREFIX)


def is_permission_error(exc: BaseException) -> bool:
    return "permission" in str(exc).lower()


def fallback_site_url(site_url: str) -> str:
    """Return the other identifier form for a Search Console property.

    ``https://example.com/`` becomes ``sc-domain:example.com``;
    ``sc-domain:example.com`` and a bare ``example.com`` become
    ``https://example.com``.
    """
    raw = site_url.strip()

    if is_domain_property(raw):
        return f"https://{raw[len(DOMAIN_PREFIX):].strip()}"

    parsed = urlparse(raw)
    if parsed.scheme in ("http", "https") and parsed.hostname:
        return f"{DOMAIN_PREFIX}{parsed.hostname}"

    return f"https://{raw}"


async def with_permission_fallback(
    operation: Callable[[str], Awaitable[T]],
    site_url: str,
) -> T:
    """Run ``operation`` against ``site_url``, retrying once with the other form.

    Only errors whose message mentions "permission" trigger the retry. The
    retry's own failure propagates as is.
    """
    try:
        return await operation(site_url)
    except Exception as exc:
        if not is_permission_error(exc):
            raise
        alternate = fallback_site_url(site_url)
        logger.info(
            "Permission denied for %s, retrying as %s", site_url, alternate
        )
        return await operation(alternate)
