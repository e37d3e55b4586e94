"""Detect links and mentions in plain text and express them as facets.

Bluesky does not auto-link post text. Every link has to be declared as a
``app.bsky.richtext.facet`` whose index is a half-open range of UTF-8 *byte*
offsets, so all positions below are converted from ``re`` character offsets
with ``len(text[:i].encode())``.

Detection runs three passes whose results are concatenated in order:

1. explicit ``http(s)://`` URLs, with trailing punctuation trimmed
2. bare domains such as ``example.com``, unless already part of a URL
3. ``@user`` / ``@user@domain`` mentions the source post resolved
"""

import logging
import re

from .models import Facet

logger = logging.getLogger(__name__)

URL_RE = re.compile(r"https?://[^\s<>\"'`]+", re.IGNORECASE)

DOMAIN_RE = re.compile(
    r"(?<![\w@./-])"
    r"((?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,})"
    r"(?![\w-])",
    re.IGNORECASE,
)

MENTION_RE = re.compile(
    r"(?<![\w/@])@([a-z0-9_]+(?:[a-z0-9_.-]*[a-z0-9_])?(?:@[a-z0-9-]+(?:\.[a-z0-9-]+)+)?)",
    re.IGNORECASE,
)

_TLD_RE = re.compile(r"[a-z]{2,6}", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;!?"


def clean_url(url: str) -> str:
    """Trim sentence punctuation and an unbalanced closing parenthesis."""
    url = url.rstrip(_TRAILING_PUNCTUATION)
    if url.endswith(")") and "(" not in url:
        url = url[:-1].rstrip(_TRAILING_PUNCTUATION)
    return url


def is_valid_domain(domain: str) -> bool:
    if "." not in domain:
        return False
    return bool(_TLD_RE.fullmatch(domain.rsplit(".", 1)[1]))


def _byte_offset(text: str, index: int) -> int:
    return len(text[:index].encode("utf-8"))


def detect_urls(text: str) -> list[tuple[Facet, str]]:
    """Return (facet, cleaned url) pairs for each explicit URL."""
    results: list[tuple[Facet, str]] = []
    for match in URL_RE.finditer(text):
        url = clean_url(match.group(0))
        if not url or "://" not in url or url.endswith("://"):
            continue
        start = _byte_offset(text, match.start())
        end = start + len(url.encode("utf-8"))
        results.append((Facet(byte_start=start, byte_end=end, uri=url), url))
    return results


def detect_domains(text: str, urls: list[str]) -> list[Facet]:
    facets: list[Facet] = []
    for match in DOMAIN_RE.finditer(text):
        domain = match.group(1)
        # Explicit URLs take precedence over the bare domain inside them
        if any(domain in url for url in urls):
            continue
        if not is_valid_domain(domain):
            continue
        facets.append(
            Facet(
                byte_start=_byte_offset(text, match.start(1)),
                byte_end=_byte_offset(text, match.end(1)),
                uri=f"https://{domain}",
            )
        )
    return facets


def detect_mentions(text: str, mentions: dict[str, str | None]) -> list[Facet]:
    """Link ``@handle`` tokens to the profile URIs the source post resolved.

    A bare ``@user`` also resolves a remote ``user@domain`` handle when that
    local part is unambiguous, since Mastodon renders remote mentions in the
    status text without their domain. Unknown handles and handles without a
    profile URI produce no facet.
    """
    index = {handle.lower(): uri for handle, uri in mentions.items()}
    by_local_part: dict[str, list[str]] = {}
    for handle in index:
        if "@" in handle:
            by_local_part.setdefault(handle.split("@", 1)[0], []).append(handle)

    facets: list[Facet] = []
    for match in MENTION_RE.finditer(text):
        handle = match.group(1).lower()
        if handle not in index and len(by_local_part.get(handle, [])) == 1:
            handle = by_local_part[handle][0]
        if handle not in index:
            logger.debug("Mention @%s not resolved by source post, skipping", handle)
            continue
        uri = index[handle]
        if not uri:
            logger.debug("No profile URI for @%s, skipping", handle)
            continue
        facets.append(
            Facet(
                byte_start=_byte_offset(text, match.start()),
                byte_end=_byte_offset(text, match.end()),
                uri=uri,
            )
        )
    return facets


def detect_links(text: str, mentions: dict[str, str | None] | None = None) -> list[Facet]:
    """Return link facets for ``text`` in discovery order."""
    if not text:
        return []

    url_matches = detect_urls(text)
    facets = [facet for facet, _ in url_matches]
    facets.extend(detect_domains(text, [url for _, url in url_matches]))
    facets.extend(detect_mentions(text, mentions or {}))
    return facets
