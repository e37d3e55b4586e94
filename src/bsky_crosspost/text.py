"""Turn source post markup into plain text that fits a Bluesky record.

Mastodon renders statuses as HTML (``<p>`` paragraphs, ``<br>`` line breaks,
anchor tags around links and mentions). Bluesky records carry plain text plus
byte-range facets, so the markup is dropped here and links are rediscovered
later by the facet extractor.
"""

import html

from bs4 import BeautifulSoup

ELLIPSIS = "..."
POST_CHAR_BUDGET = 300

_BLOCK_TAGS = ["p", "blockquote", "li", "pre"]


def strip_markup(raw: str) -> str:
    """Remove all tags from ``raw`` and decode HTML entities."""
    if not raw:
        return ""
    if "<" not in raw and "&" not in raw:
        return raw

    soup = BeautifulSoup(raw, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")

    blocks = soup.find_all(_BLOCK_TAGS)
    if blocks:
        # Paragraphs become blank-line separated text, anything between them is kept
        for block in blocks:
            block.insert_after("\n\n")
        text = soup.get_text().strip()
    else:
        text = soup.get_text()

    # get_text() decodes one level; statuses occasionally arrive double-escaped
    return html.unescape(text)


def truncate(text: str, budget: int = POST_CHAR_BUDGET) -> str:
    """Cut ``text`` to exactly ``budget`` characters ending in an ellipsis."""
    if len(text) <= budget:
        return text
    return f"{text[:budget - len(ELLIPSIS) - 1]} {ELLIPSIS}"


def normalize_text(raw: str, budget: int = POST_CHAR_BUDGET) -> str:
    return truncate(strip_markup(raw), budget)
