"""Tests for markup stripping and truncation."""

from bsky_crosspost.text import ELLIPSIS, normalize_text, strip_markup, truncate


class TestStripMarkup:
    def test_plain_text_unchanged(self):
        text = "Just some plain text, nothing fancy."
        assert normalize_text(text) == text

    def test_empty(self):
        assert normalize_text("") == ""

    def test_strips_tags_and_decodes_entities(self):
        raw = '<p>Fish &amp; chips at <a href="https://example.com">example.com</a></p>'
        assert strip_markup(raw) == "Fish & chips at example.com"

    def test_paragraphs_and_line_breaks(self):
        raw = "<p>First line<br>second line</p><p>New paragraph</p>"
        assert strip_markup(raw) == "First line\nsecond line\n\nNew paragraph"

    def test_double_escaped_entities(self):
        assert strip_markup("<p>a &amp;lt; b</p>") == "a < b"

    def test_mastodon_invisible_spans_keep_full_url(self):
        raw = (
            '<p><a href="https://example.com/article">'
            '<span class="invisible">https://</span>'
            '<span class="">example.com/article</span></a></p>'
        )
        assert strip_markup(raw) == "https://example.com/article"


class TestTruncate:
    def test_short_text_not_truncated(self):
        text = "a" * 300
        assert truncate(text) == text

    def test_long_text_truncated_to_budget(self):
        result = truncate("a" * 301)
        assert len(result) == 300
        assert result.endswith(ELLIPSIS)
        assert result.startswith("a" * 296)

    def test_budget_is_configurable(self):
        result = normalize_text("word " * 20, budget=20)
        assert len(result) == 20
        assert result.endswith("...")

    def test_counts_characters_not_bytes(self):
        text = "é" * 300
        assert normalize_text(text) == text
