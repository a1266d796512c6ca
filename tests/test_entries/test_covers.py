"""Tests for mdiary.entries.covers."""

from mdiary.entries.covers import fetch_external_metadata, generate_placeholder_cover, resolve_cover
from mdiary.entries.models import MediaType


class TestPlaceholderCover:
    def test_deterministic(self):
        first = generate_placeholder_cover("Dune", MediaType.BOOK)
        assert first == generate_placeholder_cover("Dune", "book")

    def test_colour_by_type(self):
        assert "/8b5cf6/" in generate_placeholder_cover("Dune", MediaType.BOOK)
        assert "/ef4444/" in generate_placeholder_cover("Alien", MediaType.FILM)

    def test_unknown_type_uses_grey(self):
        assert "/6b7280/" in generate_placeholder_cover("Thing", "podcast")

    def test_text_is_uppercased_and_escaped(self):
        url = generate_placeholder_cover("Blade Runner & co", MediaType.FILM)
        assert url.endswith("?text=BLADE%20RUNNER%20%26%20CO")

    def test_text_is_truncated(self):
        url = generate_placeholder_cover("a" * 100, MediaType.BOOK)
        assert url.endswith("=" + "A" * 30)


class TestResolveCover:
    def test_prefers_cover_url(self, make_entry):
        entry = make_entry(cover_url="https://example.com/c.jpg")
        assert resolve_cover(entry) == "https://example.com/c.jpg"

    def test_falls_back_to_placeholder(self, make_entry):
        entry = make_entry("Dune")
        assert resolve_cover(entry) == generate_placeholder_cover("Dune", MediaType.BOOK)


def test_metadata_hook_returns_empty():
    assert fetch_external_metadata("Dune", MediaType.BOOK) == {}
