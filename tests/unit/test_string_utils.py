"""
Unit tests for string utilities.
"""

import pytest

from hutwatch.utils.string_utils import slugify


class TestSlugify:
    """Tests for slugify."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Triglavski dom na Kredarici", "triglavski-dom-na-kredarici"),
            ("Refuge du Goûter", "refuge-du-gouter"),
            ("Schönbielhütte SAC", "schoenbielhuette-sac"),
            ("Straßburger Hütte", "strassburger-huette"),
            ("Capanna  Regina -- Margherita!", "capanna-regina-margherita"),
            ("Rifugio 3 Cime", "rifugio-3-cime"),
        ],
    )
    def test_slugs(self, text, expected):
        assert slugify(text) == expected

    def test_strips_leading_and_trailing_separators(self):
        assert slugify("  (Refuge) ") == "refuge"

    @pytest.mark.parametrize("text", ["", None, "!!!", 42])
    def test_unusable_input(self, text):
        assert slugify(text) == ""

    def test_max_length_does_not_end_with_hyphen(self):
        slug = slugify("Refuge de la Pointe", max_length=10)

        assert slug == "refuge-de"
        assert len(slug) <= 10
