"""Tests for the food keyword matcher."""

import pytest
from markupsafe import Markup

from servers.event_feed.keywords import (
    FOOD_KEYWORDS,
    first_match,
    first_match_in,
    flatten_lexicon,
    has_match,
    highlight,
)


class TestFlattenLexicon:
    """Tests for lexicon flattening."""

    def test_keeps_enumeration_order(self):
        flat = flatten_lexicon(FOOD_KEYWORDS)
        assert flat[0] == "apéritif"
        assert flat.index("apéro") < flat.index("aperitif") < flat.index("refreshments")

    def test_drops_repeats(self):
        flat = flatten_lexicon(FOOD_KEYWORDS)
        assert flat.count("buffet") == 1
        assert flat.count("apéro") == 1

    def test_plain_list(self):
        assert flatten_lexicon(["Pizza", "pizza", "beer"]) == ["Pizza", "beer"]


class TestFirstMatch:
    """Tests for first_match / has_match."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Apéro Reception", "apéro"),
            ("APÉRO RICHE", "apéro"),
            ("Kaffeepause im Foyer", "kaffee"),
            ("Networking lunch for PhD students", "lunch"),
            ("Free food for everyone", "food"),
        ],
    )
    def test_first_keyword_in_lexicon_order(self, text, expected):
        assert first_match(text) == expected

    def test_no_match(self):
        assert first_match("Board Meeting") is None
        assert has_match("Board Meeting") is False

    def test_empty_text(self):
        assert first_match("") is None
        assert first_match(None) is None

    def test_custom_lexicon(self):
        lexicon = {"pizza": ["pizza", "pasta"]}
        assert first_match("Pasta night", lexicon) == "pasta"
        assert first_match("Apéro", lexicon) is None


class TestHighlight:
    """Tests for highlight."""

    def test_wraps_match_preserving_case(self):
        result = highlight("Welcome Apéro")
        assert result == Markup("Welcome <mark>Apéro</mark>")

    def test_only_first_keyword_occurrence(self):
        result = highlight("Lunch and lunch again")
        assert str(result) == "<mark>Lunch</mark> and lunch again"

    def test_escapes_html(self):
        result = highlight("<b>Drinks</b> & talks")
        assert str(result) == "&lt;b&gt;<mark>Drinks</mark>&lt;/b&gt; &amp; talks"

    def test_custom_marker(self):
        result = highlight("Coffee break", marker=("[", "]"))
        assert str(result) == "[Coffee] break"

    def test_without_match_is_escaped_text(self):
        assert str(highlight("Q&A session")) == "Q&amp;A session"

    def test_offsets_survive_case_folding(self):
        # "İ".lower() is two characters long
        assert str(highlight("İİ free coffee today")) == "İİ free <mark>coffee</mark> today"

    def test_highlight_agrees_with_filter(self):
        text = "Semesterstart mit Verpflegung"
        assert has_match(text)
        assert "<mark>" in str(highlight(text))


class TestFirstMatchIn:
    """Tests for matching across separate fields."""

    def test_earliest_keyword_across_fields(self):
        assert first_match_in(["Networking lunch", "Apéro afterwards"]) == "apéro"

    def test_keyword_never_spans_fields(self):
        lexicon = {"english": ["meet & greet"]}
        assert first_match_in(["Alumni meet &", "greet"], lexicon) is None
        assert first_match_in(["Alumni", "Meet & Greet"], lexicon) == "meet & greet"

    def test_skips_empty_fields(self):
        assert first_match_in([None, "", "Coffee break"]) == "coffee"
