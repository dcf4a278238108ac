"""
Food keyword lexicon and matcher.

The same case-insensitive search drives both the food filter and display
highlighting. Title and description are scanned separately, so an included
event always has a highlight in one of them.
"""

from typing import Iterable, Mapping, Optional, Union
import re

from markupsafe import Markup, escape


# Food-related keywords in multiple languages, scanned in this order
FOOD_KEYWORDS: dict[str, list[str]] = {
    "french": [
        "apéritif", "apéro", "collation", "buffet", "cocktail", "dégustation",
        "repas", "dîner", "déjeuner", "petit-déjeuner", "café", "thé",
        "vin d'honneur", "réception", "pause-café",
    ],
    "german": [
        "apéro", "aperitif", "imbiss", "buffet", "cocktail", "verkostung",
        "essen", "abendessen", "mittagessen", "frühstück", "kaffee", "tee",
        "empfang", "kaffeepause", "erfrischungen", "verpflegung",
        "fingerfood", "snacks", "getränke",
    ],
    "english": [
        "aperitif", "apéro", "refreshments", "buffet", "cocktail", "tasting",
        "food", "dinner", "lunch", "breakfast", "coffee", "tea",
        "reception", "coffee break", "snacks", "catering",
        "finger food", "drinks", "beverages", "networking lunch",
        "wine reception", "light refreshments",
    ],
    "common": [
        "free food", "kostenlos essen", "gratuit", "gratis",
        "networking", "social", "meet & greet", "mingle",
    ],
}

DEFAULT_MARKER = ("<mark>", "</mark>")

Lexicon = Union[Mapping[str, Iterable[str]], Iterable[str]]


def flatten_lexicon(lexicon: Lexicon = FOOD_KEYWORDS) -> list[str]:
    """Flatten a grouped lexicon, keeping first-seen order and dropping repeats."""
    groups = lexicon.values() if isinstance(lexicon, Mapping) else [lexicon]
    seen: set[str] = set()
    flat: list[str] = []
    for group in groups:
        for keyword in group:
            lowered = keyword.lower()
            if lowered and lowered not in seen:
                seen.add(lowered)
                flat.append(keyword)
    return flat


_DEFAULT_FLAT = flatten_lexicon(FOOD_KEYWORDS)


def _keywords(lexicon: Optional[Lexicon]) -> list[str]:
    if lexicon is None or lexicon is FOOD_KEYWORDS:
        return _DEFAULT_FLAT
    return flatten_lexicon(lexicon)


def _search(keyword: str, text: str) -> Optional[re.Match]:
    return re.search(re.escape(keyword), text, re.IGNORECASE)


def first_match_in(texts: Iterable[Optional[str]], lexicon: Optional[Lexicon] = None) -> Optional[str]:
    """Return the first lexicon keyword found in any of the texts, or None.

    Each text is searched on its own; a keyword never spans two texts.
    """
    texts = [text for text in texts if text]
    for keyword in _keywords(lexicon):
        for text in texts:
            if _search(keyword, text):
                return keyword
    return None


def first_match(text: Optional[str], lexicon: Optional[Lexicon] = None) -> Optional[str]:
    """Return the first lexicon keyword contained in text, or None."""
    return first_match_in([text], lexicon)


def has_match(text: Optional[str], lexicon: Optional[Lexicon] = None) -> bool:
    return first_match(text, lexicon) is not None


def highlight(
    text: Optional[str],
    lexicon: Optional[Lexicon] = None,
    marker: tuple[str, str] = DEFAULT_MARKER,
) -> Markup:
    """
    Escape text for HTML and wrap the first keyword occurrence in a marker.

    Args:
        text: Raw text (title or description)
        lexicon: Keyword lexicon (defaults to FOOD_KEYWORDS)
        marker: Opening and closing markup placed around the match

    Returns:
        Markup safe to insert into a template
    """
    if not text:
        return Markup("")
    keyword = first_match(text, lexicon)
    if keyword is None:
        return escape(text)

    # Offsets come from the original text; lower() can change its length
    start, end = _search(keyword, text).span()
    opening, closing = marker
    return (
        escape(text[:start])
        + Markup(opening)
        + escape(text[start:end])
        + Markup(closing)
        + escape(text[end:])
    )
