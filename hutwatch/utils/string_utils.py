"""
String helpers.
"""

import re
import unicodedata

# Transliterations unicodedata does not decompose
_REPLACEMENTS = {
    "ä": "ae",
    "ö": "oe",
    "ü": "ue",
    "ß": "ss",
    "đ": "d",
    "ł": "l",
    "ø": "o",
}


def slugify(text: str, max_length: int = 100) -> str:
    """
    Convert text to URL-friendly slug.

    - Converts to lowercase
    - Transliterates umlauts and strips accents
    - Replaces everything else with single hyphens

    Args:
        text: Text to slugify
        max_length: Maximum slug length (the properties.slug column is 100)

    Returns:
        URL-friendly slug

    Examples:
        >>> slugify("Triglavski dom na Kredarici")
        'triglavski-dom-na-kredarici'
        >>> slugify("Refuge du Goûter")
        'refuge-du-gouter'
        >>> slugify("Schönbielhütte SAC")
        'schoenbielhuette-sac'
    """
    if not text or not isinstance(text, str):
        return ""

    text = text.lower()
    for old, new in _REPLACEMENTS.items():
        text = text.replace(old, new)

    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^a-z0-9]+", "-", text).strip("-")
    return text[:max_length].rstrip("-")
