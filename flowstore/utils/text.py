"""Text helpers for building storage keys."""

import re
import unicodedata

_WHITESPACE = re.compile(r"\s")
_NON_WORD = re.compile(r"[^\w-]")
_EDGE_DASHES = re.compile(r"(^-|-$)")


def slugify(value: str) -> str:
    """
    Turn an identifier into a lowercase path-friendly slug.

    Whitespace becomes ``-``, accents are stripped, any other non-word
    character is dropped and a leading/trailing dash is trimmed.

        >>> slugify("My Flow")
        'my-flow'
    """
    if value is None:
        return None

    slug = _WHITESPACE.sub("-", str(value))
    slug = unicodedata.normalize("NFD", slug)
    slug = "".join(char for char in slug if not unicodedata.combining(char))
    slug = _NON_WORD.sub("", slug)
    slug = _EDGE_DASHES.sub("", slug)
    return slug.lower()
