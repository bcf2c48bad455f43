"""
String helpers for labels, titles and DOM ids.
"""

from __future__ import annotations

import re

_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "datum": "data",
    "medium": "media",
    "criterion": "criteria",
    "index": "indices",
    "matrix": "matrices",
    "status": "statuses",
    "address": "addresses",
}


def humanize(name: str | None) -> str:
    """
    Turn an identifier into a display label.

    Examples:
        >>> humanize("quantity_at_hand")
        'Quantity at hand'
        >>> humanize("product__dimensions")
        'Product dimensions'
        >>> humanize(None)
        ''
    """
    if not name:
        return ""
    text = re.sub(r"_+", " ", str(name)).strip()
    return text[:1].upper() + text[1:]


def slugify(value: str | None) -> str:
    """
    Slugify a string for use inside an HTML id attribute.

    Examples:
        >>> slugify("Prices & Costs")
        'prices-costs'
        >>> slugify("")
        'untitled'
    """
    text = str(value or "").lower().strip()
    text = re.sub(r"[^a-z0-9]+", "-", text).strip("-")
    return text or "untitled"


def pluralize(word: str) -> str:
    """
    Convert a singular English word to its plural form.

    Examples:
        >>> pluralize("Product")
        'Products'
        >>> pluralize("Category")
        'Categories'
        >>> pluralize("status")
        'statuses'
    """
    if not word:
        return word

    lower_word = word.lower()
    last = lower_word.rsplit(" ", 1)[-1]

    if last in _IRREGULAR_PLURALS:
        plural = _IRREGULAR_PLURALS[last]
        head = word[: len(word) - len(last)]
        if word[len(head)].isupper():
            plural = plural.capitalize()
        return head + plural

    if lower_word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if lower_word.endswith("y"):
        if len(word) > 1 and lower_word[-2] in "aeiou":
            return word + "s"
        return word[:-1] + "ies"
    if lower_word.endswith("fe"):
        return word[:-2] + "ves"
    return word + "s"
