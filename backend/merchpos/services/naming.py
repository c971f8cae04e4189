# Overview: Pure helpers that derive item names, SKUs and category abbreviations from category selections.

from __future__ import annotations

import random
import re

# Values that carry no information in a display name
_SUPPRESSED_GROUP_TYPES = {"General"}
_SUPPRESSED_DESIGNS = {"Plain", "Solid"}
_SUPPRESSED_STYLE_GROUPS = {"Other"}
_SUPPRESSED_SIZES = {"N/A"}

DEFAULT_ITEM_NAME = "New Item"

COLOR_ABBREVIATIONS = {
    "BLACK": "BK",
    "WHITE": "WH",
    "RED": "RD",
    "BLUE": "BL",
    "GREEN": "GR",
    "YELLOW": "YL",
    "ORANGE": "OR",
    "PURPLE": "PU",
    "PINK": "PK",
    "GRAY": "GY",
    "GREY": "GY",
    "BROWN": "BR",
    "NAVY": "NV",
    "MAROON": "MR",
    "TEAL": "TL",
    "TURQUOISE": "TQ",
    "LIME": "LM",
    "GOLD": "GD",
    "SILVER": "SL",
    "MULTI-COLOR": "MC",
    "MULTI": "MC",
}

SIZE_ABBREVIATIONS = {
    "EXTRA SMALL": "XS",
    "SMALL": "S",
    "MEDIUM": "M",
    "LARGE": "L",
    "XLARGE": "XL",
    "EXTRA LARGE": "XL",
    "XXLARGE": "XXL",
    "XX LARGE": "XXL",
    "2XL": "XXL",
    "3XL": "3XL",
    "4XL": "4XL",
    "ONE SIZE": "OS",
    "OSFA": "OS",
    "HUGE": "HG",
}

# Category types whose multi-word values abbreviate to an acronym
_ACRONYM_TYPES = {"design", "grouptype", "stylegroup", "group", "style", "category"}

_CONSONANT = re.compile(r"[BCDFGHJKLMNPQRSTVWXYZ]")
_VOWEL = re.compile(r"[AEIOU]")


def _clean(value) -> str:
    return str(value).strip() if value is not None else ""


def generate_item_name(selections: dict) -> str:
    """
    Build a display name from category selections.

    Order: groupType, design, color, styleGroup (or type), "(size)".
    Default-ish values (groupType "General", design "Plain"/"Solid",
    styleGroup "Other", size "N/A") are left out.

    >>> generate_item_name({"type": "Shirt", "color": "Blue", "size": "M",
    ...                     "groupType": "General", "design": "Plain"})
    'Blue Shirt (M)'
    """
    group_type = _clean(selections.get("groupType"))
    design = _clean(selections.get("design"))
    color = _clean(selections.get("color"))
    style_group = _clean(selections.get("styleGroup"))
    item_type = _clean(selections.get("type"))
    size = _clean(selections.get("size"))

    parts = []
    if group_type and group_type not in _SUPPRESSED_GROUP_TYPES:
        parts.append(group_type)
    if design and design not in _SUPPRESSED_DESIGNS:
        parts.append(design)
    if color:
        parts.append(color)
    if style_group and style_group not in _SUPPRESSED_STYLE_GROUPS:
        parts.append(style_group)
    elif item_type:
        parts.append(item_type)
    if size and size not in _SUPPRESSED_SIZES:
        parts.append(f"({size})")

    return " ".join(parts) if parts else DEFAULT_ITEM_NAME


def generate_sku(selections: dict, rng: random.Random | None = None) -> str:
    """TYP-COL-SZ-NNN: 3/3/2 uppercase prefixes plus a random 100-999 suffix."""
    rng = rng or random
    item_type = _clean(selections.get("type"))
    color = _clean(selections.get("color"))
    size = _clean(selections.get("size"))

    type_code = item_type[:3].upper() if item_type else "ITM"
    color_code = color[:3].upper() if color else "COL"
    size_code = size[:2].upper() if size else "SZ"
    suffix = rng.randint(100, 999)

    return f"{type_code}-{color_code}-{size_code}-{suffix}"


def generate_unique_sku(selections: dict, exists, *, attempts: int = 20, rng: random.Random | None = None) -> str:
    """
    Retry generate_sku until exists(sku) is False.

    Raises ValueError when every attempt collides (the 900-value suffix space
    for this prefix is nearly exhausted).
    """
    for _ in range(attempts):
        sku = generate_sku(selections, rng=rng)
        if not exists(sku):
            return sku
    raise ValueError("Could not generate a unique SKU; enter one manually")


def generate_abbreviation(value, category_type) -> str:
    """Short code for a category value, used when labelling and building SKUs."""
    value = _clean(value)
    category_type = _clean(category_type)
    if not value or not category_type:
        return ""

    clean = value.upper()
    kind = category_type.lower()

    if kind == "color":
        if clean in COLOR_ABBREVIATIONS:
            return COLOR_ABBREVIATIONS[clean]
        consonant = _CONSONANT.search(clean)
        vowel = _VOWEL.search(clean)
        if consonant and vowel:
            return consonant.group(0) + vowel.group(0)
        return clean[:2]

    if kind == "size":
        if clean in SIZE_ABBREVIATIONS:
            return SIZE_ABBREVIATIONS[clean]
        if clean.isdigit():
            return clean
        return clean[:3]

    if kind in _ACRONYM_TYPES:
        words = clean.split()
        if len(words) == 1:
            return clean[:3]
        return "".join(word[0] for word in words)[:4]

    return clean[:3]


def unique_abbreviation(base: str, taken: set[str]) -> str:
    """Append 1, 2, ... to base until it is not in taken."""
    candidate = base
    counter = 1
    while candidate in taken:
        candidate = f"{base}{counter}"
        counter += 1
    return candidate
