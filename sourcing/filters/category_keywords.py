# sourcing/filters/category_keywords.py

"""Category name → title keyword lookup.

The platform's feed endpoint has no category filter, so a category is
approximated by the words its products usually carry in their titles.
"""

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "electronics": [
        "phone", "laptop", "tablet", "computer",
        "electronic", "tech", "gadget",
    ],
    "fashion": [
        "dress", "shirt", "pants", "shoes",
        "clothing", "fashion", "wear",
    ],
    "home": [
        "home", "kitchen", "furniture", "decor",
        "living", "bedroom",
    ],
    "sports": [
        "sport", "fitness", "gym", "outdoor",
        "exercise", "running",
    ],
    "beauty": [
        "beauty", "makeup", "cosmetic", "skincare",
        "hair", "nail",
    ],
    "toys": [
        "toy", "game", "kids", "children", "baby", "play",
    ],
    "automotive": [
        "car", "auto", "vehicle", "motorcycle", "bike", "parts",
    ],
    "jewelry": [
        "jewelry", "watch", "ring", "necklace",
        "bracelet", "earring",
    ],
}


def category_keywords_for(category_name: str) -> list[str]:
    """Return the keyword set of the first table entry named in *category_name*.

    Matching is a case-insensitive substring test, so "Consumer
    Electronics" resolves to the ``electronics`` set.  Unknown
    categories return an empty list.
    """
    lowered = category_name.lower()
    for key, keywords in CATEGORY_KEYWORDS.items():
        if key in lowered:
            return list(keywords)
    return []
