from __future__ import annotations

DEFAULT_LANGUAGE = "he"

_MESSAGES: dict[str, dict[str, str]] = {
    "he": {
        "search_failed": "שגיאה בחיפוש סרטונים",
        "skip_added": '"{title}" נוסף לרשימת הדילוג',
        "fetch_failed": 'שגיאה בטעינת סרטונים עבור "{term}"',
    },
    "en": {
        "search_failed": "Error searching for videos",
        "skip_added": '"{title}" added to skip list',
        "fetch_failed": 'Failed to fetch videos for "{term}"',
    },
}


def message(key: str, language: str | None = None, **values: object) -> str:
    """Look up a user-facing string, falling back to Hebrew for unknown languages."""
    catalog = _MESSAGES.get(language or DEFAULT_LANGUAGE, _MESSAGES[DEFAULT_LANGUAGE])
    return catalog[key].format(**values)
