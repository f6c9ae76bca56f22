"""
Public catalog search

A plain predicate over book documents: no ranking, no fuzzy matching.
"""

from typing import Any, Dict, Iterable, List, Optional


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def matches_search(book: Dict[str, Any], search: str, lang: Optional[str] = None) -> bool:
    """
    True when `search` is a case-insensitive substring of the title, the
    description or the content of a translation. With `lang`, only
    translations in that language are searched.
    """
    needle = (search or "").strip().lower()
    if not needle:
        return True
    if _contains(book.get("title"), needle) or _contains(book.get("description"), needle):
        return True

    wanted = (lang or "").strip().lower()
    for translation in book.get("translations") or []:
        if wanted and (translation.get("language") or "").strip().lower() != wanted:
            continue
        if _contains(translation.get("content"), needle):
            return True
    return False


def filter_books(
    books: Iterable[Dict[str, Any]], search: Optional[str] = None, lang: Optional[str] = None
) -> List[Dict[str, Any]]:
    return [b for b in books if matches_search(b, search or "", lang)]


def strip_translation_content(book: Dict[str, Any]) -> Dict[str, Any]:
    """Listing payloads omit translation text to keep them small."""
    out = dict(book)
    out["translations"] = [
        {k: v for k, v in t.items() if k != "content"} for t in book.get("translations") or []
    ]
    return out
