# app/utils/ranking.py
"""
Turn raw free-text geocoder records into a short, ranked suggestion list.

Order of operations: extract the field for the query kind, drop empties,
dedupe (exact, case-sensitive, first seen wins), rank against the query,
truncate.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.core.config import DEFAULT_LIMIT
from app.schemas.pydantic_ import QueryKind

# structured address keys tried in order before falling back to display_name
FIELD_KEYS = {
    QueryKind.STREET: ("road",),
    QueryKind.CITY: ("city", "town", "village"),
    QueryKind.COUNTRY: ("country",),
}


def _first_segment(display_name: Any) -> str:
    if not isinstance(display_name, str):
        return ""
    return display_name.split(",")[0].strip()


def extract_field(record: Dict[str, Any], kind: QueryKind) -> Optional[str]:
    address = record.get("address") or {}
    keys = FIELD_KEYS.get(kind)
    if keys is None:
        value = record.get("display_name")
        return value.strip() if isinstance(value, str) and value.strip() else None

    for key in keys:
        value = address.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    return _first_segment(record.get("display_name")) or None


def dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


def relevance(candidate: str, query: str) -> Tuple[int, int]:
    """Sort key: exact < prefix < substring < other, then shorter first."""
    c = candidate.lower()
    if c == query:
        tier = 0
    elif c.startswith(query):
        tier = 1
    elif query in c:
        tier = 2
    else:
        tier = 3
    return tier, len(candidate)


def rank(values: List[str], query: str) -> List[str]:
    q = query.strip().lower()
    # sorted() is stable, so full ties keep first-appearance order
    return sorted(values, key=lambda v: relevance(v, q))


def process_suggestions(
    records: Iterable[Dict[str, Any]],
    query: str,
    kind: QueryKind,
    limit: int = DEFAULT_LIMIT,
) -> List[str]:
    extracted = (extract_field(r, kind) for r in records)
    unique = dedupe(v for v in extracted if v)
    return rank(unique, query)[: max(0, limit)]
