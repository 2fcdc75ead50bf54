"""Connector definitions offered when onboarding a datasource."""

from typing import Any, Dict, Iterable, Optional


def filter_connectors(
    connectors: Iterable[Dict[str, Any]], search: Optional[str] = None
) -> list[Dict[str, Any]]:
    """Deduplicate connectors by case-insensitive name and filter by search text.

    The first connector seen with a given name wins and the original order is kept.
    """
    needle = (search or "").lower()
    seen: set[str] = set()
    result = []
    for connector in connectors:
        name = (connector.get("name") or "").lower()
        if name in seen:
            continue
        seen.add(name)
        if needle in name:
            result.append(connector)
    return result
