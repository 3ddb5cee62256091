from __future__ import annotations

from collections.abc import Sequence

from solo_system.schemas.progress import ProgressEntry

DEFAULT_HISTORY_LIMIT = 90

# Entries shown per chart view, newest last.
CHART_WINDOWS: dict[str, int] = {
    "daily": 7,
    "weekly": 28,
    "monthly": 90,
}


def upsert_history(
    entries: Sequence[ProgressEntry],
    entry: ProgressEntry,
    *,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[ProgressEntry]:
    """Replace any entry sharing ``entry.date``, sort ascending, keep the newest ``limit``."""
    kept = [item for item in entries if item.date != entry.date]
    kept.append(entry)
    kept.sort(key=lambda item: item.date)
    return kept[-limit:]


def chart_window(entries: Sequence[ProgressEntry], view: str) -> list[ProgressEntry]:
    try:
        size = CHART_WINDOWS[view]
    except KeyError as exc:
        raise ValueError(f"Unknown chart view: {view!r}") from exc
    return list(entries[-size:])
