"""Retention window pruning for clipboard history.

Months and years are fixed-length (30 and 365 days), so the cutoff is a plain
millisecond offset from ``now``.
"""

from typing import List, Optional, Sequence

from clipkeep.models.clipboard_item import ClipboardItem

DAY_MS = 24 * 60 * 60 * 1000

_UNIT_MS = {
    "days": DAY_MS,
    "months": 30 * DAY_MS,
    "years": 365 * DAY_MS,
}


def retention_cutoff(period_value: int, period_unit: str, now: int) -> Optional[int]:
    """Return the oldest timestamp (ms) still inside the window, or ``None``
    when nothing expires."""
    if period_unit == "permanent" or period_value <= 0:
        return None
    try:
        unit_ms = _UNIT_MS[period_unit]
    except KeyError:
        raise ValueError(f"Unknown retention unit: {period_unit!r}")
    return now - period_value * unit_ms


def filter_by_retention(
    items: Sequence[ClipboardItem],
    period_value: int,
    period_unit: str,
    now: int,
) -> List[ClipboardItem]:
    cutoff = retention_cutoff(period_value, period_unit, now)
    if cutoff is None:
        return list(items)
    return [item for item in items if item.favorite or item.timestamp >= cutoff]
