from __future__ import annotations

from datetime import date


def prorated_allocation(join_date: date, yearly: float, year: int) -> float:
    """Yearly leave grant for ``year``, prorated for the join year.

    An employee joining in March keeps the ten remaining months:
    ``round(24 * 10 / 12) == 20``.
    """
    if join_date.year == year:
        remaining_months = 12 - (join_date.month - 1)
        return float(round(yearly * remaining_months / 12))
    if join_date.year > year:
        return 0.0
    return float(yearly)
