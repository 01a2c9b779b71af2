"""Rounding helpers shared by the scoring functions."""

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Python's built-in ``round`` uses banker's rounding, which would turn a
    weighted total of 12.5 into 12. Scores are published to drivers and
    supervisors, so .5 always rounds up.
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
