from __future__ import annotations


def money_out(value) -> float | None:
    """NUMERIC columns come back as Decimal; JSON callers get floats."""
    if value is None:
        return None
    return float(value)
