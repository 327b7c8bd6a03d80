from __future__ import annotations

"""
String formatting for report cells and narrative lines.

Amounts are kept as floats throughout parsing and analysis; these helpers are
only called at the report boundary.
"""


def format_currency(amount: float) -> str:
    """Format an amount as "$1234.50" (two decimals, no thousands separators)."""
    return f"${_clean_zero(amount, 2):.2f}"


def format_signed_amount(amount: float) -> str:
    """Format a deviation with an explicit "+" for positive values, e.g. "+12.00" or "-1408.92"."""
    amount = _clean_zero(amount, 2)
    if amount > 0:
        return f"+{amount:.2f}"
    return f"{amount:.2f}"


def format_percent(fraction: float) -> str:
    """Format a fraction as a one-decimal percentage, e.g. -0.2604 -> "-26.0%"."""
    return f"{_clean_zero(fraction * 100, 1):.1f}%"


def _clean_zero(value: float, places: int) -> float:
    # Values that display as zero print without a sign ("0.00", never "-0.00").
    return 0.0 if round(value, places) == 0 else value
