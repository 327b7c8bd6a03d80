from __future__ import annotations

import math

from models.ledger import DeviationResult

DEFAULT_DEVIATION_THRESHOLD = 0.20


def analyze_deviation(
    planned: float,
    actual: float,
    threshold: float = DEFAULT_DEVIATION_THRESHOLD,
) -> DeviationResult:
    """
    Compare an actual amount against its planned amount.

    Args:
        planned: Budgeted amount for the category or item.
        actual: Realized amount for the same period.
        threshold: Fraction of the budget a deviation may reach and still be "OK".
    Returns:
        DeviationResult with `deviation = actual - planned`, the deviation as a
        fraction of the budget, and an Over/Under/OK status.
    Assumptions:
        A zero budget has no meaningful ratio, so any spend against it counts as
        a full 100% deviation in the direction of the actual amount. Non-finite
        inputs are treated as 0 so the result is always finite.
    """
    planned = _finite(planned)
    actual = _finite(actual)
    deviation = actual - planned

    if planned == 0:
        if actual > 0:
            deviation_pct = 1.0
        elif actual < 0:
            deviation_pct = -1.0
        else:
            deviation_pct = 0.0
    else:
        deviation_pct = _finite(deviation / planned)

    if abs(deviation_pct) <= threshold:
        status = "OK"
    elif deviation_pct > 0:
        status = "Over"
    else:
        status = "Under"

    return DeviationResult(deviation=deviation, deviation_pct=deviation_pct, status=status)


def is_reportable(planned: float, actual: float, result: DeviationResult) -> bool:
    """
    Decide whether a deviation belongs in the report.

    Out-of-threshold results always qualify, as does any spend against a zero
    budget and any budget with no spend at all, independent of the threshold.
    """

    if result.status != "OK":
        return True
    if planned == 0 and actual != 0:
        return True
    return planned != 0 and actual == 0


def _finite(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0
