"""Human-readable duration formatting."""

from __future__ import annotations

_UNITS: tuple[tuple[float, str], ...] = (
    (60 * 60 * 1000.0, "hr"),
    (60 * 1000.0, "min"),
    (1000.0, "s"),
    (1.0, "ms"),
    (0.001, "μs"),
    (0.000001, "ns"),
)


def format_ms(
    ms: float | None,
    precision: int = 3,
    *,
    allow_micros: bool = False,
    allow_nanos: bool = True,
) -> str:
    """Format a millisecond duration using the largest unit that fits.

    Values are scaled into the chosen unit and printed with 0, 1 or 2
    decimals depending on magnitude. Durations below every allowed unit fall
    back to milliseconds with `precision` decimals.
    """

    if not ms:
        return "0"

    for bound, unit in _UNITS:
        if unit == "μs" and not allow_micros:
            continue
        if unit == "ns" and not allow_nanos:
            continue
        if ms >= bound:
            return _nice(ms / bound) + unit
    return f"{ms:.{precision}f}ms"


def _nice(value: float) -> str:
    if value >= 100:
        return f"{value:.0f}"
    if value >= 10:
        return f"{value:.1f}"
    return f"{value:.2f}"
