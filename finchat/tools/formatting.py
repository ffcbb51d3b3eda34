"""Number formatting shared by the tool summarizers."""

from __future__ import annotations


def signed(value: float, digits: int = 2) -> str:
    """Render ``value`` with an explicit "+" when non-negative."""

    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{digits}f}"


def grouped(value: float) -> str:
    """Thousands-separated number with up to three fraction digits.

    Matches the en-US ``Number.toLocaleString()`` output browsers show,
    e.g. 67432.125 -> "67,432.125" and 3000.0 -> "3,000".
    """

    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def billions(value: float) -> str:
    return f"{value / 1e9:.2f}"
