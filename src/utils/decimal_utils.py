"""Helpers for Decimal normalization."""

from decimal import Decimal, InvalidOperation


def coerce_decimal(value) -> Decimal:
    """Normalize numeric values to Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Args:
        value: Raw numeric value (int, float, str or Decimal).

    Returns:
        Decimal: Normalized numeric value.

    Raises:
        ValueError: If the value cannot be read as a number.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric value: {value!r}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a numeric value: {value!r}") from e


__all__ = ["coerce_decimal"]
