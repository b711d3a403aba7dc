"""Utilities for working with point values in Chorely."""

from __future__ import annotations

from typing import Union

PointsLike = Union[int, str]


def to_points(value: PointsLike) -> int:
    """Convert ``value`` to a whole number of points."""

    if isinstance(value, bool):
        raise TypeError("Booleans are not valid point values.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"Unsupported points type: {type(value)!r}")


def require_positive(points: int, *, allow_zero: bool = False) -> int:
    """Ensure ``points`` is positive (or non-negative when ``allow_zero`` is true)."""

    if allow_zero:
        if points < 0:
            raise ValueError("Points must be zero or greater.")
    else:
        if points <= 0:
            raise ValueError("Points must be greater than zero.")
    return points


def format_points(points: int) -> str:
    """Return ``points`` as a short label (e.g. ``1,250 pts``)."""

    return f"{points:,} pt" if points == 1 else f"{points:,} pts"


__all__ = ["PointsLike", "to_points", "require_positive", "format_points"]
