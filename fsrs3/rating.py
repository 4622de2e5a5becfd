"""
fsrs3.rating
---------

This module defines the Rating enum and its display helper.

Classes:
    Rating: Enum representing the four possible ratings when reviewing a card.
"""

from __future__ import annotations
from enum import IntEnum


class Rating(IntEnum):
    """
    Enum representing the four possible ratings when reviewing a card.

    The integer values are used directly by the memory model formulas.
    """

    Again = 0
    Hard = 1
    Good = 2
    Easy = 3


def rating_to_string(rating: Rating | int) -> str:
    """
    Returns the display label of a rating, or "unknown" for anything that isn't one.

    Args:
        rating: The rating to render.

    Returns:
        One of "Again", "Hard", "Good", "Easy" or "unknown".
    """

    if isinstance(rating, bool) or not isinstance(rating, int):
        return "unknown"

    try:
        return Rating(rating).name
    except ValueError:
        return "unknown"


__all__ = ["Rating", "rating_to_string"]
