"""
fsrs3
-------

A Python implementation of the free spaced-repetition scheduler with the 13-weight memory model.
Given a card and the time of a review, it computes the next card for every possible rating.
"""

from fsrs3.scheduler import Scheduler, SchedulingInfo, SchedulingResult, schedule
from fsrs3.state import State
from fsrs3.card import Card
from fsrs3.rating import Rating, rating_to_string
from fsrs3.review_log import ReviewLog
from fsrs3.parameters import Parameters, Weights
from fsrs3.memory_model import MemoryModel
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fsrs3.optimizer import Optimizer


# lazy load the Optimizer module due to heavy dependencies
def __getattr__(name: str) -> type:
    if name == "Optimizer":
        global Optimizer
        from fsrs3.optimizer import Optimizer

        return Optimizer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Scheduler",
    "SchedulingInfo",
    "SchedulingResult",
    "schedule",
    "Card",
    "Rating",
    "rating_to_string",
    "ReviewLog",
    "State",
    "Parameters",
    "Weights",
    "MemoryModel",
    "Optimizer",
]
