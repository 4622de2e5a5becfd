"""
fsrs3.review_log
---------

This module defines the ReviewLog class.

Classes:
    ReviewLog: Represents one scheduling decision made for a Card.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import TypedDict
import json
from typing_extensions import Self
from fsrs3.card import _parse_datetime
from fsrs3.rating import Rating
from fsrs3.state import State


class ReviewLogDict(TypedDict):
    """
    JSON-serializable dictionary representation of a ReviewLog object.
    """

    card_id: int
    rating: int
    scheduled_days: int
    elapsed_days: int
    review_datetime: str
    state: int


@dataclass(frozen=True)
class ReviewLog:
    """
    Represents the log entry of a Card object that has been reviewed.

    Attributes:
        card_id: The id of the card being reviewed.
        rating: The rating this entry was scheduled for.
        scheduled_days: The interval in days chosen for that rating.
        elapsed_days: The days since the card's previous review, as computed at this review.
        review_datetime: The date and time of the review.
        state: The card's learning state before this review.
    """

    card_id: int
    rating: Rating
    scheduled_days: int
    elapsed_days: int
    review_datetime: datetime
    state: State

    def to_dict(
        self,
    ) -> ReviewLogDict:
        """
        Returns a dictionary representation of the ReviewLog object.

        Returns:
            A dictionary representation of the ReviewLog object.
        """

        return {
            "card_id": self.card_id,
            "rating": int(self.rating),
            "scheduled_days": self.scheduled_days,
            "elapsed_days": self.elapsed_days,
            "review_datetime": self.review_datetime.isoformat(),
            "state": int(self.state),
        }

    @classmethod
    def from_dict(
        cls,
        source_dict: ReviewLogDict,
    ) -> Self:
        """
        Creates a ReviewLog object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing ReviewLog object.

        Returns:
            A ReviewLog object created from the provided dictionary.
        """

        return cls(
            card_id=int(source_dict["card_id"]),
            rating=Rating(int(source_dict["rating"])),
            scheduled_days=int(source_dict["scheduled_days"]),
            elapsed_days=int(source_dict["elapsed_days"]),
            review_datetime=_parse_datetime(source_dict["review_datetime"]),
            state=State(int(source_dict["state"])),
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the ReviewLog object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the ReviewLog object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        source_dict: ReviewLogDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = ["ReviewLog"]
