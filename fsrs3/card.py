"""
fsrs3.card
---------

This module defines the Card class.

Classes:
    Card: Represents a flashcard being scheduled.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import time
from typing import TypedDict
from typing_extensions import Self
from fsrs3.state import State


class CardDict(TypedDict):
    """
    JSON-serializable dictionary representation of a Card object.
    """

    card_id: int
    due: str
    stability: float
    difficulty: float
    elapsed_days: int
    scheduled_days: int
    reps: int
    lapses: int
    state: int
    last_review: str | None


def _new_card_id() -> int:
    # epoch milliseconds of when the card was created
    card_id = int(datetime.now(timezone.utc).timestamp() * 1000)
    # wait 1ms to prevent potential card_id collision on next Card creation
    time.sleep(0.001)
    return card_id


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"datetime {value!r} must be timezone-aware")
    return parsed


@dataclass(frozen=True)
class Card:
    """
    Represents a flashcard being scheduled.

    Cards are immutable values. Scheduling a card never changes it; the scheduler
    returns new Card objects for each possible rating instead.

    Attributes:
        card_id: The id of the card. Defaults to the epoch milliseconds of when the card was created.
        due: The date and time when the card is due next.
        stability: Approximate number of days until the probability of recall drops to 90%.
        difficulty: Intrinsic hardness of the card, between 1 and 10 once scheduled.
        elapsed_days: Days between the last two reviews, 0 if never reviewed.
        scheduled_days: The interval in days chosen at the last scheduling.
        reps: Number of times the card has been scheduled.
        lapses: Number of times the card was forgotten.
        state: The card's current learning state.
        last_review: The date and time of the card's last review or None if never reviewed.
    """

    card_id: int = field(default_factory=_new_card_id)
    due: datetime = field(default_factory=_utc_now)
    stability: float = 0.0
    difficulty: float = 0.0
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: State = State.New
    last_review: datetime | None = None

    def to_dict(self) -> CardDict:
        """
        Returns a JSON-serializable dictionary representation of the Card object.

        This method is specifically useful for storing Card objects in a database.

        Returns:
            A dictionary representation of the Card object.
        """

        return {
            "card_id": self.card_id,
            "due": self.due.isoformat(),
            "stability": self.stability,
            "difficulty": self.difficulty,
            "elapsed_days": self.elapsed_days,
            "scheduled_days": self.scheduled_days,
            "reps": self.reps,
            "lapses": self.lapses,
            "state": self.state.value,
            "last_review": self.last_review.isoformat() if self.last_review else None,
        }

    @classmethod
    def from_dict(cls, source_dict: CardDict) -> Self:
        """
        Creates a Card object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing Card object.

        Returns:
            A Card object created from the provided dictionary.
        """

        return cls(
            card_id=int(source_dict["card_id"]),
            due=_parse_datetime(source_dict["due"]),
            stability=float(source_dict["stability"]),
            difficulty=float(source_dict["difficulty"]),
            elapsed_days=int(source_dict["elapsed_days"]),
            scheduled_days=int(source_dict["scheduled_days"]),
            reps=int(source_dict["reps"]),
            lapses=int(source_dict["lapses"]),
            state=State(int(source_dict["state"])),
            last_review=(
                _parse_datetime(source_dict["last_review"])
                if source_dict["last_review"]
                else None
            ),
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the Card object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the Card object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a Card object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing Card object.

        Returns:
            Self: A Card object created from the JSON string.
        """

        source_dict: CardDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = ["Card"]
