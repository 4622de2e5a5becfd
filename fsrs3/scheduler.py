"""
fsrs3.scheduler
---------

This module defines the Scheduler class and the records it returns.

Classes:
    Scheduler: The spaced-repetition scheduler.
    SchedulingInfo: One candidate outcome, a card and its review log.
    SchedulingResult: The four candidate outcomes of a review, one per rating.
"""

from __future__ import annotations
from collections.abc import Iterator
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
import logging
import math
from numbers import Real
from typing_extensions import Self

from fsrs3.card import Card
from fsrs3.memory_model import MemoryModel, round_half_up
from fsrs3.parameters import Parameters, ParametersDict
from fsrs3.rating import Rating
from fsrs3.review_log import ReviewLog
from fsrs3.state import State

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

# due offsets of the first review of a New card
NEW_CARD_STEPS = {
    Rating.Again: timedelta(minutes=1),
    Rating.Hard: timedelta(minutes=5),
    Rating.Good: timedelta(minutes=10),
}
AGAIN_STEP = timedelta(minutes=5)
HARD_STEP = timedelta(minutes=10)

NEXT_STATES = {
    State.New: {
        Rating.Again: State.Learning,
        Rating.Hard: State.Learning,
        Rating.Good: State.Learning,
        Rating.Easy: State.Review,
    },
    State.Learning: {
        Rating.Again: State.Learning,
        Rating.Hard: State.Learning,
        Rating.Good: State.Review,
        Rating.Easy: State.Review,
    },
    State.Relearning: {
        Rating.Again: State.Relearning,
        Rating.Hard: State.Relearning,
        Rating.Good: State.Review,
        Rating.Easy: State.Review,
    },
    State.Review: {
        Rating.Again: State.Relearning,
        Rating.Hard: State.Review,
        Rating.Good: State.Review,
        Rating.Easy: State.Review,
    },
}


@dataclass(frozen=True)
class SchedulingInfo:
    """
    A candidate outcome of a review.

    Attributes:
        card: The card as it would be if the user picked this rating.
        review_log: The log entry recording this decision.
    """

    card: Card
    review_log: ReviewLog


@dataclass(frozen=True)
class SchedulingResult:
    """
    The four candidate outcomes of reviewing a card, one per rating.

    Behaves like a read-only mapping from Rating to SchedulingInfo that always
    holds exactly four entries.
    """

    again: SchedulingInfo
    hard: SchedulingInfo
    good: SchedulingInfo
    easy: SchedulingInfo

    def __getitem__(self, rating: Rating) -> SchedulingInfo:
        return getattr(self, Rating(rating).name.lower())

    def __iter__(self) -> Iterator[Rating]:
        return iter(Rating)

    def __len__(self) -> int:
        return len(Rating)

    def keys(self) -> list[Rating]:
        return list(Rating)

    def values(self) -> list[SchedulingInfo]:
        return [self[rating] for rating in Rating]

    def items(self) -> list[tuple[Rating, SchedulingInfo]]:
        return [(rating, self[rating]) for rating in Rating]

    def to_dict(self) -> dict[Rating, SchedulingInfo]:
        return dict(self.items())


class Scheduler:
    """
    The spaced-repetition scheduler.

    Computes, for a card reviewed at a given time, the next card for each of the
    four possible ratings.

    Attributes:
        parameters: The configuration of the scheduler.
        model: The memory model computing difficulty, stability and intervals.
    """

    parameters: Parameters
    model: MemoryModel

    def __init__(self, parameters: Parameters | None = None, **overrides) -> None:
        if parameters is None:
            parameters = Parameters(**overrides)
        elif overrides:
            parameters = replace(parameters, **overrides)

        self.parameters = parameters
        self.model = MemoryModel(self.parameters)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Scheduler):
            return NotImplemented
        return self.parameters == other.parameters

    def __repr__(self) -> str:
        return f"Scheduler(parameters={self.parameters!r})"

    def repeat(self, card: Card, now: datetime) -> SchedulingResult:
        """
        Computes the outcome of reviewing a card at a given time for every rating.

        The card passed in is not changed.

        Args:
            card: The card being reviewed.
            now: The date and time of the review.

        Returns:
            SchedulingResult: The candidate card and review log for each rating.

        Raises:
            ValueError: If `now` is not timezone-aware and set to UTC, or if the card
                is in a state it can't be scheduled from.
        """

        _validate_datetime(now)

        if card.state == State.New:
            elapsed_days = 0
        else:
            if card.last_review is None:
                raise ValueError(
                    f"Card {card.card_id} in state {card.state!r} has no last_review"
                )
            # torch tensors are passed through untouched while optimizing
            if isinstance(card.stability, Real) and not (
                math.isfinite(card.stability) and card.stability > 0
            ):
                raise ValueError(
                    f"Card {card.card_id} in state {card.state!r} has invalid stability {card.stability}"
                )
            elapsed_days = _days_between(card.last_review, now)

        card = replace(
            card, elapsed_days=elapsed_days, last_review=now, reps=card.reps + 1
        )

        logger.debug(
            "Scheduling card %s in state %r after %d elapsed days",
            card.card_id,
            card.state,
            elapsed_days,
        )

        match card.state:
            case State.New:
                memory = {
                    rating: (
                        self.model.init_difficulty(rating),
                        self.model.init_stability(rating),
                    )
                    for rating in Rating
                }

                easy_interval = self.model.next_interval(
                    memory[Rating.Easy][1] * self.parameters.easy_bonus
                )
                timing = {
                    rating: (0, now + step) for rating, step in NEW_CARD_STEPS.items()
                }
                timing[Rating.Easy] = (easy_interval, now + timedelta(days=easy_interval))

            case State.Learning | State.Relearning:
                memory = {
                    rating: (card.difficulty, card.stability) for rating in Rating
                }

                hard_interval = 0
                good_interval = self.model.next_interval(card.stability)
                easy_interval = max(
                    self.model.next_interval(
                        card.stability * self.parameters.easy_bonus
                    ),
                    good_interval + 1,
                )
                timing = self._schedule(now, hard_interval, good_interval, easy_interval)

            case State.Review:
                last_difficulty, last_stability = card.difficulty, card.stability
                retrievability = self.model.retrievability(
                    elapsed_days, last_stability
                )
                memory = self._next_memory_states(
                    last_difficulty, last_stability, retrievability
                )

                hard_interval = self.model.next_interval(
                    last_stability * self.parameters.hard_factor
                )
                good_interval = self.model.next_interval(memory[Rating.Good][1])
                # Hard never exceeds Good, Good and Easy stay strictly apart
                hard_interval = min(hard_interval, good_interval)
                good_interval = max(good_interval, hard_interval + 1)
                easy_interval = max(
                    self.model.next_interval(
                        memory[Rating.Easy][1] * self.parameters.easy_bonus
                    ),
                    good_interval + 1,
                )
                timing = self._schedule(now, hard_interval, good_interval, easy_interval)

            case _:
                raise ValueError(f"Unknown card state: {card.state!r}")

        return self._record_log(card, now, memory, timing)

    def review_card(
        self, card: Card, rating: Rating, now: datetime | None = None
    ) -> tuple[Card, ReviewLog]:
        """
        Reviews a card with a given rating at a given time.

        Args:
            card: The card being reviewed.
            rating: The chosen rating for the card being reviewed.
            now: The date and time of the review. Defaults to the current time.

        Returns:
            tuple[Card,ReviewLog]: The updated card and its corresponding review log.
        """

        if now is None:
            now = datetime.now(timezone.utc)

        scheduling_info = self.repeat(card, now)[rating]

        return scheduling_info.card, scheduling_info.review_log

    def get_card_retrievability(
        self, card: Card, current_datetime: datetime | None = None
    ) -> float:
        """
        Calculates a Card object's current retrievability for a given date and time.

        The retrievability of a card is the predicted probability that the card is correctly recalled at the provided datetime.

        Args:
            card: The card whose retrievability is to be calculated
            current_datetime: The current date and time

        Returns:
            float: The retrievability of the Card object.
        """

        if card.state == State.New or card.last_review is None:
            return 0

        if current_datetime is None:
            current_datetime = datetime.now(timezone.utc)
        _validate_datetime(current_datetime)

        elapsed_days = _days_between(card.last_review, current_datetime)

        return self.model.retrievability(elapsed_days, card.stability)

    def reschedule_card(self, card: Card, review_logs: list[ReviewLog]) -> Card:
        """
        Reschedules the given card with the current scheduler by replaying its review logs.

        Useful after changing parameters, e.g. once the Optimizer has computed new weights.

        Args:
            card: The card to be rescheduled.
            review_logs: A list of that card's review logs (order doesn't matter).

        Returns:
            Card: A new card that has been rescheduled with this scheduler.

        Raises:
            ValueError: If any of the review logs are for a card other than the one specified.
        """

        for review_log in review_logs:
            if review_log.card_id != card.card_id:
                raise ValueError(
                    f"ReviewLog card_id {review_log.card_id} does not match Card card_id {card.card_id}"
                )

        review_logs = sorted(review_logs, key=lambda log: log.review_datetime)

        rescheduled_card = Card(card_id=card.card_id, due=card.due)

        for review_log in review_logs:
            rescheduled_card, _ = self.review_card(
                card=rescheduled_card,
                rating=review_log.rating,
                now=review_log.review_datetime,
            )

        return rescheduled_card

    def to_dict(self) -> ParametersDict:
        """
        Returns a JSON-serializable dictionary representation of the Scheduler object.
        """

        return self.parameters.to_dict()

    @classmethod
    def from_dict(cls, source_dict: ParametersDict) -> Self:
        """
        Creates a Scheduler object from an existing dictionary.
        """

        return cls(parameters=Parameters.from_dict(source_dict))

    def to_json(self, indent: int | str | None = None) -> str:
        return self.parameters.to_json(indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        return cls(parameters=Parameters.from_json(source_json))

    def _next_memory_states(
        self, difficulty: float, stability: float, retrievability: float
    ) -> dict[Rating, tuple[float, float]]:
        memory = {}
        for rating in Rating:
            next_difficulty = self.model.next_difficulty(difficulty, rating)
            if rating == Rating.Again:
                next_stability = self.model.next_forget_stability(
                    next_difficulty, stability, retrievability
                )
            else:
                next_stability = self.model.next_recall_stability(
                    next_difficulty, stability, retrievability
                )
            memory[rating] = (next_difficulty, next_stability)

        return memory

    def _schedule(
        self,
        now: datetime,
        hard_interval: float,
        good_interval: float,
        easy_interval: float,
    ) -> dict[Rating, tuple[int, datetime]]:
        hard_days = math.floor(hard_interval)
        good_days = math.floor(good_interval)
        easy_days = math.floor(easy_interval)

        return {
            Rating.Again: (0, now + AGAIN_STEP),
            Rating.Hard: (
                hard_days,
                now + timedelta(days=hard_days) if hard_interval > 0 else now + HARD_STEP,
            ),
            Rating.Good: (good_days, now + timedelta(days=good_days)),
            Rating.Easy: (easy_days, now + timedelta(days=easy_days)),
        }

    def _record_log(
        self,
        card: Card,
        now: datetime,
        memory: dict[Rating, tuple[float, float]],
        timing: dict[Rating, tuple[int, datetime]],
    ) -> SchedulingResult:
        next_states = NEXT_STATES[card.state]
        lapsed = card.state in (State.New, State.Review)

        outcomes = {}
        for rating in Rating:
            difficulty, stability = memory[rating]
            scheduled_days, due = timing[rating]

            next_card = replace(
                card,
                due=due,
                stability=stability,
                difficulty=difficulty,
                scheduled_days=scheduled_days,
                lapses=(
                    card.lapses + 1
                    if rating == Rating.Again and lapsed
                    else card.lapses
                ),
                state=next_states[rating],
            )
            review_log = ReviewLog(
                card_id=card.card_id,
                rating=rating,
                scheduled_days=scheduled_days,
                elapsed_days=card.elapsed_days,
                review_datetime=now,
                state=card.state,
            )
            outcomes[rating] = SchedulingInfo(card=next_card, review_log=review_log)

        return SchedulingResult(
            again=outcomes[Rating.Again],
            hard=outcomes[Rating.Hard],
            good=outcomes[Rating.Good],
            easy=outcomes[Rating.Easy],
        )


def schedule(
    card: Card, now: datetime, parameters: Parameters | None = None, **overrides
) -> SchedulingResult:
    """
    Computes the outcome of reviewing a card at a given time for every rating.

    Shorthand for ``Scheduler(parameters, **overrides).repeat(card, now)``.
    """

    return Scheduler(parameters, **overrides).repeat(card, now)


def _validate_datetime(value: datetime) -> None:
    if (value.tzinfo is None) or (value.tzinfo != timezone.utc):
        raise ValueError("datetime must be timezone-aware and set to UTC")


def _days_between(start: datetime, end: datetime) -> int:
    elapsed = round_half_up((end - start).total_seconds() / SECONDS_PER_DAY)
    return max(elapsed, 0)


__all__ = ["Scheduler", "SchedulingInfo", "SchedulingResult", "schedule"]
