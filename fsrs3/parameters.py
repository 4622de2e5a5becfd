"""
fsrs3.parameters
---------

This module defines the Parameters class as well as the model weights and their bounds.

Classes:
    Weights: The 13 named coefficients of the memory model.
    Parameters: The immutable configuration of the scheduler.
"""

from __future__ import annotations
from dataclasses import dataclass
from numbers import Real
from typing import NamedTuple, TypedDict
import json
import math
from typing_extensions import Self


class Weights(NamedTuple):
    """
    The 13 coefficients of the memory model.

    Each field can be read by name or by its index (``w[0]`` .. ``w[12]``).
    """

    initial_stability: float
    initial_stability_gain: float
    initial_difficulty: float
    initial_difficulty_gain: float
    difficulty_gain: float
    mean_reversion: float
    recall_factor: float
    recall_stability_exponent: float
    recall_retrievability_gain: float
    forget_factor: float
    forget_difficulty_exponent: float
    forget_stability_exponent: float
    forget_retrievability_gain: float


NUM_WEIGHTS = len(Weights._fields)

DEFAULT_WEIGHTS = Weights(1.0, 1.0, 5.0, -0.5, -0.5, 0.2, 1.4, -0.12, 0.8, 2.0, -0.2, 0.2, 1.0)

# clamp ranges applied to each weight while optimizing
LOWER_BOUNDS_WEIGHTS = Weights(0.1, 0.1, 1.0, -5.0, -5.0, 0.0, 0.0, -0.2, 0.01, 0.5, -2.0, 0.01, 0.01)
UPPER_BOUNDS_WEIGHTS = Weights(10.0, 5.0, 10.0, -0.1, -0.1, 0.5, 2.0, -0.01, 1.5, 5.0, -0.01, 0.9, 2.0)

DEFAULT_REQUEST_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500
DEFAULT_EASY_BONUS = 1.3
DEFAULT_HARD_FACTOR = 1.2


class ParametersDict(TypedDict):
    """
    JSON-serializable dictionary representation of a Parameters object.
    """

    request_retention: float
    maximum_interval: int
    easy_bonus: float
    hard_factor: float
    w: list[float]


@dataclass(frozen=True)
class Parameters:
    """
    The configuration of the scheduler.

    Any subset of the fields may be given; the rest take their defaults.

    Attributes:
        request_retention: The target probability of recall when a card comes due.
        maximum_interval: The maximum number of days a card can be scheduled into the future.
        easy_bonus: Multiplier applied to stability when computing the Easy interval.
        hard_factor: Multiplier applied to the previous stability when computing the Hard interval of a Review card.
        w: The 13 memory model weights.

    Raises:
        ValueError: If any of the values is malformed. Every problem is listed in the message.
    """

    request_retention: float = DEFAULT_REQUEST_RETENTION
    maximum_interval: int = DEFAULT_MAXIMUM_INTERVAL
    easy_bonus: float = DEFAULT_EASY_BONUS
    hard_factor: float = DEFAULT_HARD_FACTOR
    w: Weights = DEFAULT_WEIGHTS

    def __post_init__(self) -> None:
        if len(self.w) != NUM_WEIGHTS:
            raise ValueError(f"Expected {NUM_WEIGHTS} weights, got {len(self.w)}.")

        if not isinstance(self.w, Weights):
            object.__setattr__(self, "w", Weights(*self.w))

        error_messages = []
        for index, weight in enumerate(self.w):
            # torch tensors are passed through untouched while optimizing
            if isinstance(weight, Real) and not math.isfinite(weight):
                error_messages.append(f"w[{index}] = {weight} is not finite")

        if not 0 < self.request_retention < 1:
            error_messages.append(
                f"request_retention = {self.request_retention} must be between 0 and 1"
            )
        if (
            not isinstance(self.maximum_interval, int)
            or isinstance(self.maximum_interval, bool)
            or self.maximum_interval < 1
        ):
            error_messages.append(
                f"maximum_interval = {self.maximum_interval} must be an integer of at least 1"
            )
        if not self.easy_bonus >= 1:
            error_messages.append(f"easy_bonus = {self.easy_bonus} must be at least 1")
        if not self.hard_factor > 0:
            error_messages.append(f"hard_factor = {self.hard_factor} must be positive")

        if len(error_messages) > 0:
            raise ValueError(
                "One or more parameters are invalid:\n" + "\n".join(error_messages)
            )

    def to_dict(self) -> ParametersDict:
        """
        Returns a JSON-serializable dictionary representation of the Parameters object.

        Returns:
            A dictionary representation of the Parameters object.
        """

        return {
            "request_retention": self.request_retention,
            "maximum_interval": self.maximum_interval,
            "easy_bonus": self.easy_bonus,
            "hard_factor": self.hard_factor,
            "w": [float(weight) for weight in self.w],
        }

    @classmethod
    def from_dict(cls, source_dict: ParametersDict) -> Self:
        """
        Creates a Parameters object from an existing dictionary.

        Keys missing from the dictionary take their default values.

        Args:
            source_dict: A dictionary representing an existing Parameters object.

        Returns:
            A Parameters object created from the provided dictionary.
        """

        return cls(
            request_retention=source_dict.get(
                "request_retention", DEFAULT_REQUEST_RETENTION
            ),
            maximum_interval=source_dict.get(
                "maximum_interval", DEFAULT_MAXIMUM_INTERVAL
            ),
            easy_bonus=source_dict.get("easy_bonus", DEFAULT_EASY_BONUS),
            hard_factor=source_dict.get("hard_factor", DEFAULT_HARD_FACTOR),
            w=tuple(source_dict.get("w", DEFAULT_WEIGHTS)),
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the Parameters object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a Parameters object from a JSON-serialized string.
        """

        source_dict: ParametersDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = [
    "Weights",
    "Parameters",
    "DEFAULT_WEIGHTS",
    "LOWER_BOUNDS_WEIGHTS",
    "UPPER_BOUNDS_WEIGHTS",
]
