"""
fsrs3.memory_model
---------

This module defines the MemoryModel class, the numeric half of the scheduler.

Classes:
    MemoryModel: Computes difficulty, stability, retrievability and intervals.
"""

from __future__ import annotations
import math
from numbers import Real

from fsrs3.parameters import Parameters
from fsrs3.rating import Rating

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
STABILITY_MIN = 0.1

# retrievability is 90% when elapsed days equal stability
DECAY = math.log(0.9)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class MemoryModel:
    """
    The memory model of the scheduler.

    The model tracks two values per card:
    - Stability (S): Approximate number of days until the probability of recall drops to 90%.
      Stability increases more for easier cards, for less stable memories and when reviewing
      at lower retrievability.
    - Difficulty (D): Value between 1-10 indicating how hard the card is. Difficulty moves
      with each rating and is pulled back toward the initial difficulty by mean reversion.

    Retrievability (R), the probability of recall after t days, follows the exponential
    forgetting curve R(t,S) = 0.9^(t/S).

    The 13 weights (w0-w12) are used as follows:
    - Initial stability and difficulty for new cards (w0-w3)
    - Difficulty updates and mean reversion (w4-w5)
    - Stability after a successful recall (w6-w8)
    - Stability after a lapse (w9-w12)

    Every formula accepts plain floats as well as 0-d torch tensors so that the
    Optimizer can differentiate through them.
    """

    def __init__(self, parameters: Parameters):
        self.parameters = parameters
        self.w = parameters.w

    def init_stability(self, rating: Rating) -> float:
        """
        Initial stability after the first rating: S0(G) = max(w0 + w1*G, 0.1)
        """

        return self._clamp_stability(self.w[0] + self.w[1] * int(rating))

    def init_difficulty(self, rating: Rating) -> float:
        """
        Initial difficulty after the first rating: D0(G) = w2 + w3*(G-2), clamped to 1-10
        """

        return self._constrain_difficulty(self.w[2] + self.w[3] * (rating - 2))

    def next_difficulty(self, difficulty: float, rating: Rating) -> float:
        """
        Calculate next difficulty value after a review.

        Uses formulas:
        D' = D + w4*(G-2)
        D'' = w5*w2 + (1-w5)*D'  # Mean reversion to the Good initial difficulty

        Args:
            difficulty: Current difficulty
            rating: Rating given

        Returns:
            New difficulty value between 1-10
        """

        next_difficulty = difficulty + self.w[4] * (rating - 2)
        return self._constrain_difficulty(
            self._mean_reversion(self.w[2], next_difficulty)
        )

    def retrievability(self, elapsed_days: float, stability: float) -> float:
        """
        Probability of recall after elapsed_days: R(t,S) = e^(ln(0.9)*t/S) = 0.9^(t/S)

        Args:
            elapsed_days: Days since the last review
            stability: Current stability

        Returns:
            Retrievability value between 0-1
        """

        return 0.9 ** (elapsed_days / stability)

    def next_recall_stability(
        self, difficulty: float, stability: float, retrievability: float
    ) -> float:
        """
        Calculate new stability after successful recall (Hard, Good or Easy ratings).

        Formula: S'_r(D,S,R) = S * (1 + e^w6 * (11-D) * S^w7 * (e^(w8*(1-R)) - 1))

        Key effects:
        - Higher D -> smaller increase (linear: 11-D)
        - Higher S -> harder to increase (power law: S^w7, w7 < 0)
        - Lower R -> larger increase (exponential: e^(w8*(1-R)))
        """

        return stability * (
            1
            + (math.e ** self.w[6])
            * (11 - difficulty)
            * (stability ** self.w[7])
            * ((math.e ** ((1 - retrievability) * self.w[8])) - 1)
        )

    def next_forget_stability(
        self, difficulty: float, stability: float, retrievability: float
    ) -> float:
        """
        Calculate new stability after forgetting (post-lapse stability).

        Formula: S'_f(D,S,R) = w9 * D^w10 * S^w11 * e^(w12*(1-R))

        The result is a fresh estimate, not a reduction of the current stability.
        """

        return (
            self.w[9]
            * (difficulty ** self.w[10])
            * (stability ** self.w[11])
            * (math.e ** ((1 - retrievability) * self.w[12]))
        )

    def next_interval(self, stability: float) -> int:
        """
        Calculate the next interval in days for a given stability.

        Inverts the forgetting curve to find when retrievability drops to the
        requested retention: I(S) = S * ln(request_retention) / ln(0.9)

        Args:
            stability: Stability the interval is computed from

        Returns:
            Next interval in whole days, between 1 and the maximum interval
        """

        next_interval = (
            stability * math.log(self.parameters.request_retention) / DECAY
        )

        if not isinstance(next_interval, Real):  # type(next_interval) is torch.Tensor
            next_interval = next_interval.detach().item()

        next_interval = round_half_up(next_interval)  # intervals are full days

        return max(min(next_interval, self.parameters.maximum_interval), 1)

    def _mean_reversion(self, init: float, current: float) -> float:
        return self.w[5] * init + (1 - self.w[5]) * current

    def _constrain_difficulty(self, difficulty: float) -> float:
        if isinstance(difficulty, Real):
            return min(max(difficulty, MIN_DIFFICULTY), MAX_DIFFICULTY)
        # type(difficulty) is torch.Tensor
        return difficulty.clamp(min=MIN_DIFFICULTY, max=MAX_DIFFICULTY)

    def _clamp_stability(self, stability: float) -> float:
        if isinstance(stability, Real):
            return max(stability, STABILITY_MIN)
        # type(stability) is torch.Tensor
        return stability.clamp(min=STABILITY_MIN)


__all__ = ["MemoryModel"]
