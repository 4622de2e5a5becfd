from fsrs3.memory_model import MemoryModel, STABILITY_MIN
from fsrs3.parameters import Parameters, Weights, DEFAULT_WEIGHTS
from fsrs3.rating import Rating

import math
import pytest


class TestMemoryModel:
    def test_init_stability(self):
        model = MemoryModel(Parameters())

        assert model.init_stability(Rating.Again) == 1
        assert [model.init_stability(rating) for rating in Rating] == [1, 2, 3, 4]

    def test_init_stability_floor(self):
        w = list(DEFAULT_WEIGHTS)
        w[0] = -3
        model = MemoryModel(Parameters(w=w))

        assert model.init_stability(Rating.Again) == STABILITY_MIN
        assert model.init_stability(Rating.Hard) == STABILITY_MIN
        assert model.init_stability(Rating.Easy) == STABILITY_MIN

    def test_init_difficulty(self):
        model = MemoryModel(Parameters())

        assert [model.init_difficulty(rating) for rating in Rating] == [6, 5.5, 5, 4.5]

        w = list(DEFAULT_WEIGHTS)
        w[3] = -4
        model = MemoryModel(Parameters(w=w))
        assert model.init_difficulty(Rating.Again) == 10
        assert model.init_difficulty(Rating.Easy) == 1

    def test_next_difficulty(self):
        model = MemoryModel(Parameters())

        # mean reversion pulls toward w2 = 5
        assert model.next_difficulty(5, Rating.Good) == pytest.approx(5)
        assert model.next_difficulty(9, Rating.Good) == pytest.approx(0.2 * 5 + 0.8 * 9)
        assert model.next_difficulty(5, Rating.Again) == pytest.approx(5.8)
        assert model.next_difficulty(5, Rating.Easy) == pytest.approx(4.6)

        assert model.next_difficulty(10, Rating.Again) == pytest.approx(9.8)
        assert model.next_difficulty(1, Rating.Easy) >= 1

        w = list(DEFAULT_WEIGHTS)
        w[5] = 0
        model = MemoryModel(Parameters(w=w))
        assert model.next_difficulty(10, Rating.Again) == 10
        assert model.next_difficulty(1, Rating.Easy) == 1

    def test_retrievability(self):
        model = MemoryModel(Parameters())

        assert model.retrievability(10, 10) == 0.9
        assert model.retrievability(3.5, 3.5) == pytest.approx(0.9)
        assert model.retrievability(0, 4) == 1

        for stability in (0.1, 1, 25, 3000):
            for elapsed_days in (0, 1, 7, 100, 10000):
                retrievability = model.retrievability(elapsed_days, stability)
                assert 0 <= retrievability <= 1
                assert retrievability == pytest.approx(
                    math.exp(math.log(0.9) * elapsed_days / stability)
                )

        assert model.retrievability(1, 2) > model.retrievability(2, 2)

    def test_next_recall_stability(self):
        model = MemoryModel(Parameters())

        expected = 10 * (
            1 + math.exp(1.4) * (11 - 5) * 10**-0.12 * (math.exp(0.1 * 0.8) - 1)
        )
        assert model.next_recall_stability(5, 10, 0.9) == pytest.approx(expected)

        # recall at full retrievability doesn't change stability
        assert model.next_recall_stability(5, 10, 1) == pytest.approx(10)
        # lower retrievability and lower difficulty give larger increases
        assert model.next_recall_stability(5, 10, 0.7) > model.next_recall_stability(
            5, 10, 0.9
        )
        assert model.next_recall_stability(2, 10, 0.9) > model.next_recall_stability(
            8, 10, 0.9
        )

    def test_next_forget_stability(self):
        model = MemoryModel(Parameters())

        expected = 2 * 5**-0.2 * 10**0.2 * math.exp(0.1 * 1)
        assert model.next_forget_stability(5, 10, 0.9) == pytest.approx(expected)
        assert model.next_forget_stability(5, 10, 0.9) < 10

    def test_next_interval(self):
        model = MemoryModel(Parameters())

        assert model.next_interval(10) == 10
        assert model.next_interval(2.6) == 3
        assert model.next_interval(2.4) == 2
        assert model.next_interval(0) == 1
        assert model.next_interval(0.2) == 1
        assert model.next_interval(10**9) == 36500

        model = MemoryModel(Parameters(request_retention=0.8, maximum_interval=100))
        assert model.next_interval(10) == round(10 * math.log(0.8) / math.log(0.9))
        for stability in (0, 0.01, 1, 47, 48, 10**6):
            assert 1 <= model.next_interval(stability) <= 100

    def test_named_weights(self):
        model = MemoryModel(Parameters())

        assert isinstance(model.w, Weights)
        assert model.w.initial_difficulty == model.w[2] == 5
        assert model.w.recall_factor == model.w[6] == 1.4
        assert model.w.forget_retrievability_gain == model.w[12] == 1
