"""Property-based and unit tests for random code drawing."""

from collections import Counter
from types import GeneratorType

import pytest
from hypothesis import given, strategies as st, settings

from vouchergen.random_draw import ALPHABET, RandomDraw


class TestRandomDrawProperties:
    """Property-based tests for code drawing."""

    @settings(max_examples=100)
    @given(length=st.integers(min_value=1, max_value=64), seed=st.integers())
    def test_drawn_code_has_requested_length_and_alphabet(self, length, seed):
        """Every drawn code has the requested length and only base62 symbols."""
        code = RandomDraw(seed).draw(length)

        assert len(code) == length
        assert set(code) <= set(ALPHABET)

    @settings(max_examples=50)
    @given(
        size=st.integers(min_value=0, max_value=200),
        length=st.integers(min_value=1, max_value=12),
    )
    def test_batch_yields_requested_number_of_candidates(self, size, length):
        """A batch yields exactly ``size`` candidates of ``length`` symbols."""
        candidates = list(RandomDraw().batch(size, length))

        assert len(candidates) == size
        assert all(len(code) == length for code in candidates)


class TestRandomDrawUnitTests:
    """Unit tests for code drawing."""

    def test_alphabet_has_62_distinct_symbols(self):
        assert len(ALPHABET) == 62
        assert len(set(ALPHABET)) == 62
        assert "A" in ALPHABET and "z" in ALPHABET and "0" in ALPHABET

    def test_same_seed_draws_same_codes(self):
        first = RandomDraw(seed=42)
        second = RandomDraw(seed=42)

        assert [first.draw(8) for _ in range(10)] == [second.draw(8) for _ in range(10)]

    def test_state_advances_between_draws(self):
        draw = RandomDraw(seed=7)

        codes = {draw.draw(12) for _ in range(100)}

        assert len(codes) == 100

    def test_unseeded_instances_differ(self):
        assert RandomDraw().draw(16) != RandomDraw().draw(16)

    def test_invalid_length_raises_error(self):
        with pytest.raises(ValueError):
            RandomDraw().draw(0)

    def test_batch_is_lazy_and_single_use(self):
        """A batch is a generator that is exhausted after one pass."""
        batch = RandomDraw(seed=1).batch(5, 4)

        assert isinstance(batch, GeneratorType)
        assert len(list(batch)) == 5
        assert list(batch) == []

    def test_symbols_are_roughly_uniform(self):
        """Each symbol appears close to 1/62 of the time."""
        draw = RandomDraw(seed=2024)

        counts = Counter(draw.draw(62000))

        assert set(counts) == set(ALPHABET)
        # Expected 1000 each, standard deviation about 31
        assert all(800 < count < 1200 for count in counts.values())
