"""Tests for gridepi.rng — seeded stream hierarchy."""

import numpy as np

from gridepi.rng import STREAM_NAMES, create_rng_streams


class TestCreateRngStreams:
    def test_returns_named_streams(self):
        rngs = create_rng_streams(42)
        assert set(rngs) == set(STREAM_NAMES)
        for rng in rngs.values():
            assert isinstance(rng, np.random.Generator)

    def test_streams_are_independent(self):
        rngs = create_rng_streams(42)
        vals = {name: rng.random() for name, rng in rngs.items()}
        assert len(set(vals.values())) == len(vals)

    def test_reproducibility(self):
        rngs1 = create_rng_streams(7)
        rngs2 = create_rng_streams(7)
        for name in STREAM_NAMES:
            np.testing.assert_array_equal(
                rngs1[name].integers(0, 100, size=50),
                rngs2[name].integers(0, 100, size=50),
            )

    def test_different_seeds_differ(self):
        a = create_rng_streams(1)['daily'].integers(0, 1_000_000, size=10)
        b = create_rng_streams(2)['daily'].integers(0, 1_000_000, size=10)
        assert not np.array_equal(a, b)

    def test_draws_on_one_stream_do_not_shift_another(self):
        rngs1 = create_rng_streams(11)
        rngs2 = create_rng_streams(11)
        rngs1['population'].random(1000)
        np.testing.assert_array_equal(
            rngs1['daily'].random(20), rngs2['daily'].random(20),
        )
