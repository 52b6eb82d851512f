"""Unit tests for counter-based random streams.

Tests cover:
- Agreement between the Taichi hash and its NumPy mirror
- Determinism for a given key
- Independence across lanes, frames and bounces
- Range and distribution of uniform draws and sampled vectors
"""

import numpy as np
import taichi as ti


class TestHashMirror:
    """The NumPy mirror reproduces the GPU hash bit for bit."""

    def test_lane_seed_matches_numpy(self):
        from weekend_tracer.core.rng import lane_seed, lane_seed_numpy

        n = 64
        result = ti.field(dtype=ti.u32, shape=n)

        @ti.kernel
        def test_kernel():
            for lane in range(n):
                result[lane] = lane_seed(12345, lane, 3)

        test_kernel()
        expected = lane_seed_numpy(12345, np.arange(n), 3)
        np.testing.assert_array_equal(result.to_numpy(), expected)

    def test_uniform_matches_numpy(self):
        from weekend_tracer.core.rng import lane_seed, lane_seed_numpy, uniform, uniform_numpy

        n = 64
        result = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for lane in range(n):
                result[lane] = uniform(lane_seed(7, lane, 0), 2)

        test_kernel()
        expected = uniform_numpy(lane_seed_numpy(7, np.arange(n), 0), 2)
        np.testing.assert_allclose(result.to_numpy(), expected, atol=0.0)

    def test_wang_hash_known_difference(self):
        """Neighbouring keys hash to very different values."""
        from weekend_tracer.core.rng import wang_hash_numpy

        hashes = wang_hash_numpy(np.arange(1000))
        assert len(np.unique(hashes)) == 1000
        assert hashes.dtype == np.uint32


class TestStreams:
    """Determinism and independence of per-lane streams."""

    def test_same_key_same_value(self):
        from weekend_tracer.core.rng import lane_seed, uniform

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = uniform(lane_seed(3, 10, 1), 0)
            result[1] = uniform(lane_seed(3, 10, 1), 0)

        test_kernel()
        assert result[0] == result[1]

    def test_lanes_frames_and_bounces_differ(self):
        from weekend_tracer.core.rng import lane_seed_numpy

        base = lane_seed_numpy(5, 100, 2)[0]
        assert lane_seed_numpy(5, 101, 2)[0] != base
        assert lane_seed_numpy(6, 100, 2)[0] != base
        assert lane_seed_numpy(5, 100, 3)[0] != base

    def test_all_lanes_of_a_frame_are_distinct(self):
        """No two lanes observe the same stream."""
        from weekend_tracer.core.rng import lane_seed_numpy, make_frame_key

        key = make_frame_key(0, 0)
        seeds = lane_seed_numpy(key, np.arange(15 * 15 * 8), 0)
        assert len(np.unique(seeds)) == len(seeds)

    def test_draws_within_a_stream_differ(self):
        from weekend_tracer.core.rng import uniform_numpy

        draws = [uniform_numpy(123456, d)[0] for d in range(8)]
        assert len(set(draws)) == 8

    def test_make_frame_key_is_non_negative_i32(self):
        from weekend_tracer.core.rng import make_frame_key

        for seed in (0, 1, 2**31 - 1):
            for frame in (0, 1, 1000, 2**32 + 5):
                key = make_frame_key(seed, frame)
                assert 0 <= key < 2**31

    def test_make_frame_key_depends_on_seed_and_frame(self):
        from weekend_tracer.core.rng import make_frame_key

        assert make_frame_key(0, 0) != make_frame_key(0, 1)
        assert make_frame_key(0, 0) != make_frame_key(1, 0)


class TestDistributions:
    """Range and rough distribution of sampled values."""

    def test_uniform_range_and_mean(self):
        from weekend_tracer.core.rng import lane_seed_numpy, uniform_numpy

        values = uniform_numpy(lane_seed_numpy(9, np.arange(20000), 0), 0)
        assert values.min() >= 0.0
        assert values.max() < 1.0
        assert abs(values.mean() - 0.5) < 0.02

    def test_random_unit_vector_is_unit_and_centered(self):
        from weekend_tracer.core.rng import lane_seed, random_unit_vector

        n = 4096
        result = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for lane in range(n):
                result[lane] = random_unit_vector(lane_seed(1, lane, 0), 0)

        test_kernel()
        v = result.to_numpy()
        np.testing.assert_allclose(np.linalg.norm(v, axis=1), 1.0, atol=1e-4)
        assert np.all(np.abs(v.mean(axis=0)) < 0.05)

    def test_random_in_unit_sphere_inside_ball(self):
        from weekend_tracer.core.rng import lane_seed, random_in_unit_sphere

        n = 4096
        result = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for lane in range(n):
                result[lane] = random_in_unit_sphere(lane_seed(2, lane, 0), 0)

        test_kernel()
        lengths = np.linalg.norm(result.to_numpy(), axis=1)
        assert lengths.max() <= 1.0 + 1e-5
        # Uniform in volume: half the points lie beyond radius 0.5^(1/3)
        assert abs(np.mean(lengths > 0.5 ** (1.0 / 3.0)) - 0.5) < 0.05

