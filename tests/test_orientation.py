"""
Tests for orientation field and coherence estimation.

Run with: pytest tests/test_orientation.py -v
"""

import numpy as np
import pytest

from fpident.enhancement.orientation_field import (
    OrientationFieldEstimator,
    block_sum,
    compute_coherence,
    compute_gradients,
    smooth_orientation_field,
)


def stripes(size=64, period=8, vertical=False):
    coords = np.arange(size, dtype=np.float64)
    profile = 0.5 + 0.5 * np.sin(2 * np.pi * coords / period)
    image = np.tile(profile[:, None], (1, size))
    return image.T.copy() if vertical else image


class TestBlockOperations:

    def test_block_sum(self):
        values = np.arange(16, dtype=np.float64).reshape(4, 4)

        sums = block_sum(values, 2)

        assert sums.tolist() == [[10.0, 18.0], [42.0, 50.0]]

    def test_block_sum_ignores_partial_blocks(self):
        assert block_sum(np.ones((5, 7)), 2).shape == (2, 3)

    def test_smoothing_keeps_uniform_field(self):
        field = np.full((4, 4), 0.3)
        assert np.allclose(smooth_orientation_field(field, sigma=1.0), 0.3)


class TestCoherence:

    def test_parallel_stripes_are_fully_coherent(self):
        gx, gy = compute_gradients(stripes())
        coherence = compute_coherence(gx, gy, block_size=16)

        assert coherence.shape == (4, 4)
        assert np.allclose(coherence, 1.0)

    def test_flat_image_has_zero_coherence(self):
        gx, gy = compute_gradients(np.full((64, 64), 0.5))
        coherence = compute_coherence(gx, gy, block_size=16)

        assert np.all(coherence == 0.0)

    def test_noise_is_less_coherent_than_stripes(self):
        rng = np.random.RandomState(0)
        gx, gy = compute_gradients(rng.uniform(size=(64, 64)))
        coherence = compute_coherence(gx, gy, block_size=16)

        assert np.all(coherence < 0.6)
        assert np.all(coherence >= 0.0)


class TestOrientationFieldEstimator:

    def test_output_shapes(self):
        estimator = OrientationFieldEstimator(block_size=16)

        orientation, coherence = estimator.estimate(stripes(), compute_coherence_map=True)

        assert orientation.shape == (64, 64)
        assert coherence.shape == (64, 64)
        assert coherence.min() >= 0.0
        assert coherence.max() <= 1.0

    def test_coherence_optional(self):
        _, coherence = OrientationFieldEstimator().estimate(stripes())
        assert coherence is None

    def test_horizontal_and_vertical_stripes_differ_by_right_angle(self):
        estimator = OrientationFieldEstimator(block_size=16)

        horizontal, _ = estimator.estimate(stripes())
        vertical, _ = estimator.estimate(stripes(vertical=True))

        assert np.allclose(np.abs(horizontal), np.pi / 2, atol=0.05)
        assert np.allclose(vertical, 0.0, atol=0.05)

    def test_uint8_input(self):
        image = (stripes() * 255).astype(np.uint8)

        orientation, coherence = OrientationFieldEstimator().estimate(
            image, compute_coherence_map=True
        )

        assert orientation.shape == image.shape
        assert coherence.mean() == pytest.approx(1.0, abs=0.05)
