"""
Orientation field estimation for fingerprint images.

This module implements gradient-based orientation field estimation,
which drives minutiae direction refinement and the per-minutia
quality score stored in a template.
"""

import numpy as np
from scipy import ndimage
from typing import Tuple, Optional


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Orientation Field Estimation:
# ----------------------------
# The orientation field θ(x, y) represents the local ridge direction at
# each pixel. It is estimated using gradient-based methods.
#
# Algorithm (Gradient-Based):
# 1. Compute image gradients: Gx = ∂I/∂x, Gy = ∂I/∂y
# 2. For each block of size w x w, compute:
#    - Vx = Σ 2 * Gx * Gy
#    - Vy = Σ (Gx² - Gy²)
# 3. Orientation: θ = 0.5 * atan2(Vx, Vy)
#
# The factor of 0.5 accounts for the 180° ambiguity in ridge orientation
# (ridges have the same appearance at θ and θ + 180°).
#
# Coherence:
# ----------
# sqrt(Vx² + Vy²) / Σ (Gx² + Gy²) lies in [0, 1] and measures how
# consistently the gradients in a block agree. It is used as the
# minutia quality measure.
#
# Reference:
# Ratha, N. K., Chen, S., & Jain, A. K. (1995).
# "Adaptive flow orientation-based feature extraction in fingerprint images."
# Pattern Recognition, 28(11), 1657-1672.
# =============================================================================


def compute_gradients(
    image: np.ndarray,
    sigma: float = 1.0
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute image gradients using Gaussian derivative filters.

    Mathematical Formulation:
    -------------------------
    Gx = I * ∂G/∂x
    Gy = I * ∂G/∂y

    where G is a Gaussian kernel and * denotes convolution.

    Args:
        image: Input grayscale image
        sigma: Standard deviation for Gaussian smoothing

    Returns:
        Tuple of (Gx, Gy) gradient arrays
    """
    gx = ndimage.gaussian_filter1d(image, sigma, axis=1, order=1)
    gy = ndimage.gaussian_filter1d(image, sigma, axis=0, order=1)

    return gx, gy


def block_sum(values: np.ndarray, block_size: int) -> np.ndarray:
    """
    Sum an image over non-overlapping blocks.

    Trailing rows and columns that do not fill a whole block are ignored.

    Args:
        values: 2D array
        block_size: Block edge length

    Returns:
        Array of shape (h // block_size, w // block_size)
    """
    h, w = values.shape
    num_blocks_y = h // block_size
    num_blocks_x = w // block_size

    cropped = values[:num_blocks_y * block_size, :num_blocks_x * block_size]
    blocks = cropped.reshape(num_blocks_y, block_size, num_blocks_x, block_size)

    return blocks.sum(axis=(1, 3))


def estimate_orientation_block(
    gx: np.ndarray,
    gy: np.ndarray,
    block_size: int = 16
) -> np.ndarray:
    """
    Estimate orientation field using block-based gradient method.

    Mathematical Formulation:
    -------------------------
    For each block B:

    Vx = Σ_{(i,j)∈B} 2 * Gx(i,j) * Gy(i,j)
    Vy = Σ_{(i,j)∈B} (Gx(i,j)² - Gy(i,j)²)

    θ = 0.5 * atan2(Vx, Vy)

    Args:
        gx: Gradient in x direction
        gy: Gradient in y direction
        block_size: Size of blocks for averaging

    Returns:
        Orientation field (in radians, range [-π/2, π/2])
    """
    vx = 2 * block_sum(gx * gy, block_size)
    vy = block_sum(gx ** 2 - gy ** 2, block_size)

    return 0.5 * np.arctan2(vx, vy)


def smooth_orientation_field(
    orientation: np.ndarray,
    sigma: float = 3.0
) -> np.ndarray:
    """
    Smooth orientation field using Gaussian filtering in doubled-angle domain.

    Because orientation has π periodicity, direct smoothing doesn't work.
    cos(2θ) and sin(2θ) are smoothed independently and converted back:

    θ_smoothed = 0.5 * atan2(sin_2θ_smoothed, cos_2θ_smoothed)

    Args:
        orientation: Input orientation field (in radians)
        sigma: Gaussian smoothing sigma

    Returns:
        Smoothed orientation field
    """
    cos_2theta = ndimage.gaussian_filter(np.cos(2 * orientation), sigma)
    sin_2theta = ndimage.gaussian_filter(np.sin(2 * orientation), sigma)

    return 0.5 * np.arctan2(sin_2theta, cos_2theta)


def _zoom_to(values: np.ndarray, target_shape: Tuple[int, int], order: int) -> np.ndarray:
    zoom_y = target_shape[0] / values.shape[0]
    zoom_x = target_shape[1] / values.shape[1]
    return ndimage.zoom(values, (zoom_y, zoom_x), order=order)


def resize_orientation_field(
    orientation: np.ndarray,
    target_shape: Tuple[int, int]
) -> np.ndarray:
    """
    Resize orientation field to match image dimensions.

    Uses doubled-angle interpolation for correct handling of
    orientation discontinuities.

    Args:
        orientation: Block-wise orientation field
        target_shape: Target (height, width)

    Returns:
        Pixel-wise orientation field
    """
    cos_2theta = _zoom_to(np.cos(2 * orientation), target_shape, order=3)
    sin_2theta = _zoom_to(np.sin(2 * orientation), target_shape, order=3)

    return 0.5 * np.arctan2(sin_2theta, cos_2theta)


def resize_block_map(
    values: np.ndarray,
    target_shape: Tuple[int, int]
) -> np.ndarray:
    """
    Resize a scalar block map (e.g. coherence) to image dimensions.

    Linear interpolation keeps the values inside the input range.
    """
    return _zoom_to(values, target_shape, order=1)


def compute_coherence(
    gx: np.ndarray,
    gy: np.ndarray,
    block_size: int = 16
) -> np.ndarray:
    """
    Compute orientation coherence (reliability) map.

    Mathematical Formulation:
    -------------------------
    E = Σ_{(i,j)∈B} (Gx(i,j)² + Gy(i,j)²)
    coherence = sqrt(Vx² + Vy²) / E

    High coherence indicates reliable orientation estimate.
    Low coherence indicates noisy region or minutiae.

    Args:
        gx: Gradient in x direction
        gy: Gradient in y direction
        block_size: Block size for coherence computation

    Returns:
        Coherence map (0 = unreliable, 1 = reliable)
    """
    grad_sum = block_sum(gx ** 2 + gy ** 2, block_size)
    vx = 2 * block_sum(gx * gy, block_size)
    vy = block_sum(gx ** 2 - gy ** 2, block_size)

    coherence = np.zeros_like(grad_sum, dtype=np.float64)
    valid = grad_sum > 1e-10
    coherence[valid] = np.sqrt(vx[valid] ** 2 + vy[valid] ** 2) / grad_sum[valid]

    return np.clip(coherence, 0.0, 1.0)


class OrientationFieldEstimator:
    """
    Configurable orientation field estimator.

    Produces pixel-wise orientation and, on request, a pixel-wise
    coherence map from the same gradients.
    """

    def __init__(
        self,
        block_size: int = 16,
        gradient_sigma: float = 1.0,
        smooth_sigma: float = 3.0
    ):
        """
        Initialize estimator.

        Args:
            block_size: Block size for estimation
            gradient_sigma: Sigma for gradient computation
            smooth_sigma: Sigma for orientation smoothing
        """
        self.block_size = block_size
        self.gradient_sigma = gradient_sigma
        self.smooth_sigma = smooth_sigma

    def estimate(
        self,
        image: np.ndarray,
        compute_coherence_map: bool = False
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """
        Estimate orientation field.

        Args:
            image: Input fingerprint image, at least one block in each dimension
            compute_coherence_map: Whether to also compute coherence

        Returns:
            Tuple of (orientation_field, coherence_map)
            coherence_map is None if compute_coherence_map=False
        """
        if image.dtype == np.uint8:
            image = image.astype(np.float32) / 255.0

        gx, gy = compute_gradients(image, self.gradient_sigma)

        orientation = estimate_orientation_block(gx, gy, self.block_size)
        orientation = smooth_orientation_field(orientation, self.smooth_sigma)
        orientation = resize_orientation_field(orientation, image.shape)

        coherence_map = None
        if compute_coherence_map:
            coherence_block = compute_coherence(gx, gy, self.block_size)
            coherence_map = np.clip(
                resize_block_map(coherence_block, image.shape), 0.0, 1.0
            )

        return orientation, coherence_map
