"""
Image binarization and thinning (skeletonization).

This module reduces fingerprint ridge images to single-pixel-wide
skeletons, which is a prerequisite for minutiae extraction.
"""

import cv2
import numpy as np
from typing import Tuple


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Thinning/Skeletonization:
# ------------------------
# Thinning reduces binary objects to 1-pixel-wide skeletons while:
# - Preserving topology (connectivity)
# - Maintaining shape (medial axis approximation)
#
# Zhang-Suen Algorithm:
# A parallel thinning algorithm that iterates until convergence.
# Each iteration has two sub-iterations (odd and even).
#
# For a pixel P1 with 8-neighbors P2-P9 (clockwise from top):
#     P9 P2 P3
#     P8 P1 P4
#     P7 P6 P5
#
# Conditions for deletion in sub-iteration 1:
# - 2 ≤ B(P1) ≤ 6   (B = number of non-zero neighbors)
# - A(P1) = 1        (A = number of 01 patterns in ordered neighbors)
# - P2 * P4 * P6 = 0
# - P4 * P6 * P8 = 0
#
# Sub-iteration 2 differs in last two conditions:
# - P2 * P4 * P8 = 0
# - P2 * P6 * P8 = 0
#
# All deletions of a sub-iteration are decided from the same input,
# so the whole image is evaluated at once with shifted array views.
#
# Reference:
# Zhang, T. Y., & Suen, C. Y. (1984).
# "A fast parallel algorithm for thinning digital patterns."
# Communications of the ACM, 27(3), 236-239.
# =============================================================================


# (dy, dx) offsets of P2..P9
NEIGHBOR_OFFSETS = (
    (-1, 0), (-1, 1), (0, 1), (1, 1),
    (1, 0), (1, -1), (0, -1), (-1, -1),
)


def neighbor_stack(padded: np.ndarray) -> np.ndarray:
    """
    Stack the 8-connected neighbors of every interior pixel.

    Neighbor arrangement:
        P9 P2 P3
        P8 P1 P4
        P7 P6 P5

    Args:
        padded: Binary image padded by one pixel on each side

    Returns:
        Array of shape (8, h - 2, w - 2) holding P2..P9
    """
    h, w = padded.shape
    return np.stack([
        padded[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]
        for dy, dx in NEIGHBOR_OFFSETS
    ])


def count_transitions(neighbors: np.ndarray) -> np.ndarray:
    """
    Count 0-to-1 transitions in the circular neighbor sequence.

    This is the A(P1) function in Zhang-Suen algorithm.

    Args:
        neighbors: Array of shape (8, ...) from neighbor_stack

    Returns:
        Number of 0→1 transitions per pixel
    """
    rolled = np.roll(neighbors, -1, axis=0)
    return np.sum((neighbors == 0) & (rolled == 1), axis=0)


def zhang_suen_iteration(image: np.ndarray, iteration: int) -> Tuple[np.ndarray, int]:
    """
    Perform one sub-iteration of Zhang-Suen thinning.

    Args:
        image: Padded binary image (1 = foreground, 0 = background)
        iteration: Sub-iteration number (0 or 1)

    Returns:
        Tuple of (thinned image, number of deleted pixels)
    """
    neighbors = neighbor_stack(image)
    P2, P3, P4, P5, P6, P7, P8, P9 = neighbors

    center = image[1:-1, 1:-1]
    B = neighbors.sum(axis=0)
    A = count_transitions(neighbors)

    if iteration == 0:
        cond_c = (P2 * P4 * P6) == 0
        cond_d = (P4 * P6 * P8) == 0
    else:
        cond_c = (P2 * P4 * P8) == 0
        cond_d = (P2 * P6 * P8) == 0

    delete = (center == 1) & (B >= 2) & (B <= 6) & (A == 1) & cond_c & cond_d

    result = image.copy()
    result[1:-1, 1:-1][delete] = 0

    return result, int(np.count_nonzero(delete))


def zhang_suen_thinning(
    image: np.ndarray,
    max_iterations: int = 100
) -> np.ndarray:
    """
    Apply Zhang-Suen thinning algorithm.

    Args:
        image: Binary image (ridges = 1, background = 0)
        max_iterations: Maximum number of iteration pairs

    Returns:
        Thinned (skeletonized) image
    """
    binary = (image > 0).astype(np.uint8)

    # Pad to handle border pixels
    padded = np.pad(binary, 1, mode='constant', constant_values=0)

    for _ in range(max_iterations):
        padded, changed1 = zhang_suen_iteration(padded, 0)
        padded, changed2 = zhang_suen_iteration(padded, 1)

        if changed1 == 0 and changed2 == 0:
            break

    return padded[1:-1, 1:-1]


def binarize_image(
    image: np.ndarray,
    method: str = 'adaptive',
    block_size: int = 15,
    offset: int = 10
) -> np.ndarray:
    """
    Binarize fingerprint image.

    Args:
        image: Grayscale fingerprint image (ridges dark)
        method: 'global', 'adaptive', or 'otsu'
        block_size: Block size for adaptive method (odd)
        offset: Offset for adaptive thresholding

    Returns:
        Binary image (ridges = 1, background = 0)
    """
    if image.dtype in [np.float32, np.float64]:
        image = (image * 255).clip(0, 255).astype(np.uint8)

    if method == 'global':
        threshold = np.mean(image)
        binary = (image < threshold).astype(np.uint8)

    elif method == 'otsu':
        _, binary = cv2.threshold(image, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)
        binary = (binary > 0).astype(np.uint8)

    elif method == 'adaptive':
        binary = cv2.adaptiveThreshold(
            image, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY_INV, block_size, offset
        )
        binary = (binary > 0).astype(np.uint8)

    else:
        raise ValueError(f"Unknown binarization method: {method}")

    return binary


class Thinner:
    """
    Configurable fingerprint binarization and thinning processor.
    """

    def __init__(
        self,
        binarization_method: str = 'adaptive',
        block_size: int = 15,
        offset: int = 10,
        max_iterations: int = 100
    ):
        self.binarization_method = binarization_method
        self.block_size = block_size
        self.offset = offset
        self.max_iterations = max_iterations

    def process(self, image: np.ndarray) -> np.ndarray:
        """
        Binarize and thin fingerprint image.

        Args:
            image: Preprocessed fingerprint image

        Returns:
            Skeleton (ridges = 1, background = 0)
        """
        binary = binarize_image(
            image,
            self.binarization_method,
            block_size=self.block_size,
            offset=self.offset
        )
        return zhang_suen_thinning(binary, self.max_iterations)
