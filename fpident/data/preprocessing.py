"""
Image preprocessing utilities for fingerprint scans.

This module provides functions for preprocessing fingerprint images
including normalization, segmentation, and contrast enhancement.
"""

from typing import Optional, Tuple

import cv2
import numpy as np


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Fingerprint preprocessing aims to enhance ridge-valley contrast and
# normalize image properties for consistent feature extraction.
#
# Key operations:
# 1. Background removal: subtract slow illumination changes
# 2. Histogram equalization: enhance local contrast
# 3. Segmentation: separate fingerprint region from background
# 4. Normalization: map intensities to [0, 1]
#
# Every step is deterministic, so the same scan always yields the same
# preprocessed image.
# =============================================================================


def to_float_image(image: np.ndarray) -> np.ndarray:
    """Convert a uint8 or float image to float32 in [0, 1]."""
    if image.dtype == np.uint8:
        return image.astype(np.float32) / 255.0
    return image.astype(np.float32)


def image_contrast(image: np.ndarray) -> float:
    """
    Measure global contrast as the standard deviation of intensities.

    Args:
        image: Grayscale image (uint8 or float in [0, 1])

    Returns:
        Standard deviation in [0, 0.5]
    """
    return float(np.std(to_float_image(image)))


def normalize_to_range(
    image: np.ndarray,
    min_val: float = 0.0,
    max_val: float = 1.0
) -> np.ndarray:
    """
    Normalize image to specified range.

    Args:
        image: Input image
        min_val: Minimum output value
        max_val: Maximum output value

    Returns:
        Normalized image
    """
    image = image.astype(np.float32)

    img_min = np.min(image)
    img_max = np.max(image)

    if img_max - img_min < 1e-10:
        return np.full_like(image, (min_val + max_val) / 2)

    normalized = (image - img_min) / (img_max - img_min)
    normalized = normalized * (max_val - min_val) + min_val

    return normalized


def segment_fingerprint(
    image: np.ndarray,
    block_size: int = 16,
    variance_threshold: float = 0.01
) -> np.ndarray:
    """
    Segment fingerprint region from background using local variance.

    Mathematical Formulation:
    -------------------------
    For each block B of size w x w:

    variance(B) = (1/w²) * Σ(I(x,y) - μ_B)²

    Blocks with variance > threshold are considered fingerprint region.

    Args:
        image: Input grayscale image (normalized to [0, 1])
        block_size: Size of blocks for variance computation
        variance_threshold: Threshold for foreground detection

    Returns:
        Binary mask (1 = fingerprint, 0 = background)
    """
    image = to_float_image(image)

    h, w = image.shape
    mask = np.zeros((h, w), dtype=np.uint8)

    for y in range(0, h - block_size + 1, block_size):
        for x in range(0, w - block_size + 1, block_size):
            block = image[y:y+block_size, x:x+block_size]
            if np.var(block) > variance_threshold:
                mask[y:y+block_size, x:x+block_size] = 1

    # Morphological cleanup
    kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (block_size, block_size))
    mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel)
    mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel)

    return mask


def adaptive_histogram_equalization(
    image: np.ndarray,
    clip_limit: float = 2.0,
    tile_size: Tuple[int, int] = (8, 8)
) -> np.ndarray:
    """
    Apply Contrast Limited Adaptive Histogram Equalization (CLAHE).

    Args:
        image: Input grayscale image (float in [0, 1])
        clip_limit: Threshold for contrast limiting
        tile_size: Size of tiles for local equalization

    Returns:
        Enhanced float image in [0, 1]
    """
    img_uint8 = (image * 255).clip(0, 255).astype(np.uint8)

    clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=tile_size)
    enhanced = clahe.apply(img_uint8)

    return enhanced.astype(np.float32) / 255.0


def remove_background_gradient(
    image: np.ndarray,
    kernel_size: int = 65
) -> np.ndarray:
    """
    Remove background intensity gradient using morphological operations.

    Mathematical Formulation:
    -------------------------
    Ridges are dark on a light background, so the background is estimated
    with a morphological closing (max filter followed by min filter):

    background = closing(I, kernel)
    corrected = 1 - (background - I)

    This removes slow intensity variations while preserving ridges.

    Args:
        image: Input grayscale image (float in [0, 1])
        kernel_size: Size of structuring element (odd number)

    Returns:
        Gradient-corrected float image in [0, 1]
    """
    img_uint8 = (image * 255).clip(0, 255).astype(np.uint8)

    kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (kernel_size, kernel_size))
    background = cv2.morphologyEx(img_uint8, cv2.MORPH_CLOSE, kernel)

    ridges = cv2.subtract(background, img_uint8)
    corrected = 255 - ridges

    return corrected.astype(np.float32) / 255.0


def resize_image(
    image: np.ndarray,
    target_size: Tuple[int, int],
    interpolation: int = cv2.INTER_LINEAR
) -> np.ndarray:
    """
    Resize image to target size.

    Args:
        image: Input image
        target_size: Target (width, height)
        interpolation: OpenCV interpolation method

    Returns:
        Resized image
    """
    return cv2.resize(image, target_size, interpolation=interpolation)


def preprocess_fingerprint(
    image: np.ndarray,
    target_size: Optional[Tuple[int, int]] = None,
    equalize: bool = True,
    segment: bool = True,
    remove_gradient: bool = True,
    block_size: int = 16
) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Apply full preprocessing pipeline to a fingerprint image.

    Pipeline:
    1. Convert to float and resize (optional)
    2. Remove background gradient (optional)
    3. Apply CLAHE for contrast enhancement (optional)
    4. Segment fingerprint region (optional)
    5. Normalize intensities to [0, 1]

    Args:
        image: Input fingerprint image
        target_size: Target (width, height), None to keep original
        equalize: Whether to apply histogram equalization
        segment: Whether to compute segmentation mask
        remove_gradient: Whether to remove background gradient
        block_size: Block size for segmentation

    Returns:
        Tuple of (preprocessed_image, segmentation_mask)
        mask is None if segment=False
    """
    image = to_float_image(image)

    if target_size is not None:
        image = resize_image(image, target_size)

    mask = None

    if remove_gradient:
        image = remove_background_gradient(image)

    if equalize:
        image = adaptive_histogram_equalization(image)

    if segment:
        mask = segment_fingerprint(image, block_size)

    image = normalize_to_range(image, 0.0, 1.0)

    return image, mask


class FingerprintPreprocessor:
    """
    Configurable preprocessor for fingerprint images.

    Encapsulates preprocessing parameters and provides a consistent
    interface for the template codec.
    """

    def __init__(
        self,
        target_size: Optional[Tuple[int, int]] = None,
        equalize: bool = True,
        segment: bool = True,
        remove_gradient: bool = True,
        block_size: int = 16
    ):
        """
        Initialize the preprocessor.

        Args:
            target_size: Output image size, None to keep the scan size
            equalize: Whether to apply CLAHE
            segment: Whether to compute segmentation mask
            remove_gradient: Whether to remove background gradient
            block_size: Block size for segmentation
        """
        self.target_size = target_size
        self.equalize = equalize
        self.segment = segment
        self.remove_gradient = remove_gradient
        self.block_size = block_size

    def __call__(
        self,
        image: np.ndarray
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """
        Preprocess a fingerprint image.

        Args:
            image: Input image

        Returns:
            Tuple of (preprocessed_image, mask)
        """
        return preprocess_fingerprint(
            image,
            target_size=self.target_size,
            equalize=self.equalize,
            segment=self.segment,
            remove_gradient=self.remove_gradient,
            block_size=self.block_size
        )
