"""
Minutiae extraction from fingerprint skeleton images.

This module implements minutiae detection using the crossing number
method on skeletonized fingerprint images.
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .thinning import NEIGHBOR_OFFSETS, neighbor_stack


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Minutiae:
# ---------
# Minutiae are local discontinuities in the ridge pattern:
# - Ridge ending: A ridge that terminates abruptly
# - Ridge bifurcation: A single ridge that splits into two ridges
#
# Crossing Number Method:
# ----------------------
# For a pixel P with 8-neighbors in clockwise order (P1...P8):
#
# CN(P) = 0.5 * Σ |P_i - P_{i+1}|  (i = 1...8, P_9 = P_1)
#
# Classification:
# - CN = 0: Isolated point (noise)
# - CN = 1: Ridge ending
# - CN = 2: Ridge continuing point
# - CN = 3: Ridge bifurcation
# - CN > 3: Complex structure (usually noise)
#
# Each minutia has:
# - Position (x, y)
# - Type (ending or bifurcation)
# - Orientation θ (direction of the associated ridge, [0, 2π))
# - Quality (orientation coherence at the minutia, [0, 1])
#
# Reference:
# Maltoni, D., Maio, D., Jain, A. K., & Prabhakar, S. (2009).
# "Handbook of Fingerprint Recognition." Springer.
# =============================================================================


TWO_PI = 2 * np.pi


class MinutiaeType(Enum):
    """Enumeration of minutiae types (value is the crossing number)."""
    ENDING = 1
    BIFURCATION = 3


@dataclass(frozen=True)
class Minutia:
    """
    Represents a single minutia point.

    Attributes:
        x: X coordinate (column)
        y: Y coordinate (row)
        angle: Orientation angle (radians, range [0, 2π))
        minutiae_type: Type of minutia (ending or bifurcation)
        quality: Quality/confidence score (0 to 1)
    """
    x: int
    y: int
    angle: float
    minutiae_type: MinutiaeType
    quality: float = 1.0


def normalize_angle(angle: float) -> float:
    """Wrap an angle into [0, 2π)."""
    angle = float(np.mod(angle, TWO_PI))
    # np.mod can round up to exactly 2π for tiny negative inputs
    if angle >= TWO_PI:
        angle = 0.0
    return angle


def crossing_number_map(skeleton: np.ndarray) -> np.ndarray:
    """
    Compute the crossing number of every pixel.

    Mathematical Definition:
    -----------------------
    CN = 0.5 * Σ_{i=1}^{8} |P_i - P_{i+1}|

    where neighbors are in clockwise order starting from top.

    Args:
        skeleton: Binary skeleton image

    Returns:
        Integer array of the same shape; background pixels are 0
    """
    binary = (skeleton > 0).astype(np.int8)
    padded = np.pad(binary, 1, mode='constant', constant_values=0)

    neighbors = neighbor_stack(padded)
    rolled = np.roll(neighbors, -1, axis=0)
    cn = np.abs(neighbors - rolled).sum(axis=0) // 2

    return cn * binary


def estimate_minutia_orientation(
    skeleton: np.ndarray,
    y: int,
    x: int,
    minutiae_type: MinutiaeType,
    search_radius: int = 10
) -> float:
    """
    Estimate minutia orientation by tracing the connected ridge.

    Algorithm:
    ----------
    1. For endings: trace the ridge in the only connected direction
    2. For bifurcations: average the three branch directions

    Args:
        skeleton: Binary skeleton image
        y, x: Minutia coordinates
        minutiae_type: Type of minutia
        search_radius: Number of ridge pixels to follow

    Returns:
        Orientation angle in radians [0, 2π)
    """
    h, w = skeleton.shape

    connected = []
    for dy, dx in NEIGHBOR_OFFSETS:
        ny, nx = y + dy, x + dx
        if 0 <= ny < h and 0 <= nx < w and skeleton[ny, nx]:
            connected.append((dy, dx))

    if len(connected) == 0:
        return 0.0

    if minutiae_type == MinutiaeType.ENDING and len(connected) == 1:
        dy, dx = connected[0]
        trace_y, trace_x = y + dy, x + dx
        visited = {(y, x), (trace_y, trace_x)}

        for _ in range(search_radius):
            found_next = False
            for ndy, ndx in NEIGHBOR_OFFSETS:
                ny, nx = trace_y + ndy, trace_x + ndx
                if (0 <= ny < h and 0 <= nx < w and
                        skeleton[ny, nx] and (ny, nx) not in visited):
                    visited.add((ny, nx))
                    trace_y, trace_x = ny, nx
                    found_next = True
                    break
            if not found_next:
                break

        # Points from the ridge body out through the ending
        dir_y = y - trace_y
        dir_x = x - trace_x
    else:
        dir_y = sum(d[0] for d in connected) / len(connected)
        dir_x = sum(d[1] for d in connected) / len(connected)

    return normalize_angle(np.arctan2(dir_y, dir_x))


def _align_with_trace(ridge_angle: float, trace_angle: float) -> float:
    # Ridge orientation is only defined modulo π; pick the half
    # closest to the traced direction.
    diff = np.mod(trace_angle - ridge_angle + np.pi, TWO_PI) - np.pi
    if abs(diff) > np.pi / 2:
        ridge_angle += np.pi
    return normalize_angle(ridge_angle)


def extract_minutiae(
    skeleton: np.ndarray,
    border_margin: int = 16,
    orientation_field: Optional[np.ndarray] = None,
    coherence_map: Optional[np.ndarray] = None
) -> List[Minutia]:
    """
    Extract minutiae from skeleton image using crossing number.

    Algorithm Steps:
    ----------------
    1. Compute crossing numbers for the whole skeleton
    2. CN = 1 marks a ridge ending, CN = 3 a bifurcation
    3. Drop candidates inside the border margin
    4. Estimate orientation (refined by the orientation field if given)
    5. Read quality from the coherence map if given

    Candidates are returned in row-major order.

    Args:
        skeleton: Binary skeleton image
        border_margin: Minimum distance from image border
        orientation_field: Optional pixel-wise orientation field
        coherence_map: Optional pixel-wise coherence in [0, 1]

    Returns:
        List of Minutia objects
    """
    h, w = skeleton.shape
    skeleton = (skeleton > 0).astype(np.uint8)

    cn = crossing_number_map(skeleton)
    candidates = (cn == 1) | (cn == 3)

    margin = max(border_margin, 1)
    interior = np.zeros_like(candidates)
    interior[margin:h - margin, margin:w - margin] = True
    candidates &= interior

    minutiae = []
    for y, x in zip(*np.nonzero(candidates)):
        y, x = int(y), int(x)
        minutiae_type = MinutiaeType(int(cn[y, x]))

        angle = estimate_minutia_orientation(skeleton, y, x, minutiae_type)
        if orientation_field is not None and minutiae_type == MinutiaeType.ENDING:
            angle = _align_with_trace(float(orientation_field[y, x]), angle)

        quality = 1.0
        if coherence_map is not None:
            quality = float(np.clip(coherence_map[y, x], 0.0, 1.0))

        minutiae.append(Minutia(
            x=x,
            y=y,
            angle=angle,
            minutiae_type=minutiae_type,
            quality=quality
        ))

    return minutiae


def remove_spurious_minutiae(
    minutiae: List[Minutia],
    min_distance: int = 6
) -> List[Minutia]:
    """
    Remove spurious minutiae that are too close together.

    Two minutiae within min_distance pixels are treated as noise. An
    ending-bifurcation pair (broken ridge) is removed entirely; otherwise
    the lower-quality one is dropped. Close pairs are visited in index
    order and pairs touching an already removed minutia are skipped.

    Args:
        minutiae: List of detected minutiae
        min_distance: Minimum distance between valid minutiae

    Returns:
        Filtered list of minutiae
    """
    if len(minutiae) < 2:
        return minutiae

    xy = np.array([(m.x, m.y) for m in minutiae], dtype=np.float64)
    diff = xy[:, None, :] - xy[None, :, :]
    dist = np.sqrt(np.sum(diff ** 2, axis=-1))

    close_pairs = np.argwhere(np.triu(dist < min_distance, k=1))

    to_remove = set()
    for i, j in close_pairs:
        i, j = int(i), int(j)
        if i in to_remove or j in to_remove:
            continue

        m1, m2 = minutiae[i], minutiae[j]
        if m1.minutiae_type != m2.minutiae_type:
            to_remove.add(i)
            to_remove.add(j)
        elif m1.quality < m2.quality:
            to_remove.add(i)
        else:
            to_remove.add(j)

    return [m for i, m in enumerate(minutiae) if i not in to_remove]


def filter_by_mask(
    minutiae: List[Minutia],
    mask: np.ndarray
) -> List[Minutia]:
    """Keep only minutiae inside the mask region (1 = valid)."""
    return [m for m in minutiae if mask[m.y, m.x] > 0]


def limit_minutiae_count(
    minutiae: List[Minutia],
    max_count: int = 80
) -> List[Minutia]:
    """
    Limit number of minutiae by keeping highest quality ones.

    The sort is stable, so equal-quality minutiae keep scan order.

    Args:
        minutiae: List of minutiae
        max_count: Maximum number to keep

    Returns:
        Limited list of minutiae
    """
    if len(minutiae) <= max_count:
        return minutiae

    sorted_minutiae = sorted(minutiae, key=lambda m: m.quality, reverse=True)
    return sorted_minutiae[:max_count]


class MinutiaeExtractor:
    """
    Configurable minutiae extraction pipeline.
    """

    def __init__(
        self,
        border_margin: int = 16,
        spurious_distance: int = 6,
        max_minutiae: int = 80
    ):
        """
        Initialize extractor.

        Args:
            border_margin: Margin to exclude from border
            spurious_distance: Distance for spurious removal
            max_minutiae: Maximum number of minutiae to extract
        """
        self.border_margin = border_margin
        self.spurious_distance = spurious_distance
        self.max_minutiae = max_minutiae

    def extract(
        self,
        skeleton: np.ndarray,
        mask: Optional[np.ndarray] = None,
        orientation_field: Optional[np.ndarray] = None,
        coherence_map: Optional[np.ndarray] = None
    ) -> List[Minutia]:
        """
        Extract minutiae from skeleton image.

        Args:
            skeleton: Binary skeleton image
            mask: Optional segmentation mask
            orientation_field: Optional orientation field for angles
            coherence_map: Optional coherence map for quality

        Returns:
            List of extracted minutiae
        """
        minutiae = extract_minutiae(
            skeleton, self.border_margin, orientation_field, coherence_map
        )

        if mask is not None:
            minutiae = filter_by_mask(minutiae, mask)

        minutiae = remove_spurious_minutiae(minutiae, self.spurious_distance)
        minutiae = limit_minutiae_count(minutiae, self.max_minutiae)

        return minutiae
