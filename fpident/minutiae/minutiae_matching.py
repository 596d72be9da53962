"""
Minutiae-based fingerprint matching.

This module implements minutiae matching algorithms that compare
two fingerprints based on their minutiae sets.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .minutiae_extraction import Minutia


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Minutiae Matching Problem:
# -------------------------
# Given two minutiae sets T = {m_1, ..., m_n} and Q = {m'_1, ..., m'_k},
# find the optimal correspondence and compute a similarity score.
#
# Challenges:
# - Non-linear distortion (skin elasticity)
# - Missing/spurious minutiae
# - Rotation and translation between captures
#
# Approach (Point Pattern Matching):
# 1. Alignment: Estimate transformation between fingerprints
# 2. Pairing: Match minutiae based on position and angle
# 3. Scoring: Compute similarity from matched pairs
#
# Matching Criteria:
# Two minutiae m = (x, y, θ) and m' = (x', y', θ') match if:
# - Spatial distance: ||T(x,y) - (x',y')|| <= d_threshold
# - Angular difference: |T_θ(θ) - θ'| <= θ_threshold
#
# where T is the estimated transformation.
#
# Score:
# score = n_matched² / (n_1 * n_2), in [0, 1]
# Comparing a set with itself under the identity transform pairs every
# minutia, so the score is exactly 1.
#
# Reference:
# Maltoni, D., Maio, D., Jain, A. K., & Prabhakar, S. (2009).
# "Handbook of Fingerprint Recognition." Springer.
# =============================================================================


@dataclass(frozen=True)
class MinutiaeMatch:
    """
    Represents a matched pair of minutiae.

    Attributes:
        idx1: Index in first minutiae set
        idx2: Index in second minutiae set
        distance: Spatial distance between matched minutiae
        angle_diff: Angular difference between matched minutiae
    """
    idx1: int
    idx2: int
    distance: float
    angle_diff: float


def minutiae_to_array(minutiae: Sequence[Minutia]) -> np.ndarray:
    """
    Pack minutiae into an (n, 4) float array of (x, y, angle, type).
    """
    if len(minutiae) == 0:
        return np.zeros((0, 4), dtype=np.float64)
    return np.array(
        [(m.x, m.y, m.angle, m.minutiae_type.value) for m in minutiae],
        dtype=np.float64
    )


def angle_difference(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Absolute circular difference of angles, in [0, π]."""
    diff = np.abs(np.mod(a - b, 2 * np.pi))
    return np.minimum(diff, 2 * np.pi - diff)


def compute_transformation(
    reference1: np.ndarray,
    reference2: np.ndarray
) -> Tuple[float, float, float]:
    """
    Compute transformation parameters aligning two minutiae.

    Uses one corresponding minutia pair to estimate:
    - Rotation dtheta = θ2 - θ1, wrapped to [-π, π)
    - Translation (dx, dy) = p2 - R(dtheta) p1

    Args:
        reference1: (x, y, angle, ...) row from the first set
        reference2: (x, y, angle, ...) row from the second set

    Returns:
        Tuple of (dx, dy, dtheta)
    """
    x1, y1, a1 = reference1[:3]
    x2, y2, a2 = reference2[:3]

    dtheta = float(np.mod(a2 - a1 + np.pi, 2 * np.pi) - np.pi)

    cos_t = np.cos(dtheta)
    sin_t = np.sin(dtheta)

    x1_rot = x1 * cos_t - y1 * sin_t
    y1_rot = x1 * sin_t + y1 * cos_t

    return float(x2 - x1_rot), float(y2 - y1_rot), dtheta


def apply_transformation(
    points: np.ndarray,
    dx: float,
    dy: float,
    dtheta: float
) -> np.ndarray:
    """
    Apply a rigid transformation to a minutiae array.

    Args:
        points: (n, >=3) array with x, y, angle columns
        dx, dy: Translation
        dtheta: Rotation

    Returns:
        (n, 3) array of transformed (x, y, angle), angle in [0, 2π)
    """
    if dtheta == 0.0 and dx == 0.0 and dy == 0.0:
        return points[:, :3].copy()

    cos_t = np.cos(dtheta)
    sin_t = np.sin(dtheta)

    x, y, angle = points[:, 0], points[:, 1], points[:, 2]

    transformed = np.empty((len(points), 3), dtype=np.float64)
    transformed[:, 0] = x * cos_t - y * sin_t + dx
    transformed[:, 1] = x * sin_t + y * cos_t + dy
    transformed[:, 2] = np.mod(angle + dtheta, 2 * np.pi)

    return transformed


def find_matching_pairs(
    transformed1: np.ndarray,
    points2: np.ndarray,
    distance_threshold: float = 15.0,
    angle_threshold: float = 0.26,  # ~15 degrees
    lower_bound: int = -1
) -> List[MinutiaeMatch]:
    """
    Find matching minutiae pairs after alignment.

    Two minutiae match if:
    - Euclidean distance <= distance_threshold
    - Angular difference <= angle_threshold

    Candidates are assigned greedily in order of (distance, angle
    difference, idx1, idx2), so every minutia is used at most once and
    the result does not depend on floating point sort stability.

    Args:
        transformed1: Transformed (x, y, angle) rows from set 1
        points2: Second minutiae set as an array
        distance_threshold: Maximum spatial distance
        angle_threshold: Maximum angular difference (radians)
        lower_bound: Return [] early if the pairing cannot exceed this count

    Returns:
        List of matched pairs
    """
    if len(transformed1) == 0 or len(points2) == 0:
        return []

    delta = transformed1[:, None, :2] - points2[None, :, :2]
    dist = np.sqrt(np.sum(delta ** 2, axis=-1))
    angle_diff = angle_difference(transformed1[:, None, 2], points2[None, :, 2])

    valid = (dist <= distance_threshold) & (angle_diff <= angle_threshold)

    upper_bound = min(
        int(np.count_nonzero(valid.any(axis=1))),
        int(np.count_nonzero(valid.any(axis=0)))
    )
    if upper_bound <= lower_bound:
        return []

    rows, cols = np.nonzero(valid)
    cand_dist = dist[rows, cols]
    cand_angle = angle_diff[rows, cols]
    order = np.lexsort((cols, rows, cand_angle, cand_dist))

    matches = []
    used1 = set()
    used2 = set()

    for k in order:
        i, j = int(rows[k]), int(cols[k])
        if i in used1 or j in used2:
            continue

        matches.append(MinutiaeMatch(i, j, float(cand_dist[k]), float(cand_angle[k])))
        used1.add(i)
        used2.add(j)

    return matches


def exhaustive_alignment(
    points1: np.ndarray,
    points2: np.ndarray,
    distance_threshold: float = 15.0,
    angle_threshold: float = 0.26
) -> Tuple[List[MinutiaeMatch], Tuple[float, float, float]]:
    """
    Try every same-type reference pair and keep the best alignment.

    The first hypothesis (in index order) reaching the largest number of
    matches wins, which makes the result fully deterministic.

    Args:
        points1: First minutiae set as an array
        points2: Second minutiae set as an array
        distance_threshold: Distance threshold for pairing
        angle_threshold: Angle threshold for pairing

    Returns:
        Tuple of (best_matches, best_transformation)
    """
    best_matches: List[MinutiaeMatch] = []
    best_transform = (0.0, 0.0, 0.0)

    for i in range(len(points1)):
        for j in range(len(points2)):
            if points1[i, 3] != points2[j, 3]:
                continue

            dx, dy, dtheta = compute_transformation(points1[i], points2[j])
            transformed = apply_transformation(points1, dx, dy, dtheta)
            matches = find_matching_pairs(
                transformed, points2,
                distance_threshold, angle_threshold,
                lower_bound=len(best_matches)
            )

            if len(matches) > len(best_matches):
                best_matches = matches
                best_transform = (dx, dy, dtheta)

    return best_matches, best_transform


def ransac_alignment(
    points1: np.ndarray,
    points2: np.ndarray,
    distance_threshold: float = 15.0,
    angle_threshold: float = 0.26,
    num_iterations: int = 500,
    random_state: Optional[int] = 42
) -> Tuple[List[MinutiaeMatch], Tuple[float, float, float]]:
    """
    RANSAC-based minutiae alignment and matching.

    Algorithm:
    ----------
    0. Evaluate the identity transformation
    1. Randomly select a minutia pair as reference
    2. Compute transformation from this pair
    3. Apply transformation and count inliers
    4. Keep best transformation

    A fresh generator is seeded on every call, so repeated calls with the
    same inputs return the same result.

    Args:
        points1: First minutiae set as an array
        points2: Second minutiae set as an array
        distance_threshold: Distance threshold for inliers
        angle_threshold: Angle threshold for inliers
        num_iterations: Number of RANSAC iterations
        random_state: Random seed (None for nondeterministic sampling)

    Returns:
        Tuple of (best_matches, best_transformation)
    """
    if len(points1) == 0 or len(points2) == 0:
        return [], (0.0, 0.0, 0.0)

    rng = np.random.RandomState(random_state)

    best_transform = (0.0, 0.0, 0.0)
    best_matches = find_matching_pairs(
        apply_transformation(points1, *best_transform), points2,
        distance_threshold, angle_threshold
    )

    for _ in range(num_iterations):
        idx1 = rng.randint(len(points1))
        idx2 = rng.randint(len(points2))

        if points1[idx1, 3] != points2[idx2, 3]:
            continue

        dx, dy, dtheta = compute_transformation(points1[idx1], points2[idx2])
        transformed = apply_transformation(points1, dx, dy, dtheta)
        matches = find_matching_pairs(
            transformed, points2,
            distance_threshold, angle_threshold,
            lower_bound=len(best_matches)
        )

        if len(matches) > len(best_matches):
            best_matches = matches
            best_transform = (dx, dy, dtheta)

    return best_matches, best_transform


def compute_matching_score(
    num_matched: int,
    num_minutiae1: int,
    num_minutiae2: int,
    min_matched: int = 6
) -> float:
    """
    Compute matching score from minutiae correspondences.

    Score Formulation:
    ------------------
    score = n_matched² / (n_1 * n_2)

    score = 0 if n_matched < min(min_matched, n_1, n_2)

    Lowering the required count to the set sizes lets a small template
    still reach a score of 1 against itself.

    Args:
        num_matched: Number of matched minutiae pairs
        num_minutiae1: Total minutiae in first set
        num_minutiae2: Total minutiae in second set
        min_matched: Minimum matches for non-zero score

    Returns:
        Similarity score in [0, 1]
    """
    if num_minutiae1 == 0 or num_minutiae2 == 0 or num_matched == 0:
        return 0.0

    required = min(min_matched, num_minutiae1, num_minutiae2)
    if num_matched < required:
        return 0.0

    score = (num_matched ** 2) / (num_minutiae1 * num_minutiae2)

    return min(1.0, score)


class MinutiaeMatcher:
    """
    Minutiae-based fingerprint matcher.

    Compares two minutiae sets by finding the alignment with the most
    paired minutiae and scoring the pairing.
    """

    def __init__(
        self,
        distance_threshold: float = 15.0,
        angle_threshold: float = 0.26,
        min_matched_minutiae: int = 6,
        alignment_method: str = 'exhaustive',
        ransac_iterations: int = 500,
        random_state: Optional[int] = 42
    ):
        """
        Initialize minutiae matcher.

        Args:
            distance_threshold: Max distance for minutiae pairing (pixels)
            angle_threshold: Max angle difference for pairing (radians)
            min_matched_minutiae: Minimum matches for valid comparison
            alignment_method: Alignment method ('exhaustive' or 'ransac')
            ransac_iterations: Number of RANSAC iterations
            random_state: Random seed for RANSAC
        """
        if alignment_method not in ('exhaustive', 'ransac'):
            raise ValueError(f"Unknown alignment method: {alignment_method}")

        self.distance_threshold = distance_threshold
        self.angle_threshold = angle_threshold
        self.min_matched_minutiae = min_matched_minutiae
        self.alignment_method = alignment_method
        self.ransac_iterations = ransac_iterations
        self.random_state = random_state

    def match_minutiae(
        self,
        minutiae1: Sequence[Minutia],
        minutiae2: Sequence[Minutia]
    ) -> Tuple[float, List[MinutiaeMatch]]:
        """
        Match two minutiae sets.

        Args:
            minutiae1: First minutiae set
            minutiae2: Second minutiae set

        Returns:
            Tuple of (score, matched_pairs)
        """
        if len(minutiae1) == 0 or len(minutiae2) == 0:
            return 0.0, []

        points1 = minutiae_to_array(minutiae1)
        points2 = minutiae_to_array(minutiae2)

        if self.alignment_method == 'ransac':
            matches, _ = ransac_alignment(
                points1, points2,
                self.distance_threshold,
                self.angle_threshold,
                self.ransac_iterations,
                self.random_state
            )
        else:
            matches, _ = exhaustive_alignment(
                points1, points2,
                self.distance_threshold,
                self.angle_threshold
            )

        score = compute_matching_score(
            len(matches), len(minutiae1), len(minutiae2),
            self.min_matched_minutiae
        )

        return score, matches
