"""
Minutiae-based fingerprint recognition modules.

This package provides classical minutiae extraction and matching:
- Binarization and thinning (skeletonization)
- Minutiae extraction (crossing number method)
- Minutiae matching (alignment + correspondence)
"""

from .thinning import (
    zhang_suen_thinning,
    binarize_image,
    Thinner
)
from .minutiae_extraction import (
    MinutiaeType,
    Minutia,
    normalize_angle,
    crossing_number_map,
    estimate_minutia_orientation,
    extract_minutiae,
    remove_spurious_minutiae,
    filter_by_mask,
    limit_minutiae_count,
    MinutiaeExtractor
)
from .minutiae_matching import (
    MinutiaeMatch,
    minutiae_to_array,
    compute_transformation,
    apply_transformation,
    find_matching_pairs,
    exhaustive_alignment,
    ransac_alignment,
    compute_matching_score,
    MinutiaeMatcher
)

__all__ = [
    # Thinning
    'zhang_suen_thinning',
    'binarize_image',
    'Thinner',
    # Minutiae extraction
    'MinutiaeType',
    'Minutia',
    'normalize_angle',
    'crossing_number_map',
    'estimate_minutia_orientation',
    'extract_minutiae',
    'remove_spurious_minutiae',
    'filter_by_mask',
    'limit_minutiae_count',
    'MinutiaeExtractor',
    # Minutiae matching
    'MinutiaeMatch',
    'minutiae_to_array',
    'compute_transformation',
    'apply_transformation',
    'find_matching_pairs',
    'exhaustive_alignment',
    'ransac_alignment',
    'compute_matching_score',
    'MinutiaeMatcher',
]
