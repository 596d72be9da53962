"""
Fingerprint enhancement modules.

This package provides the orientation field estimation used by the
template codec:
- Block gradient orientation
- Doubled-angle smoothing and resizing
- Orientation coherence (minutia quality)
"""

from .orientation_field import (
    compute_gradients,
    block_sum,
    estimate_orientation_block,
    smooth_orientation_field,
    resize_orientation_field,
    resize_block_map,
    compute_coherence,
    OrientationFieldEstimator
)

__all__ = [
    'compute_gradients',
    'block_sum',
    'estimate_orientation_block',
    'smooth_orientation_field',
    'resize_orientation_field',
    'resize_block_map',
    'compute_coherence',
    'OrientationFieldEstimator',
]
