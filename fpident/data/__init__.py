"""
Data handling modules: sensor capture and scan preprocessing.
"""

from .capture import (
    RawScan,
    Sensor,
    ImageFileSensor,
    ScanSequenceSensor
)
from .preprocessing import (
    to_float_image,
    image_contrast,
    normalize_to_range,
    segment_fingerprint,
    adaptive_histogram_equalization,
    remove_background_gradient,
    resize_image,
    preprocess_fingerprint,
    FingerprintPreprocessor
)

__all__ = [
    # Capture
    'RawScan',
    'Sensor',
    'ImageFileSensor',
    'ScanSequenceSensor',
    # Preprocessing
    'to_float_image',
    'image_contrast',
    'normalize_to_range',
    'segment_fingerprint',
    'adaptive_histogram_equalization',
    'remove_background_gradient',
    'resize_image',
    'preprocess_fingerprint',
    'FingerprintPreprocessor',
]
