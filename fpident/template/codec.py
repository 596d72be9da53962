"""
Template codec: raw scan to Template, Template to bytes and back.

Extraction pipeline:
1. Validate the raw scan structure
2. Reject blank / low-contrast scans
3. Preprocess (background removal, CLAHE, segmentation)
4. Estimate orientation field and coherence
5. Binarize and thin
6. Detect and filter minutiae (crossing number)

Every step is deterministic, so equal scans encode to equal templates.
"""

import logging
from typing import Optional, Union

import cv2
import numpy as np

from ..data.capture import RawScan
from ..data.preprocessing import FingerprintPreprocessor, image_contrast
from ..enhancement.orientation_field import OrientationFieldEstimator
from ..errors import InsufficientQualityError, MalformedTemplateError
from ..minutiae.minutiae_extraction import Minutia, MinutiaeExtractor, MinutiaeType
from ..minutiae.thinning import Thinner
from ..utils.config import CodecConfig
from .template import TEMPLATE_VERSION, Template

logger = logging.getLogger(__name__)


# =============================================================================
# BINARY FORMAT
# =============================================================================
#
# Little-endian, no padding.
#
# Header (16 bytes):
#   magic    3s   b"FPT"
#   version  u1
#   width    u4
#   height   u4
#   count    u4   number of minutia records, >= 1
#
# Minutia record (25 bytes), repeated `count` times:
#   x        i4
#   y        i4
#   angle    f8   radians, [0, 2π)
#   kind     u1   1 = ending, 3 = bifurcation
#   quality  f8   [0, 1]
# =============================================================================


TEMPLATE_MAGIC = b"FPT"

HEADER_DTYPE = np.dtype([
    ('magic', 'S3'),
    ('version', 'u1'),
    ('width', '<u4'),
    ('height', '<u4'),
    ('count', '<u4'),
])

RECORD_DTYPE = np.dtype([
    ('x', '<i4'),
    ('y', '<i4'),
    ('angle', '<f8'),
    ('kind', 'u1'),
    ('quality', '<f8'),
])

_KIND_CODES = {t.value for t in MinutiaeType}


def serialize_template(template: Template) -> bytes:
    """
    Serialize a template to its binary form.

    Args:
        template: Template to serialize

    Returns:
        Header followed by one record per minutia
    """
    header = np.zeros(1, dtype=HEADER_DTYPE)
    header['magic'] = TEMPLATE_MAGIC
    header['version'] = template.version
    header['width'] = template.width
    header['height'] = template.height
    header['count'] = len(template.minutiae)

    records = np.zeros(len(template.minutiae), dtype=RECORD_DTYPE)
    for i, m in enumerate(template.minutiae):
        records[i] = (m.x, m.y, m.angle, m.minutiae_type.value, m.quality)

    return header.tobytes() + records.tobytes()


def deserialize_template(blob: Union[bytes, bytearray, memoryview]) -> Template:
    """
    Parse a template from its binary form.

    Args:
        blob: Bytes produced by serialize_template

    Returns:
        The decoded Template

    Raises:
        MalformedTemplateError: Wrong magic or version, size mismatch,
            empty minutiae set, unknown type codes or out-of-range values
    """
    blob = bytes(blob)

    if len(blob) < HEADER_DTYPE.itemsize:
        raise MalformedTemplateError(
            f"Template blob too short: {len(blob)} bytes, header needs "
            f"{HEADER_DTYPE.itemsize}"
        )

    header = np.frombuffer(blob, dtype=HEADER_DTYPE, count=1)[0]

    if header['magic'] != TEMPLATE_MAGIC:
        raise MalformedTemplateError(f"Bad template magic: {header['magic']!r}")
    if header['version'] != TEMPLATE_VERSION:
        raise MalformedTemplateError(f"Unsupported template version: {header['version']}")

    count = int(header['count'])
    if count == 0:
        raise MalformedTemplateError("Template holds no minutiae")

    expected = HEADER_DTYPE.itemsize + count * RECORD_DTYPE.itemsize
    if len(blob) != expected:
        raise MalformedTemplateError(
            f"Template blob is {len(blob)} bytes, header declares {expected}"
        )

    records = np.frombuffer(
        blob, dtype=RECORD_DTYPE, count=count, offset=HEADER_DTYPE.itemsize
    )

    unknown = set(records['kind'].tolist()) - _KIND_CODES
    if unknown:
        raise MalformedTemplateError(f"Unknown minutia type codes: {sorted(unknown)}")
    if not (np.all(np.isfinite(records['angle'])) and np.all(np.isfinite(records['quality']))):
        raise MalformedTemplateError("Template contains non-finite values")

    minutiae = tuple(
        Minutia(
            x=int(r['x']),
            y=int(r['y']),
            angle=float(r['angle']),
            minutiae_type=MinutiaeType(int(r['kind'])),
            quality=float(r['quality'])
        )
        for r in records
    )

    # Template validates coordinates and value ranges
    return Template(
        minutiae=minutiae,
        width=int(header['width']),
        height=int(header['height']),
        version=int(header['version'])
    )


class TemplateCodec:
    """
    Converts raw scans into templates and templates to and from bytes.

    The codec holds only configuration, so one instance can be shared
    between threads.
    """

    def __init__(
        self,
        config: Optional[CodecConfig] = None
    ):
        """
        Initialize the codec.

        Args:
            config: Extraction settings (defaults if None)
        """
        self.config = config or CodecConfig()

        self.preprocessor = FingerprintPreprocessor(
            target_size=self.config.target_size,
            equalize=self.config.equalize,
            segment=self.config.segment,
            remove_gradient=self.config.remove_gradient,
            block_size=self.config.block_size
        )
        self.orientation_estimator = OrientationFieldEstimator(
            block_size=self.config.block_size
        )
        self.thinner = Thinner(binarization_method=self.config.binarization_method)
        self.extractor = MinutiaeExtractor(
            border_margin=self.config.border_margin,
            spurious_distance=self.config.spurious_distance,
            max_minutiae=self.config.max_minutiae
        )

    def _validate_scan(self, scan: RawScan) -> np.ndarray:
        if scan.width <= 0 or scan.height <= 0:
            raise MalformedTemplateError(
                f"Scan dimensions must be positive, got {scan.width}x{scan.height}"
            )
        if len(scan.data) != scan.width * scan.height:
            raise MalformedTemplateError(
                f"Scan holds {len(scan.data)} bytes, expected "
                f"{scan.width * scan.height} for {scan.width}x{scan.height}"
            )
        return scan.to_image()

    def encode(self, scan: RawScan) -> Template:
        """
        Extract a template from a raw scan.

        Args:
            scan: Captured 8-bit grayscale scan

        Returns:
            Template with between min_minutiae and max_minutiae minutiae

        Raises:
            MalformedTemplateError: Zero dimensions or wrong byte length
            InsufficientQualityError: Blank, too small or featureless scan
        """
        image = self._validate_scan(scan)

        contrast = image_contrast(image)
        if contrast < self.config.min_contrast:
            raise InsufficientQualityError(
                f"Scan contrast {contrast:.3f} below {self.config.min_contrast}"
            )

        block_size = self.config.block_size
        width, height = self.config.target_size or (scan.width, scan.height)
        if min(width, height) < block_size:
            raise InsufficientQualityError(
                f"Scan {width}x{height} is smaller than one {block_size}px block"
            )

        image, mask = self.preprocessor(image)

        if mask is not None:
            # Ridges cut by the segmentation border end abruptly
            kernel = np.ones((block_size, block_size), dtype=np.uint8)
            mask = cv2.erode(mask, kernel)

        orientation, coherence = self.orientation_estimator.estimate(
            image, compute_coherence_map=True
        )
        skeleton = self.thinner.process(image)
        minutiae = self.extractor.extract(skeleton, mask, orientation, coherence)

        logger.debug(
            f"Extracted {len(minutiae)} minutiae from "
            f"{image.shape[1]}x{image.shape[0]} scan"
        )

        if len(minutiae) < self.config.min_minutiae:
            raise InsufficientQualityError(
                f"Found {len(minutiae)} minutiae, need at least "
                f"{self.config.min_minutiae}"
            )

        return Template(
            minutiae=tuple(minutiae),
            width=image.shape[1],
            height=image.shape[0]
        )

    def serialize(self, template: Template) -> bytes:
        """Serialize a template (see serialize_template)."""
        return serialize_template(template)

    def decode(self, blob: Union[bytes, bytearray, memoryview]) -> Template:
        """Parse a serialized template (see deserialize_template)."""
        return deserialize_template(blob)
