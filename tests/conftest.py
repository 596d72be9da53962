"""
Shared fixtures and builders for the fpident test suite.

Templates are built synthetically so matching and decision tests do not
depend on the extractor; scan images are synthetic ridge patterns.
"""

import math

import numpy as np
import pytest

from fpident.data.capture import RawScan
from fpident.errors import InsufficientQualityError
from fpident.minutiae.minutiae_extraction import Minutia, MinutiaeType
from fpident.template.template import Template
from fpident.utils.config import CodecConfig


def make_template(points, width=400, height=400):
    """
    Build a Template from (x, y, angle[, type[, quality]]) tuples.
    """
    minutiae = []
    for p in points:
        x, y, angle = p[:3]
        kind = p[3] if len(p) > 3 else MinutiaeType.ENDING
        quality = p[4] if len(p) > 4 else 0.8
        minutiae.append(Minutia(
            x=int(x), y=int(y), angle=float(angle) % (2 * math.pi),
            minutiae_type=kind, quality=quality
        ))
    return Template(minutiae=tuple(minutiae), width=width, height=height)


def random_points(seed, n=20, low=100, high=300):
    rng = np.random.RandomState(seed)
    kinds = [MinutiaeType.ENDING, MinutiaeType.BIFURCATION]
    return [
        (
            int(rng.randint(low, high)),
            int(rng.randint(low, high)),
            float(rng.uniform(0, 2 * math.pi)),
            kinds[int(rng.randint(2))],
            float(rng.uniform(0.3, 1.0)),
        )
        for _ in range(n)
    ]


def transform_points(points, rotation, tx, ty, center=(200, 200)):
    """Rotate points about center, then translate, rounding to pixels."""
    cx, cy = center
    cos_t, sin_t = math.cos(rotation), math.sin(rotation)
    moved = []
    for x, y, angle, kind, quality in points:
        nx = cx + (x - cx) * cos_t - (y - cy) * sin_t + tx
        ny = cy + (x - cx) * sin_t + (y - cy) * cos_t + ty
        moved.append((int(round(nx)), int(round(ny)), angle + rotation, kind, quality))
    return moved


def make_ridge_image(size=128, period=12, thickness=5):
    """
    Horizontal dark ridges on a light background.

    The right half is shifted by half a period, so every ridge ends in
    the middle of the image and a new one starts next to it.
    """
    image = np.full((size, size), 220, dtype=np.uint8)
    half = size // 2
    for y in range(size):
        if y % period < thickness:
            image[y, :half] = 40
        if (y + period // 2) % period < thickness:
            image[y, half:] = 40
    return image


@pytest.fixture
def template_a():
    return make_template(random_points(seed=1))


@pytest.fixture
def template_b():
    return make_template(random_points(seed=2))


@pytest.fixture
def ridge_image():
    return make_ridge_image()


@pytest.fixture
def ridge_scan(ridge_image):
    return RawScan.from_image(ridge_image)


@pytest.fixture
def ridge_codec_config():
    """Extraction settings that accept the small synthetic ridge image."""
    return CodecConfig(
        border_margin=8,
        spurious_distance=3,
        min_minutiae=1,
        max_minutiae=80
    )


class LookupCodec:
    """
    Codec stand-in mapping scan bytes to prepared templates.

    Unknown scans raise InsufficientQualityError.
    """

    def __init__(self, templates_by_data):
        self.templates_by_data = dict(templates_by_data)

    def encode(self, scan):
        try:
            return self.templates_by_data[scan.data]
        except KeyError:
            raise InsufficientQualityError("No features in scan") from None


def scan_of(label):
    """A tiny 4x4 RawScan carrying the label; only its bytes matter to LookupCodec."""
    return RawScan(width=4, height=4, data=label.encode().ljust(16, b".")[:16])
