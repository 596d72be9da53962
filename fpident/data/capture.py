"""
Sensor boundary for fingerprint capture.

A sensor delivers one raw scan per ``capture()`` call or raises
``CaptureError``. Hardware drivers live outside this package; the
sensors here read scans from image files or replay them from memory.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np

from ..errors import CaptureError, CaptureFailure
from ..utils.io import discover_images, load_image

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawScan:
    """
    An uninterpreted 8-bit grayscale scan, row-major.

    The shape is not validated here; the template codec rejects scans
    whose byte length differs from ``width * height``.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        data: ``width * height`` intensity bytes
    """
    width: int
    height: int
    data: bytes

    @classmethod
    def from_image(cls, image: np.ndarray) -> 'RawScan':
        """
        Build a scan from a 2D image array.

        Float images are taken to be in [0, 1] and scaled to uint8.
        """
        if image.ndim != 2:
            raise ValueError(f"Expected a 2D grayscale image, got shape {image.shape}")

        if image.dtype != np.uint8:
            image = (np.asarray(image, dtype=np.float64) * 255).clip(0, 255).astype(np.uint8)

        height, width = image.shape
        return cls(width=width, height=height, data=np.ascontiguousarray(image).tobytes())

    def to_image(self) -> np.ndarray:
        """
        View the scan as a (height, width) uint8 array.

        Raises:
            ValueError: If the byte length does not match the dimensions
        """
        if len(self.data) != self.width * self.height:
            raise ValueError(
                f"Scan holds {len(self.data)} bytes, expected "
                f"{self.width} x {self.height}"
            )
        return np.frombuffer(self.data, dtype=np.uint8).reshape(self.height, self.width)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width


class Sensor(ABC):
    """
    Abstract fingerprint sensor.

    Implementations block until a scan is available or a failure occurs.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def capture(self) -> RawScan:
        """
        Capture one scan.

        Returns:
            The captured RawScan

        Raises:
            CaptureError: No usable scan (timeout, no finger, device fault...)
        """
        pass


class ImageFileSensor(Sensor):
    """
    Sensor backed by image files.

    ``source`` is either a single image, returned on every capture, or a
    directory whose images are returned one per capture in sorted order.
    Running out of images is reported as ``NO_FINGER``.
    """

    def __init__(self, source: Union[str, Path]):
        self.source = Path(source)
        self._lock = threading.Lock()
        self._pending: Optional[List[Path]] = None

    def _next_path(self) -> Path:
        if not self.source.exists():
            raise CaptureError(
                CaptureFailure.DEVICE, f"Capture source not found: {self.source}"
            )

        if self.source.is_file():
            return self.source

        with self._lock:
            if self._pending is None:
                self._pending = discover_images(self.source)
                logger.debug(f"Found {len(self._pending)} scans in {self.source}")
            if not self._pending:
                raise CaptureError(
                    CaptureFailure.NO_FINGER, f"No more scans in {self.source}"
                )
            return self._pending.pop(0)

    def capture(self) -> RawScan:
        path = self._next_path()

        try:
            image = load_image(path)
        except (FileNotFoundError, ValueError) as e:
            raise CaptureError(CaptureFailure.DEVICE, str(e)) from e

        logger.debug(f"Captured {image.shape[1]}x{image.shape[0]} scan from {path}")
        return RawScan.from_image(image)


class ScanSequenceSensor(Sensor):
    """
    Sensor replaying a fixed sequence of outcomes.

    Each item is either a RawScan (returned) or a CaptureError (raised).
    An exhausted sequence raises ``CaptureError(TIMEOUT)``.
    """

    def __init__(self, outcomes: Iterable[Union[RawScan, CaptureError]]):
        self._outcomes = list(outcomes)
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        with self._lock:
            return len(self._outcomes)

    def capture(self) -> RawScan:
        with self._lock:
            if not self._outcomes:
                raise CaptureError(CaptureFailure.TIMEOUT)
            outcome = self._outcomes.pop(0)

        if isinstance(outcome, CaptureError):
            raise outcome
        return outcome
