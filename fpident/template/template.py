"""
Template and enrollment record types.

A Template is the comparable, serializable feature set extracted from one
scan. An EnrollmentRecord ties a template to the user it was enrolled for.
"""

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from ..errors import MalformedTemplateError
from ..minutiae.minutiae_extraction import Minutia, MinutiaeType


TEMPLATE_VERSION = 1


class Finger(Enum):
    """The ten fingers, numbered as stored in the ``finger`` column."""
    LEFT_THUMB = 1
    LEFT_INDEX = 2
    LEFT_MIDDLE = 3
    LEFT_RING = 4
    LEFT_LITTLE = 5
    RIGHT_THUMB = 6
    RIGHT_INDEX = 7
    RIGHT_MIDDLE = 8
    RIGHT_RING = 9
    RIGHT_LITTLE = 10

    @classmethod
    def parse(cls, value: Union[str, int, 'Finger']) -> 'Finger':
        """
        Parse a finger from its name ("right-index", "RIGHT_INDEX") or number.

        Raises:
            ValueError: If the value names no finger
        """
        if isinstance(value, Finger):
            return value
        if isinstance(value, int):
            return cls(value)

        text = value.strip()
        if text.isdigit():
            return cls(int(text))

        key = text.upper().replace('-', '_').replace(' ', '_')
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown finger: {value!r}") from None


@dataclass(frozen=True)
class Template:
    """
    Immutable minutiae template.

    Attributes:
        minutiae: Ordered minutiae, at least one
        width: Width of the image the minutiae were extracted from
        height: Height of that image
        version: Serialization format version
    """
    minutiae: Tuple[Minutia, ...]
    width: int
    height: int
    version: int = TEMPLATE_VERSION

    def __post_init__(self):
        object.__setattr__(self, 'minutiae', tuple(self.minutiae))

        if self.width <= 0 or self.height <= 0:
            raise MalformedTemplateError(
                f"Template dimensions must be positive, got {self.width}x{self.height}"
            )
        if not self.minutiae:
            raise MalformedTemplateError("Template holds no minutiae")

        for index, m in enumerate(self.minutiae):
            if not isinstance(m.minutiae_type, MinutiaeType):
                raise MalformedTemplateError(f"Minutia {index} has no valid type")
            if not (isinstance(m.x, numbers.Integral) and isinstance(m.y, numbers.Integral)):
                raise MalformedTemplateError(
                    f"Minutia {index} coordinates must be integers, got ({m.x!r}, {m.y!r})"
                )
            if not (0 <= m.x < self.width and 0 <= m.y < self.height):
                raise MalformedTemplateError(
                    f"Minutia {index} at ({m.x}, {m.y}) lies outside "
                    f"{self.width}x{self.height}"
                )
            if not (math.isfinite(m.angle) and 0.0 <= m.angle < 2 * math.pi):
                raise MalformedTemplateError(f"Minutia {index} angle out of range: {m.angle}")
            if not (math.isfinite(m.quality) and 0.0 <= m.quality <= 1.0):
                raise MalformedTemplateError(
                    f"Minutia {index} quality out of range: {m.quality}"
                )

    def __len__(self) -> int:
        return len(self.minutiae)

    def canonical_key(self) -> tuple:
        """
        Total ordering key over template values.

        Used to put a pair of templates in a fixed order before matching.
        """
        return (
            self.version,
            self.width,
            self.height,
            tuple(
                (m.x, m.y, m.angle, m.minutiae_type.value, m.quality)
                for m in self.minutiae
            ),
        )


@dataclass(frozen=True)
class EnrollmentRecord:
    """
    A persisted template and the user it belongs to.

    Attributes:
        user_id: Enrolled user
        template: Enrolled template
        finger: Which finger was scanned, if known
        record_id: Store-assigned identifier, None before persistence
    """
    user_id: str
    template: Template
    finger: Optional[Finger] = None
    record_id: Optional[int] = None
