"""
Template types and the template codec.
"""

from .template import (
    TEMPLATE_VERSION,
    Finger,
    Template,
    EnrollmentRecord
)
from .codec import (
    TEMPLATE_MAGIC,
    HEADER_DTYPE,
    RECORD_DTYPE,
    serialize_template,
    deserialize_template,
    TemplateCodec
)

__all__ = [
    'TEMPLATE_VERSION',
    'Finger',
    'Template',
    'EnrollmentRecord',
    'TEMPLATE_MAGIC',
    'HEADER_DTYPE',
    'RECORD_DTYPE',
    'serialize_template',
    'deserialize_template',
    'TemplateCodec',
]
