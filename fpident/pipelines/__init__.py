"""
Enrollment and identification pipelines.
"""

from .stages import Stage, run_stage
from .enrollment import EnrollmentPipeline
from .identification import IdentificationPipeline

__all__ = [
    'Stage',
    'run_stage',
    'EnrollmentPipeline',
    'IdentificationPipeline',
]
