"""
Template matching: similarity scoring and the identification decision.
"""

from .interface import TemplateMatcher
from .engine import (
    MinutiaeTemplateMatcher,
    MatchEngine
)
from .decision import (
    Decision,
    MatchResult,
    DecisionPolicy
)

__all__ = [
    'TemplateMatcher',
    'MinutiaeTemplateMatcher',
    'MatchEngine',
    'Decision',
    'MatchResult',
    'DecisionPolicy',
]
