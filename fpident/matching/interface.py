"""
Matcher interface definitions.

This module defines the base interface for template similarity functions,
giving the match engine a standardized API independent of the algorithm.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..template.template import Template


class TemplateMatcher(ABC):
    """
    Abstract base class for template matchers.

    Implementations must return a similarity in [0, 1] that is symmetric,
    equals 1.0 for a template compared with itself, and is a pure function
    of its two inputs.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the display name of the matcher.

        Returns:
            Human-readable name for logs
        """
        pass

    @property
    def description(self) -> str:
        """
        Return a description of the matcher.

        Returns:
            Description string
        """
        return ""

    @abstractmethod
    def similarity(self, template_a: Template, template_b: Template) -> float:
        """
        Compute similarity between two templates.

        Args:
            template_a: First template
            template_b: Second template

        Returns:
            Similarity score in [0, 1] (higher = more similar)
        """
        pass

    def explain(self) -> Dict[str, Any]:
        """
        Return explanation of the matcher's algorithm.

        Returns:
            Dictionary containing algorithm explanation and metadata
        """
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.get_current_parameters(),
        }

    def get_current_parameters(self) -> Dict[str, Any]:
        """
        Get current parameter values.

        Returns:
            Dictionary of parameter names to current values
        """
        return {}
