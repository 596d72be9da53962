"""
Match engine: pairwise template similarity and the 1:N scan.

The engine delegates pairwise comparison to a TemplateMatcher and scores
a query against every entry of a reference array, optionally on a thread
pool. Scores always come back in reference order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..minutiae.minutiae_matching import MinutiaeMatcher
from ..template.template import EnrollmentRecord, Template
from ..utils.config import MatchingConfig
from .interface import TemplateMatcher

logger = logging.getLogger(__name__)


class MinutiaeTemplateMatcher(TemplateMatcher):
    """
    Minutiae alignment matcher over templates.

    The two templates are put in canonical order before matching, so
    ``similarity(a, b) == similarity(b, a)`` holds exactly even though
    alignment itself is not order independent.
    """

    def __init__(
        self,
        distance_threshold: float = 15.0,
        angle_threshold: float = 0.26,
        min_matched_minutiae: int = 6,
        alignment_method: str = 'exhaustive',
        ransac_iterations: int = 500,
        random_state: Optional[int] = 42
    ):
        self.matcher = MinutiaeMatcher(
            distance_threshold=distance_threshold,
            angle_threshold=angle_threshold,
            min_matched_minutiae=min_matched_minutiae,
            alignment_method=alignment_method,
            ransac_iterations=ransac_iterations,
            random_state=random_state
        )

    @classmethod
    def from_config(cls, config: MatchingConfig) -> 'MinutiaeTemplateMatcher':
        return cls(
            distance_threshold=config.distance_threshold,
            angle_threshold=config.angle_threshold,
            min_matched_minutiae=config.min_matched_minutiae,
            alignment_method=config.alignment_method,
            ransac_iterations=config.ransac_iterations,
            random_state=config.random_state
        )

    @property
    def name(self) -> str:
        return "Minutiae"

    @property
    def description(self) -> str:
        return (
            "Aligns the minutiae sets on a reference pair, pairs minutiae "
            "within distance and angle tolerances and scores matched² / (n1 * n2)."
        )

    def similarity(self, template_a: Template, template_b: Template) -> float:
        if template_a == template_b:
            return 1.0

        first, second = template_a, template_b
        if second.canonical_key() < first.canonical_key():
            first, second = second, first

        score, _ = self.matcher.match_minutiae(first.minutiae, second.minutiae)
        return score

    def get_current_parameters(self) -> Dict[str, Any]:
        return {
            "distance_threshold": self.matcher.distance_threshold,
            "angle_threshold": self.matcher.angle_threshold,
            "min_matched_minutiae": self.matcher.min_matched_minutiae,
            "alignment_method": self.matcher.alignment_method,
            "ransac_iterations": self.matcher.ransac_iterations,
            "random_state": self.matcher.random_state,
        }


ReferenceEntry = Union[Template, EnrollmentRecord]


def _template_of(entry: ReferenceEntry) -> Template:
    if isinstance(entry, EnrollmentRecord):
        return entry.template
    return entry


class MatchEngine:
    """
    Scores queries against single templates or whole reference arrays.

    The engine is stateless between calls and safe to share between
    threads.
    """

    def __init__(
        self,
        matcher: Optional[TemplateMatcher] = None,
        num_workers: int = 1
    ):
        """
        Initialize the engine.

        Args:
            matcher: Pairwise similarity function (minutiae matcher if None)
            num_workers: Threads used by score_all (1 = sequential)
        """
        if num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {num_workers}")

        self.matcher = matcher or MinutiaeTemplateMatcher()
        self.num_workers = num_workers

    @classmethod
    def from_config(cls, config: MatchingConfig) -> 'MatchEngine':
        return cls(
            matcher=MinutiaeTemplateMatcher.from_config(config),
            num_workers=config.num_workers
        )

    def score(self, query: Template, reference: Template) -> float:
        """
        Similarity of two templates.

        Args:
            query: Freshly encoded template
            reference: Enrolled template

        Returns:
            Score in [0, 1]; symmetric, 1.0 for identical templates
        """
        score = float(self.matcher.similarity(query, reference))
        return min(1.0, max(0.0, score))

    def score_all(
        self,
        query: Template,
        references: Sequence[ReferenceEntry]
    ) -> Tuple[float, ...]:
        """
        Score a query against every entry of a reference array.

        Args:
            query: Freshly encoded template
            references: Templates or enrollment records, in array order

        Returns:
            One score per entry, in the same order
        """
        if len(references) == 0:
            return ()

        if self.num_workers == 1 or len(references) == 1:
            return tuple(self.score(query, _template_of(r)) for r in references)

        scores: List[Optional[float]] = [None] * len(references)

        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            futures = {
                executor.submit(self.score, query, _template_of(r)): i
                for i, r in enumerate(references)
            }
            for future in as_completed(futures):
                scores[futures[future]] = future.result()

        logger.debug(
            f"Scored query against {len(references)} references "
            f"with {self.num_workers} workers"
        )
        return tuple(scores)
