"""
Identification decision policy.

Turns the scores of a 1:N scan into exactly one outcome.

Rules, in order:
1. No scores                           -> NO_MATCH, no best index
2. best = highest score, lowest index on ties
3. best < match_threshold              -> NO_MATCH
4. no runner-up                        -> MATCH
5. best - runner_up < ambiguity_margin -> AMBIGUOUS
6. otherwise                           -> MATCH (user of best)

With ``distinct_users`` the runner-up is taken only among entries that
belong to a different user than the best entry, so several enrollments
of one user do not make each other ambiguous.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Optional, Sequence

from ..utils.config import DecisionConfig


class Decision(Enum):
    """Outcome of an identification or verification."""
    MATCH = "match"
    NO_MATCH = "no_match"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class MatchResult:
    """
    Result of one identification.

    Attributes:
        best_index: Index of the best-scoring reference, None if there were none
        score: Best score (0.0 if there were no references)
        decision: MATCH, NO_MATCH or AMBIGUOUS
        user_id: User of the best reference, set only for MATCH
        runner_up_index: Index used as runner-up, if any
        runner_up_score: Score of the runner-up, if any
    """
    best_index: Optional[int]
    score: float
    decision: Decision
    user_id: Optional[Hashable] = None
    runner_up_index: Optional[int] = None
    runner_up_score: Optional[float] = None

    @property
    def is_match(self) -> bool:
        return self.decision is Decision.MATCH

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and display."""
        return {
            "decision": self.decision.value,
            "user_id": self.user_id,
            "best_index": self.best_index,
            "score": self.score,
            "runner_up_index": self.runner_up_index,
            "runner_up_score": self.runner_up_score,
        }


class DecisionPolicy:
    """
    Threshold plus ambiguity-margin policy over 1:N scores.
    """

    def __init__(
        self,
        match_threshold: float = 0.4,
        ambiguity_margin: float = 0.05,
        distinct_users: bool = False
    ):
        """
        Initialize the policy.

        Args:
            match_threshold: Minimum best score for a match, in [0, 1]
            ambiguity_margin: Minimum lead over the runner-up, >= 0
            distinct_users: Take the runner-up only among other users

        Raises:
            ValueError: If a threshold is out of range
        """
        if not 0.0 <= match_threshold <= 1.0:
            raise ValueError(f"match_threshold must be in [0, 1], got {match_threshold}")
        if ambiguity_margin < 0.0:
            raise ValueError(f"ambiguity_margin must be >= 0, got {ambiguity_margin}")

        self.match_threshold = match_threshold
        self.ambiguity_margin = ambiguity_margin
        self.distinct_users = distinct_users

    @classmethod
    def from_config(cls, config: DecisionConfig) -> 'DecisionPolicy':
        return cls(
            match_threshold=config.match_threshold,
            ambiguity_margin=config.ambiguity_margin,
            distinct_users=config.distinct_users
        )

    def decide(
        self,
        scores: Sequence[float],
        user_ids: Optional[Sequence[Hashable]] = None
    ) -> MatchResult:
        """
        Decide the outcome of one 1:N scan.

        Args:
            scores: One score per reference, in reference order
            user_ids: User of each reference, same order as scores

        Returns:
            MatchResult with exactly one decision

        Raises:
            ValueError: If user_ids is given with a different length
        """
        if user_ids is not None and len(user_ids) != len(scores):
            raise ValueError(
                f"Got {len(scores)} scores but {len(user_ids)} user ids"
            )

        if len(scores) == 0:
            return MatchResult(best_index=None, score=0.0, decision=Decision.NO_MATCH)

        best_index = 0
        for i in range(1, len(scores)):
            if scores[i] > scores[best_index]:
                best_index = i
        best_score = float(scores[best_index])

        if best_score < self.match_threshold:
            return MatchResult(
                best_index=best_index, score=best_score, decision=Decision.NO_MATCH
            )

        best_user = user_ids[best_index] if user_ids is not None else None

        runner_up_index = None
        for i, score in enumerate(scores):
            if i == best_index:
                continue
            if self.distinct_users and user_ids is not None and user_ids[i] == best_user:
                continue
            if runner_up_index is None or score > scores[runner_up_index]:
                runner_up_index = i

        if runner_up_index is None:
            return MatchResult(
                best_index=best_index,
                score=best_score,
                decision=Decision.MATCH,
                user_id=best_user
            )

        runner_up_score = float(scores[runner_up_index])

        if best_score - runner_up_score < self.ambiguity_margin:
            decision = Decision.AMBIGUOUS
            best_user = None
        else:
            decision = Decision.MATCH

        return MatchResult(
            best_index=best_index,
            score=best_score,
            decision=decision,
            user_id=best_user,
            runner_up_index=runner_up_index,
            runner_up_score=runner_up_score
        )

    def verify(self, scores: Sequence[float]) -> MatchResult:
        """
        Decide a 1:1 verification against one user's references.

        Only the threshold applies; all candidates belong to the claimed
        user, so there is no ambiguity check.

        Args:
            scores: Scores against the claimed user's references

        Returns:
            MATCH if the best score reaches the threshold, else NO_MATCH
        """
        if len(scores) == 0:
            return MatchResult(best_index=None, score=0.0, decision=Decision.NO_MATCH)

        best_index = 0
        for i in range(1, len(scores)):
            if scores[i] > scores[best_index]:
                best_index = i
        best_score = float(scores[best_index])

        if best_score < self.match_threshold:
            decision = Decision.NO_MATCH
        else:
            decision = Decision.MATCH

        return MatchResult(best_index=best_index, score=best_score, decision=decision)
