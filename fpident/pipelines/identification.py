"""
Identification pipeline: capture -> encode -> load -> match -> decide.

Identification never writes to the store. Each call works on its own
snapshot of the reference array, and the index reported by the decision
maps back to a user only through that snapshot.
"""

import dataclasses
import logging

from ..data.capture import Sensor
from ..matching.decision import Decision, DecisionPolicy, MatchResult
from ..matching.engine import MatchEngine
from ..storage.store import TemplateStore, check_user_id
from ..template.codec import TemplateCodec
from ..template.template import Template
from .stages import Stage, run_stage

logger = logging.getLogger(__name__)


class IdentificationPipeline:
    """
    Identifies (1:N) or verifies (1:1) the person at the sensor.

    Attributes:
        sensor: Scan source
        codec: Template extractor
        store: Enrolled references
        engine: Similarity scoring
        policy: Decision thresholds
    """

    def __init__(
        self,
        sensor: Sensor,
        codec: TemplateCodec,
        store: TemplateStore,
        engine: MatchEngine,
        policy: DecisionPolicy
    ):
        self.sensor = sensor
        self.codec = codec
        self.store = store
        self.engine = engine
        self.policy = policy

    def _capture_query(self) -> Template:
        scan = run_stage(Stage.CAPTURING, self.sensor.capture)
        return run_stage(Stage.ENCODING, self.codec.encode, scan)

    def identify(self) -> MatchResult:
        """
        Capture one scan and identify it against every enrolled template.

        Returns:
            MatchResult; NO_MATCH and AMBIGUOUS are normal outcomes

        Raises:
            PipelineError: A stage failed; ``stage`` says which
        """
        return self.identify_template(self._capture_query())

    def identify_template(self, query: Template) -> MatchResult:
        """
        Identify an already encoded query against every enrolled template.

        Args:
            query: Freshly captured template

        Returns:
            MatchResult for this query

        Raises:
            PipelineError: Loading failed (store unavailable or corrupt row)
        """
        references = run_stage(Stage.LOADING, self.store.load_all)
        scores = run_stage(Stage.MATCHING, self.engine.score_all, query, references)
        result = run_stage(
            Stage.DECIDING,
            self.policy.decide,
            scores,
            [r.user_id for r in references]
        )

        logger.info(
            f"Identification against {len(references)} references: "
            f"{result.decision.value} (score={result.score:.3f}, "
            f"user={result.user_id})"
        )
        return result

    def verify(self, user_id: str) -> MatchResult:
        """
        Capture one scan and verify it against one user's templates (1:1).

        Args:
            user_id: Claimed identity

        Returns:
            MATCH with user_id set if the best score reaches the threshold,
            otherwise NO_MATCH (also when the user has no records)

        Raises:
            ValueError: If user_id is empty
            PipelineError: A stage failed; ``stage`` says which
        """
        check_user_id(user_id)

        query = self._capture_query()
        references = run_stage(Stage.LOADING, self.store.load_user, user_id)
        scores = run_stage(Stage.MATCHING, self.engine.score_all, query, references)
        result = run_stage(Stage.DECIDING, self.policy.verify, scores)

        if result.decision is Decision.MATCH:
            result = dataclasses.replace(result, user_id=user_id)

        logger.info(
            f"Verification of {user_id} against {len(references)} references: "
            f"{result.decision.value} (score={result.score:.3f})"
        )
        return result
