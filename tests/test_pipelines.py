"""
Tests for the enrollment and identification pipelines.

This test suite verifies:
- Enroll-then-identify with the same capture yields a match
- Stage failures abort the invocation with the failing stage recorded
- Identification never writes to the store
- The full stack (real codec, SQLite store) end to end

Run with: pytest tests/test_pipelines.py -v
"""

import logging

import pytest

from fpident.data.capture import ScanSequenceSensor
from fpident.errors import (
    CaptureError,
    CaptureFailure,
    InsufficientQualityError,
    MalformedTemplateError,
    PipelineError,
    StoreUnavailableError,
)
from fpident.matching.decision import Decision, DecisionPolicy
from fpident.matching.engine import MatchEngine
from fpident.pipelines import EnrollmentPipeline, IdentificationPipeline, Stage, run_stage
from fpident.storage.sqlite_store import SQLiteTemplateStore
from fpident.storage.store import MemoryTemplateStore
from fpident.template.codec import TemplateCodec
from fpident.template.template import Finger

from conftest import LookupCodec, make_template, random_points, scan_of


class UnavailableStore(MemoryTemplateStore):
    """Store whose backing storage is gone."""

    def load_all(self):
        raise StoreUnavailableError("database is locked")

    def load_user(self, user_id):
        raise StoreUnavailableError("database is locked")

    def append(self, user_id, template, finger=None):
        raise StoreUnavailableError("disk full")


class RecordingStore(MemoryTemplateStore):
    """Memory store counting writes."""

    def __init__(self):
        super().__init__()
        self.appends = 0

    def append(self, user_id, template, finger=None):
        self.appends += 1
        return super().append(user_id, template, finger)


@pytest.fixture
def templates():
    return {
        "alice": make_template(random_points(seed=11)),
        "bob": make_template(random_points(seed=12)),
        "carol": make_template(random_points(seed=13)),
    }


@pytest.fixture
def codec(templates):
    return LookupCodec({scan_of(name).data: t for name, t in templates.items()})


@pytest.fixture
def policy():
    return DecisionPolicy(match_threshold=0.5, ambiguity_margin=0.125)


def make_pipelines(scans, codec, store, policy):
    sensor = ScanSequenceSensor(scans)
    enrollment = EnrollmentPipeline(sensor, codec, store)
    identification = IdentificationPipeline(sensor, codec, store, MatchEngine(), policy)
    return sensor, enrollment, identification


class TestEnrollThenIdentify:

    def test_same_capture_identifies_enrolled_user(self, codec, policy):
        store = MemoryTemplateStore()
        _, enrollment, identification = make_pipelines(
            [scan_of("alice"), scan_of("alice")], codec, store, policy
        )

        record = enrollment.enroll("alice")
        result = identification.identify()

        assert result.decision is Decision.MATCH
        assert result.user_id == "alice"
        assert result.score == 1.0
        assert store.load_all()[result.best_index] == record

    def test_identifies_among_several_users(self, codec, policy):
        store = MemoryTemplateStore()
        scans = [scan_of("alice"), scan_of("bob"), scan_of("carol"), scan_of("bob")]
        _, enrollment, identification = make_pipelines(scans, codec, store, policy)

        for user in ("alice", "bob", "carol"):
            enrollment.enroll(user)
        result = identification.identify()

        assert result.decision is Decision.MATCH
        assert result.user_id == "bob"
        assert result.best_index == 1

    def test_empty_store_is_no_match(self, codec, policy):
        _, _, identification = make_pipelines(
            [scan_of("alice")], codec, MemoryTemplateStore(), policy
        )

        result = identification.identify()

        assert result.decision is Decision.NO_MATCH
        assert result.best_index is None

    def test_unenrolled_user_is_no_match(self, codec, policy):
        store = MemoryTemplateStore()
        _, enrollment, identification = make_pipelines(
            [scan_of("alice"), scan_of("carol")], codec, store, policy
        )

        enrollment.enroll("alice")
        result = identification.identify()

        assert result.decision is Decision.NO_MATCH
        assert result.user_id is None

    def test_duplicate_enrollment_is_ambiguous(self, codec, policy):
        store = MemoryTemplateStore()
        scans = [scan_of("alice"), scan_of("alice"), scan_of("alice")]
        _, enrollment, identification = make_pipelines(scans, codec, store, policy)

        enrollment.enroll("alice")
        enrollment.enroll("alice")
        result = identification.identify()

        assert result.decision is Decision.AMBIGUOUS

    def test_duplicate_enrollment_with_distinct_users(self, codec):
        store = MemoryTemplateStore()
        policy = DecisionPolicy(match_threshold=0.5, ambiguity_margin=0.125, distinct_users=True)
        scans = [scan_of("alice"), scan_of("alice"), scan_of("alice")]
        _, enrollment, identification = make_pipelines(scans, codec, store, policy)

        enrollment.enroll_many("alice", 2)
        result = identification.identify()

        assert result.decision is Decision.MATCH
        assert result.user_id == "alice"

    def test_identification_never_writes(self, codec, policy):
        store = RecordingStore()
        _, enrollment, identification = make_pipelines(
            [scan_of("alice")] * 4, codec, store, policy
        )

        enrollment.enroll("alice")
        for _ in range(3):
            identification.identify()

        assert store.appends == 1
        assert store.count() == 1

    def test_enrollment_records_finger(self, codec, policy):
        store = MemoryTemplateStore()
        _, enrollment, _ = make_pipelines([scan_of("alice")], codec, store, policy)

        record = enrollment.enroll("alice", Finger.LEFT_INDEX)

        assert record.finger is Finger.LEFT_INDEX
        assert store.load_all()[0].finger is Finger.LEFT_INDEX


class TestStageFailures:

    def test_capture_failure(self, codec, policy):
        store = MemoryTemplateStore()
        _, enrollment, _ = make_pipelines(
            [CaptureError(CaptureFailure.NO_FINGER)], codec, store, policy
        )

        with pytest.raises(PipelineError) as exc_info:
            enrollment.enroll("alice")

        error = exc_info.value
        assert error.stage is Stage.CAPTURING
        assert isinstance(error.__cause__, CaptureError)
        assert error.cause.reason is CaptureFailure.NO_FINGER
        assert error.retryable
        assert store.count() == 0

    def test_encoding_failure(self, codec, policy):
        store = MemoryTemplateStore()
        _, enrollment, _ = make_pipelines([scan_of("nobody")], codec, store, policy)

        with pytest.raises(PipelineError) as exc_info:
            enrollment.enroll("alice")

        assert exc_info.value.stage is Stage.ENCODING
        assert isinstance(exc_info.value.cause, InsufficientQualityError)
        assert exc_info.value.retryable
        assert store.count() == 0

    def test_persisting_failure(self, codec, policy):
        _, enrollment, _ = make_pipelines([scan_of("alice")], codec, UnavailableStore(), policy)

        with pytest.raises(PipelineError) as exc_info:
            enrollment.enroll("alice")

        assert exc_info.value.stage is Stage.PERSISTING
        assert not exc_info.value.retryable

    def test_loading_failure(self, codec, policy):
        _, _, identification = make_pipelines(
            [scan_of("alice")], codec, UnavailableStore(), policy
        )

        with pytest.raises(PipelineError) as exc_info:
            identification.identify()

        assert exc_info.value.stage is Stage.LOADING
        assert isinstance(exc_info.value.__cause__, StoreUnavailableError)

    def test_timeout_when_sensor_exhausted(self, codec, policy):
        _, _, identification = make_pipelines([], codec, MemoryTemplateStore(), policy)

        with pytest.raises(PipelineError) as exc_info:
            identification.identify()

        assert exc_info.value.cause.reason is CaptureFailure.TIMEOUT

    def test_enroll_many_stops_at_first_failure(self, codec, policy):
        store = MemoryTemplateStore()
        scans = [scan_of("alice"), CaptureError(CaptureFailure.RETRY), scan_of("alice")]
        sensor, enrollment, _ = make_pipelines(scans, codec, store, policy)

        with pytest.raises(PipelineError):
            enrollment.enroll_many("alice", 3)

        assert store.count() == 1
        assert sensor.remaining == 1

    def test_enroll_many_rejects_zero_count(self, codec, policy):
        _, enrollment, _ = make_pipelines([], codec, MemoryTemplateStore(), policy)

        with pytest.raises(ValueError):
            enrollment.enroll_many("alice", 0)

    def test_empty_user_id_rejected_before_capture(self, codec, policy):
        sensor, enrollment, _ = make_pipelines([scan_of("alice")], codec, MemoryTemplateStore(), policy)

        with pytest.raises(ValueError):
            enrollment.enroll("")

        assert sensor.remaining == 1

    def test_failure_is_logged_once(self, codec, policy, caplog):
        _, enrollment, _ = make_pipelines([scan_of("nobody")], codec, MemoryTemplateStore(), policy)

        with caplog.at_level(logging.WARNING, logger="fpident"):
            with pytest.raises(PipelineError):
                enrollment.enroll("alice")

        failures = [r for r in caplog.records if "encoding failed" in r.getMessage()]
        assert len(failures) == 1
        assert failures[0].levelno == logging.WARNING


class TestRunStage:

    def test_stages_are_the_failure_points(self):
        assert [s.value for s in Stage] == [
            "capturing", "encoding", "loading", "matching", "deciding", "persisting"
        ]

    def test_returns_value(self):
        assert run_stage(Stage.DECIDING, lambda a, b: a + b, 1, 2) == 3

    def test_other_exceptions_propagate_unwrapped(self):
        def boom():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            run_stage(Stage.MATCHING, boom)

    def test_pipeline_error_not_rewrapped(self):
        inner = PipelineError(Stage.LOADING, StoreUnavailableError("gone"))

        def fail():
            raise inner

        with pytest.raises(PipelineError) as exc_info:
            run_stage(Stage.MATCHING, fail)

        assert exc_info.value is inner

    def test_malformed_is_not_retryable(self):
        def fail():
            raise MalformedTemplateError("Row 3: bad magic")

        with pytest.raises(PipelineError) as exc_info:
            run_stage(Stage.LOADING, fail)

        assert exc_info.value.stage is Stage.LOADING
        assert not exc_info.value.retryable
        assert str(exc_info.value) == "loading failed: Row 3: bad magic"


class TestVerify:

    def test_verify_enrolled_user(self, codec, policy):
        store = MemoryTemplateStore()
        _, enrollment, identification = make_pipelines(
            [scan_of("alice"), scan_of("bob"), scan_of("alice")], codec, store, policy
        )
        enrollment.enroll("alice")
        enrollment.enroll("bob")

        result = identification.verify("alice")

        assert result.decision is Decision.MATCH
        assert result.user_id == "alice"

    def test_verify_wrong_user(self, codec, policy):
        store = MemoryTemplateStore()
        _, enrollment, identification = make_pipelines(
            [scan_of("alice"), scan_of("bob"), scan_of("alice")], codec, store, policy
        )
        enrollment.enroll("alice")
        enrollment.enroll("bob")

        result = identification.verify("bob")

        assert result.decision is Decision.NO_MATCH
        assert result.user_id is None

    def test_verify_unknown_user(self, codec, policy):
        _, _, identification = make_pipelines(
            [scan_of("alice")], codec, MemoryTemplateStore(), policy
        )

        assert identification.verify("alice").decision is Decision.NO_MATCH


class TestEndToEnd:
    """Real codec, matcher and SQLite store."""

    def test_enroll_and_identify_ridge_scan(self, tmp_path, ridge_scan, ridge_codec_config):
        store = SQLiteTemplateStore(tmp_path / "fingers.sqlite", create_schema=True)
        codec = TemplateCodec(ridge_codec_config)
        sensor = ScanSequenceSensor([ridge_scan, ridge_scan])
        policy = DecisionPolicy(match_threshold=0.5, ambiguity_margin=0.125)

        enrollment = EnrollmentPipeline(sensor, codec, store)
        identification = IdentificationPipeline(sensor, codec, store, MatchEngine(), policy)

        record = enrollment.enroll("alice", Finger.RIGHT_THUMB)
        result = identification.identify()

        assert result.decision is Decision.MATCH
        assert result.user_id == "alice"
        assert result.score == 1.0
        assert store.load_all() == (record,)
