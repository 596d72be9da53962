"""
Enrollment pipeline: capture -> encode -> persist.
"""

import logging
from typing import List, Optional

from ..data.capture import Sensor
from ..storage.store import TemplateStore, check_user_id
from ..template.codec import TemplateCodec
from ..template.template import EnrollmentRecord, Finger
from .stages import Stage, run_stage

logger = logging.getLogger(__name__)


class EnrollmentPipeline:
    """
    Enrolls users by capturing a scan and storing its template.

    The pipeline keeps no per-request state, so one instance can serve
    concurrent requests.

    Attributes:
        sensor: Scan source
        codec: Template extractor
        store: Destination store
    """

    def __init__(
        self,
        sensor: Sensor,
        codec: TemplateCodec,
        store: TemplateStore
    ):
        self.sensor = sensor
        self.codec = codec
        self.store = store

    def enroll(
        self,
        user_id: str,
        finger: Optional[Finger] = None
    ) -> EnrollmentRecord:
        """
        Capture, encode and persist one template for a user.

        Args:
            user_id: User to enroll
            finger: Which finger is being scanned, if known

        Returns:
            The persisted EnrollmentRecord

        Raises:
            ValueError: If user_id is empty
            PipelineError: Capturing, encoding or persisting failed;
                ``stage`` says which
        """
        check_user_id(user_id)

        scan = run_stage(Stage.CAPTURING, self.sensor.capture)
        template = run_stage(Stage.ENCODING, self.codec.encode, scan)
        record = run_stage(Stage.PERSISTING, self.store.append, user_id, template, finger)

        logger.info(
            f"Enrolled {user_id} (record={record.record_id}, "
            f"minutiae={len(template)})"
        )
        return record

    def enroll_many(
        self,
        user_id: str,
        count: int,
        finger: Optional[Finger] = None
    ) -> List[EnrollmentRecord]:
        """
        Run ``count`` independent enrollment cycles for one user.

        Stops at the first failing cycle; records persisted by earlier
        cycles stay in the store.

        Args:
            user_id: User to enroll
            count: Number of scans to enroll (>= 1)
            finger: Which finger is being scanned, if known

        Returns:
            The persisted records, in enrollment order

        Raises:
            ValueError: If count < 1 or user_id is empty
            PipelineError: A cycle failed
        """
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")

        records = []
        for i in range(count):
            logger.info(f"Enrollment scan {i + 1}/{count} for {user_id}")
            records.append(self.enroll(user_id, finger))

        return records
