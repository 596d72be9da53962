"""
Template store interface and in-memory implementation.

A store persists enrollment records and hands out isolated snapshots of
all of them. Snapshots are tuples: a later append is never visible in a
snapshot that was already taken.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..template.template import EnrollmentRecord, Finger, Template

logger = logging.getLogger(__name__)


def check_user_id(user_id: str) -> None:
    """
    Raises:
        ValueError: If user_id is not a non-empty string
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValueError(f"user_id must be a non-empty string, got {user_id!r}")


class TemplateStore(ABC):
    """
    Abstract persistent collection of enrollment records.

    ``load_all`` and ``append`` are what the pipelines need; the other
    operations serve verification and administration.
    """

    def create_schema(self) -> None:
        """Prepare the backing storage. No-op unless the backend needs setup."""

    @abstractmethod
    def load_all(self) -> Tuple[EnrollmentRecord, ...]:
        """
        Snapshot every enrollment record, ordered by record id.

        Raises:
            StoreUnavailableError: The store could not be read
            MalformedTemplateError: A stored template is corrupt
        """
        pass

    @abstractmethod
    def append(
        self,
        user_id: str,
        template: Template,
        finger: Optional[Finger] = None
    ) -> EnrollmentRecord:
        """
        Persist one enrollment record.

        Returns:
            The stored record, with its record_id assigned

        Raises:
            StoreUnavailableError: The record could not be written
        """
        pass

    @abstractmethod
    def load_user(self, user_id: str) -> Tuple[EnrollmentRecord, ...]:
        """Snapshot the records of one user (empty if none)."""
        pass

    @abstractmethod
    def delete_user(self, user_id: str) -> int:
        """
        Remove every record of a user.

        Returns:
            Number of removed records
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored records."""
        pass


class MemoryTemplateStore(TemplateStore):
    """
    Process-local store, guarded by a lock.

    Useful for tests and for short-lived sessions that do not need
    persistence.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: List[EnrollmentRecord] = []
        self._next_id = 1

    def load_all(self) -> Tuple[EnrollmentRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def append(
        self,
        user_id: str,
        template: Template,
        finger: Optional[Finger] = None
    ) -> EnrollmentRecord:
        check_user_id(user_id)

        with self._lock:
            record = EnrollmentRecord(
                user_id=user_id,
                template=template,
                finger=finger,
                record_id=self._next_id
            )
            self._records.append(record)
            self._next_id += 1

        logger.debug(f"Stored record {record.record_id} for user {user_id}")
        return record

    def load_user(self, user_id: str) -> Tuple[EnrollmentRecord, ...]:
        with self._lock:
            return tuple(r for r in self._records if r.user_id == user_id)

    def delete_user(self, user_id: str) -> int:
        with self._lock:
            kept = [r for r in self._records if r.user_id != user_id]
            removed = len(self._records) - len(kept)
            self._records = kept

        logger.info(f"Deleted {removed} records for user {user_id}")
        return removed

    def count(self) -> int:
        with self._lock:
            return len(self._records)
