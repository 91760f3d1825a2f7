"""Mapping from (job, test) to the Jira issue tracking the test failure."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Tuple

from jira_test_reporter.errors import MappingConflictError


logger = logging.getLogger(__name__)

MappingKey = Tuple[str, str]


class MappingPersistence(ABC):
    """Durable backend of the issue mapping store."""

    @abstractmethod
    def load_all(self) -> Iterable[Tuple[str, str, str]]:
        """Return every stored (job name, test id, issue key) entry."""
        raise NotImplementedError

    @abstractmethod
    def load(self, job_name: str, test_id: str) -> Optional[str]:
        """Return the stored issue key of (job name, test id), or None."""
        raise NotImplementedError

    @abstractmethod
    def save(self, job_name: str, test_id: str, issue_key: str, overwrite: bool = False) -> None:
        """Store the entry for (job name, test id).

        Without overwrite an entry stored with a different key (possibly by
        another process) is kept and MappingConflictError is raised.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, job_name: str, test_id: str) -> None:
        """Remove the entry for (job name, test id) if present."""
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources."""


class IssueMappingStore:
    """Keyed store of (job name, test id) -> issue key.

    Entries are cached in memory and written through to the optional
    persistence backend. A cache miss reads through to the backend, so
    entries written by other processes after open() are seen before any
    decision is taken. A pair never silently changes its issue key:
    put() with a different key requires overwrite=True. Several tests may
    map to the same issue.

    Example:
        >>> with IssueMappingStore() as store:
        ...     store.put("nightly", "com.example.LoginTest.testLogin", "QA-7")
        ...     store.get("nightly", "com.example.LoginTest.testLogin")
        'QA-7'
    """

    def __init__(self, persistence: Optional[MappingPersistence] = None):
        self.persistence = persistence
        self._entries: Dict[MappingKey, str] = {}
        self._lock = threading.Lock()
        self._opened = False

    def open(self) -> "IssueMappingStore":
        """Load existing entries from persistence.

        Returns:
            IssueMappingStore: self, for chaining.
        """
        with self._lock:
            if self.persistence is not None:
                for job_name, test_id, issue_key in self.persistence.load_all():
                    self._entries[(job_name, test_id)] = issue_key
            self._opened = True
            logger.info(f"Issue mapping store opened with {len(self._entries)} entries")
        return self

    def close(self) -> None:
        """Close the persistence backend."""
        with self._lock:
            if self.persistence is not None:
                self.persistence.close()
            self._opened = False

    def __enter__(self) -> "IssueMappingStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _lookup(self, job_name: str, test_id: str) -> Optional[str]:
        # Caller holds self._lock
        issue_key = self._entries.get((job_name, test_id))
        if issue_key is None and self.persistence is not None:
            issue_key = self.persistence.load(job_name, test_id)
            if issue_key is not None:
                self._entries[(job_name, test_id)] = issue_key
        return issue_key

    def get(self, job_name: str, test_id: str) -> Optional[str]:
        """Return the issue key mapped to the test, or None."""
        with self._lock:
            return self._lookup(job_name, test_id)

    def put(self, job_name: str, test_id: str, issue_key: str, overwrite: bool = False) -> None:
        """Map a test to an issue key.

        Repeating an existing mapping is a no-op.

        Args:
            job_name: Job identity.
            test_id: Test identity.
            issue_key: Jira issue key.
            overwrite: Replace a mapping to a different key instead of failing.

        Raises:
            MappingConflictError: If the test already maps to another key and overwrite is False.
        """
        with self._lock:
            current = self._lookup(job_name, test_id)
            if current == issue_key:
                return
            if current is not None and not overwrite:
                raise MappingConflictError(
                    f"{test_id} in {job_name} is already mapped to {current}, not {issue_key}"
                )
            # Persist first so a failed write leaves the cache untouched
            if self.persistence is not None:
                try:
                    self.persistence.save(job_name, test_id, issue_key, overwrite=overwrite)
                except MappingConflictError:
                    stored = self.persistence.load(job_name, test_id)
                    if stored is not None:
                        self._entries[(job_name, test_id)] = stored
                    raise
            self._entries[(job_name, test_id)] = issue_key

        logger.info(f"Mapped {test_id} in {job_name} to {issue_key}")

    def remove(self, job_name: str, test_id: str) -> bool:
        """Unlink a test from its issue.

        Returns:
            bool: True if a mapping was removed, False if none existed.
        """
        with self._lock:
            if self._lookup(job_name, test_id) is None:
                return False
            if self.persistence is not None:
                self.persistence.delete(job_name, test_id)
            del self._entries[(job_name, test_id)]

        logger.info(f"Removed issue mapping of {test_id} in {job_name}")
        return True

    def keys_for_job(self, job_name: str) -> Dict[str, str]:
        """Return test id -> issue key for every mapped test of a job."""
        with self._lock:
            return {
                test_id: issue_key
                for (name, test_id), issue_key in self._entries.items()
                if name == job_name
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
