"""Issue tracker contract consumed by the reconciliation engine."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable

from jira_test_reporter.models.issue import RemoteIssue, SearchResult


class IssueTracker(ABC):
    """Blocking transport to the issue tracker.

    Every method may raise TransportError. Timeouts are the implementation's
    concern; callers never cancel a call in flight.
    """

    @abstractmethod
    def search(
        self, jql: str, max_results: int, start_at: int, fields: Iterable[str]
    ) -> SearchResult:
        """Run a JQL search and return one page of results."""
        raise NotImplementedError

    @abstractmethod
    def create_issue(self, fields: Dict[str, Any]) -> str:
        """Create an issue from Jira REST field values and return its key."""
        raise NotImplementedError

    @abstractmethod
    def get_issue(self, issue_key: str) -> RemoteIssue:
        """Fetch an issue.

        Raises:
            IssueNotFoundError: If the issue does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def update_issue(self, issue_key: str, fields: Dict[str, Any]) -> None:
        """Set field values on an existing issue."""
        raise NotImplementedError

    @abstractmethod
    def add_attachment(self, issue_key: str, filename: str, data: bytes) -> None:
        """Attach data to an issue under the given file name."""
        raise NotImplementedError
