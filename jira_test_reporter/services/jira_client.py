"""Jira client service for issue management."""

import io
import logging
from typing import Any, Dict, Iterable

from jira import JIRA
from jira.exceptions import JIRAError

from jira_test_reporter.errors import IssueNotFoundError, TransportError
from jira_test_reporter.models.issue import RemoteIssue, SearchResult
from jira_test_reporter.services.tracker import IssueTracker
from jira_test_reporter.utils.retry import exponential_backoff_retry


logger = logging.getLogger(__name__)


def to_remote_issue(issue: Any) -> RemoteIssue:
    """Convert a jira.Issue resource into a RemoteIssue.

    Fields missing from the resource (not requested in the search) fall back
    to empty values.
    """
    fields = issue.fields
    project = getattr(fields, "project", None)
    issue_type = getattr(fields, "issuetype", None)
    status = getattr(fields, "status", None)

    return RemoteIssue(
        key=issue.key,
        summary=getattr(fields, "summary", "") or "",
        labels=list(getattr(fields, "labels", None) or []),
        project_key=getattr(project, "key", "") if project else "",
        issue_type_id=str(getattr(issue_type, "id", "")) if issue_type else "",
        status=getattr(status, "name", "") if status else "",
        resolved=getattr(fields, "resolution", None) is not None,
        created=getattr(fields, "created", "") or "",
        updated=getattr(fields, "updated", "") or "",
    )


class JiraClient(IssueTracker):
    """IssueTracker backed by the jira library.

    Read-only calls retry on rate limits and server errors. Calls that
    change Jira state are sent once; every failure surfaces as TransportError.
    """

    def __init__(
        self,
        server: str,
        user: str,
        token: str,
        timeout: int | None = None,
        jira: JIRA | None = None,
    ):
        """Initialize Jira client.

        Args:
            server: Jira server URL.
            user: Jira username or email.
            token: Jira API token.
            timeout: Per-request timeout in seconds (None for the library default).
            jira: Preconfigured JIRA instance (used instead of connecting).
        """
        self.server = server
        self.jira = jira or JIRA(server=server, basic_auth=(user, token), timeout=timeout)

    @exponential_backoff_retry()
    def _search_issues(self, jql: str, max_results: int, start_at: int, fields: str) -> Any:
        return self.jira.search_issues(
            jql, startAt=start_at, maxResults=max_results, fields=fields
        )

    def search(
        self, jql: str, max_results: int, start_at: int, fields: Iterable[str]
    ) -> SearchResult:
        """Run a JQL search.

        Args:
            jql: JQL query text.
            max_results: Page size.
            start_at: Offset of the first issue.
            fields: Field ids to return for each issue.

        Returns:
            SearchResult: Total count and the returned page.
        """
        try:
            issues = self._search_issues(jql, max_results, start_at, ",".join(fields))
        except JIRAError as e:
            logger.error(f"JQL search failed: {e.status_code} {e.text}")
            raise TransportError.from_jira_error(e) from e

        remote_issues = [to_remote_issue(issue) for issue in issues]
        total = getattr(issues, "total", None)
        return SearchResult(
            total=total if total is not None else len(remote_issues),
            issues=remote_issues,
        )

    def create_issue(self, fields: Dict[str, Any]) -> str:
        """Create a new Jira issue.

        Args:
            fields: Jira REST field values.

        Returns:
            str: Issue key (e.g., "QA-123").
        """
        try:
            new_issue = self.jira.create_issue(fields=fields)
        except JIRAError as e:
            logger.error(f"Failed to create Jira issue '{fields.get('summary')}': {e.text}")
            raise TransportError.from_jira_error(e) from e

        logger.info(f"Created Jira issue {new_issue.key}")
        return new_issue.key

    @exponential_backoff_retry()
    def _fetch_issue(self, issue_key: str, fields: str | None = None) -> Any:
        return self.jira.issue(issue_key, fields=fields)

    def get_issue(self, issue_key: str) -> RemoteIssue:
        """Fetch an existing issue.

        Raises:
            IssueNotFoundError: If Jira answers 404.
            TransportError: On any other Jira failure.
        """
        try:
            issue = self._fetch_issue(issue_key)
        except JIRAError as e:
            if e.status_code == 404:
                raise IssueNotFoundError.for_key(issue_key) from e
            raise TransportError.from_jira_error(e) from e
        return to_remote_issue(issue)

    def update_issue(self, issue_key: str, fields: Dict[str, Any]) -> None:
        """Set field values on an existing issue.

        Args:
            issue_key: Jira issue key.
            fields: Field id to new value.
        """
        try:
            issue = self._fetch_issue(issue_key, fields=",".join(fields))
            issue.update(fields=fields)
        except JIRAError as e:
            if e.status_code == 404:
                raise IssueNotFoundError.for_key(issue_key) from e
            logger.error(f"Failed to update {issue_key}: {e.text}")
            raise TransportError.from_jira_error(e) from e

        logger.info(f"Updated {', '.join(fields)} on {issue_key}")

    def add_attachment(self, issue_key: str, filename: str, data: bytes) -> None:
        """Attach data to an issue.

        Args:
            issue_key: Jira issue key.
            filename: Attachment file name shown in Jira.
            data: Attachment content.
        """
        try:
            self.jira.add_attachment(
                issue=issue_key, attachment=io.BytesIO(data), filename=filename
            )
        except JIRAError as e:
            logger.error(f"Failed to attach {filename} to {issue_key}: {e.text}")
            raise TransportError.from_jira_error(e) from e

        logger.info(f"Attached {filename} to {issue_key}")


def get_issue_url(server: str, issue_key: str) -> str:
    """Build the browse URL of an issue.

    Examples:
        >>> get_issue_url("https://jira.example.com/", "QA-1")
        'https://jira.example.com/browse/QA-1'
    """
    return f"{server.rstrip('/')}/browse/{issue_key}"
