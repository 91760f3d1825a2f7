"""Search Jira for open issues that may duplicate a candidate issue."""

import logging

from jira_test_reporter.models.issue import IssueDescription, SearchResult
from jira_test_reporter.services.tracker import IssueTracker
from jira_test_reporter.utils.jql import build_duplicate_jql


logger = logging.getLogger(__name__)

MAX_RESULTS = 50
SEARCH_FIELDS = (
    "issueKey",
    "summary",
    "issuetype",
    "created",
    "updated",
    "project",
    "status",
    "labels",
)


class DuplicateFinder:
    """Look up unresolved issues whose text matches a candidate summary.

    Only the first MAX_RESULTS issues are returned; there is no pagination.
    """

    def __init__(self, tracker: IssueTracker):
        self.tracker = tracker

    def find(self, description: IssueDescription) -> SearchResult:
        """Search the candidate's project for possible duplicates.

        Args:
            description: Resolved candidate issue (project key and summary).

        Returns:
            SearchResult: Possibly empty search result.

        Raises:
            TransportError: If the search fails.
        """
        jql = build_duplicate_jql(description.project_key, description.summary)
        logger.info(f"Searching for duplicates: {jql}")
        return self.tracker.search(jql, MAX_RESULTS, 0, SEARCH_FIELDS)
