"""Upload captured test output to a Jira issue."""

import logging
from typing import List, Tuple

from jira_test_reporter.errors import TransportError
from jira_test_reporter.models.test_result import TestResult
from jira_test_reporter.services.tracker import IssueTracker


logger = logging.getLogger(__name__)


def diagnostic_blobs(test_result: TestResult) -> List[Tuple[str, str | None]]:
    """Return (attachment name, text) pairs in upload order."""
    return [
        ("stdout.out", test_result.stdout),
        ("stderr.out", test_result.stderr),
        ("stacktrace.out", test_result.error_stack_trace),
        ("details.out", test_result.error_details),
    ]


class AttachmentUploader:
    """Attaches stdout, stderr, stack trace and error details to an issue.

    Each upload is independent: blank text is skipped and a failed upload
    is logged without stopping the remaining ones.
    """

    def __init__(self, tracker: IssueTracker):
        self.tracker = tracker

    def upload(self, issue_key: str, test_result: TestResult) -> List[str]:
        """Upload every non-blank diagnostic blob of a test.

        Args:
            issue_key: Issue receiving the attachments.
            test_result: Test whose output is attached.

        Returns:
            List[str]: Names of the attachments uploaded successfully.
        """
        uploaded: List[str] = []
        for name, text in diagnostic_blobs(test_result):
            if not text or not text.strip():
                continue
            try:
                self.tracker.add_attachment(issue_key, name, text.encode("utf-8"))
            except TransportError as e:
                logger.warning(f"Could not attach {name} to {issue_key}: {e.report(' | ')}")
                continue
            uploaded.append(name)
        return uploaded
