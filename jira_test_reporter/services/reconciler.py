"""Reconcile failing tests with Jira issues.

For each failing test the engine walks CHECK_MAPPING -> CHECK_DUPLICATE ->
CREATE_OR_LINK while holding the lock of the test identity, so concurrent
publishers of the same test see each other's mapping before deciding to
create an issue.
"""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Set

from jira_test_reporter.errors import TransportError
from jira_test_reporter.models.issue import (
    IssueDescription,
    RemoteIssue,
    issue_key_sort_key,
)
from jira_test_reporter.models.job import Job
from jira_test_reporter.models.test_result import TestResult
from jira_test_reporter.services.attachments import AttachmentUploader
from jira_test_reporter.services.duplicate_finder import DuplicateFinder
from jira_test_reporter.services.field_resolver import FieldTemplateResolver
from jira_test_reporter.services.issue_mapping import IssueMappingStore
from jira_test_reporter.services.tracker import IssueTracker
from jira_test_reporter.utils.locks import KeyedLockRegistry


logger = logging.getLogger(__name__)

CREATED = "created"
LINKED = "linked"
MAPPED = "mapped"


@dataclass(frozen=True)
class ReconcileOutcome:
    """What reconciliation did for one test.

    Attributes:
        action: CREATED, LINKED (mapped to an existing duplicate) or MAPPED
            (mapping already present).
        issue_key: Issue now tracking the test.
    """

    action: str
    issue_key: str


def select_duplicate(issues: List[RemoteIssue], summary: str) -> Optional[RemoteIssue]:
    """Pick the authoritative duplicate among search results.

    Only an exact summary match counts. When several issues match, the one
    with the lowest issue key wins.

    Args:
        issues: Search results.
        summary: Candidate summary.

    Returns:
        Optional[RemoteIssue]: The duplicate, or None if nothing matches exactly.
    """
    matches = [issue for issue in issues if issue.summary == summary]
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            f"{len(matches)} open issues share summary '{summary}': "
            f"{', '.join(sorted((i.key for i in matches), key=issue_key_sort_key))}"
        )
    return min(matches, key=lambda issue: issue_key_sort_key(issue.key))


def merge_labels(existing: List[str], candidate: List[str]) -> List[str]:
    """Existing labels followed by candidate labels not already present.

    Examples:
        >>> merge_labels(["flaky"], ["auto", "flaky"])
        ['flaky', 'auto']
    """
    merged = list(existing)
    for label in candidate:
        if label not in merged:
            merged.append(label)
    return merged


class ReconciliationEngine:
    """Ensures each failing test is tracked by exactly one open Jira issue."""

    def __init__(
        self,
        tracker: IssueTracker,
        resolver: FieldTemplateResolver,
        mapping_store: IssueMappingStore,
        uploader: Optional[AttachmentUploader] = None,
        locks: Optional[KeyedLockRegistry] = None,
    ):
        """Initialize the engine.

        Args:
            tracker: Jira transport.
            resolver: Builds candidate issues from templates.
            mapping_store: Opened issue mapping store.
            uploader: Attachment uploader (defaults to one using tracker).
            locks: Per-test lock registry (shared between engines of one process).
        """
        self.tracker = tracker
        self.resolver = resolver
        self.mapping_store = mapping_store
        self.finder = DuplicateFinder(tracker)
        self.uploader = uploader if uploader is not None else AttachmentUploader(tracker)
        self.locks = locks if locks is not None else KeyedLockRegistry()

    def reconcile(
        self,
        job: Job,
        env_vars: Mapping[str, str],
        test_result: TestResult,
        config_job: Optional[Job] = None,
    ) -> Optional[str]:
        """Create the Jira issue of a failing test unless one is already tracked.

        Args:
            job: Job that ran the test; keys the mapping.
            env_vars: Environment of the build.
            test_result: Failing test.
            config_job: Job whose Jira configuration applies (defaults to job).

        Returns:
            Optional[str]: Key of the created issue; None if the test was already
            mapped or was linked to an existing duplicate.

        Raises:
            TransportError: If searching or creating fails (mapping untouched).
            ConfigurationError: If the job configuration is incomplete.
        """
        outcome = self.reconcile_outcome(job, env_vars, test_result, config_job)
        return outcome.issue_key if outcome.action == CREATED else None

    def reconcile_outcome(
        self,
        job: Job,
        env_vars: Mapping[str, str],
        test_result: TestResult,
        config_job: Optional[Job] = None,
    ) -> ReconcileOutcome:
        """Same as reconcile() but reports what was done and the tracking issue."""
        test_id = test_result.test_id
        with self.locks.lock(test_id):
            mapped_key = self.mapping_store.get(job.name, test_id)
            if mapped_key is not None:
                logger.debug(f"{test_id} in {job.name} already tracked by {mapped_key}")
                return ReconcileOutcome(MAPPED, mapped_key)

            description = self.resolver.resolve(job, test_result, env_vars, config_job)
            search_result = self.finder.find(description)

            duplicate = select_duplicate(search_result.issues, description.summary)
            if duplicate is not None:
                logger.info(
                    f"Ignoring creating issue '{description.summary}' as it would be "
                    f"a duplicate of {duplicate.key}"
                )
                self.mapping_store.put(job.name, test_id, duplicate.key)
                self._reconcile_labels(duplicate, description)
                return ReconcileOutcome(LINKED, duplicate.key)

            issue_key = self.tracker.create_issue(description.to_fields())
            # Recorded before attachments so a failed upload cannot cause a second issue
            self.mapping_store.put(job.name, test_id, issue_key)
            self.uploader.upload(issue_key, test_result)
            return ReconcileOutcome(CREATED, issue_key)

    def lookup_existing_issue_keys(
        self,
        job: Job,
        env_vars: Mapping[str, str],
        test_result: TestResult,
        config_job: Optional[Job] = None,
    ) -> Set[str]:
        """Find the issue keys related to a test without creating anything.

        The mapped issue wins when present; otherwise every open issue returned
        by the duplicate search is reported.

        Returns:
            Set[str]: Related issue keys (possibly empty).
        """
        test_id = test_result.test_id
        with self.locks.lock(test_id):
            mapped_key = self.mapping_store.get(job.name, test_id)
            if mapped_key:
                return {mapped_key}

            description = self.resolver.resolve(job, test_result, env_vars, config_job)
            search_result = self.finder.find(description)
            return {issue.key for issue in search_result.issues}

    def _reconcile_labels(self, issue: RemoteIssue, description: IssueDescription) -> None:
        """Add the candidate's labels to a linked duplicate.

        Failures are logged: the mapping is already recorded and the issue
        stays usable with its old labels.
        """
        merged = merge_labels(issue.labels, description.labels)
        if merged == issue.labels:
            logger.info(f"Labels of {issue.key} already up to date")
            return

        logger.info(f"Updating labels of {issue.key}: {issue.labels} -> {merged}")
        try:
            self.tracker.update_issue(issue.key, {"labels": merged})
        except TransportError as e:
            logger.warning(f"Label update on {issue.key} failed: {e.report(' | ')}")
