"""pytest fixtures for testing."""

import itertools
import threading
import time

import pytest

from jira_test_reporter.errors import ErrorCollection, IssueNotFoundError, TransportError
from jira_test_reporter.models.field_template import LabelsField, StringField
from jira_test_reporter.models.issue import RemoteIssue, SearchResult
from jira_test_reporter.models.job import Job, JobConfig
from jira_test_reporter.models.test_result import TestResult, TestStatus
from jira_test_reporter.services.field_resolver import FieldTemplateResolver
from jira_test_reporter.services.issue_mapping import IssueMappingStore
from jira_test_reporter.services.reconciler import ReconciliationEngine
from jira_test_reporter.services.tracker import IssueTracker


class FakeTracker(IssueTracker):
    """In-memory IssueTracker recording every call.

    Attributes:
        search_issues: Issues returned by every search.
        search_delay: Seconds each search blocks (simulates network latency).
        on_search: Optional callable invoked with the JQL inside search().
    """

    def __init__(self, search_issues=None, search_delay=0.0, on_search=None):
        self.search_issues = list(search_issues or [])
        self.search_delay = search_delay
        self.on_search = on_search
        self.searches = []
        self.created = []
        self.updates = []
        self.attachments = []
        self.fail_attachments = set()
        self._counter = itertools.count(101)
        self._lock = threading.Lock()

    def search(self, jql, max_results, start_at, fields):
        with self._lock:
            self.searches.append({"jql": jql, "max_results": max_results, "start_at": start_at})
        if self.on_search is not None:
            self.on_search(jql)
        if self.search_delay:
            time.sleep(self.search_delay)
        return SearchResult(total=len(self.search_issues), issues=list(self.search_issues))

    def create_issue(self, fields):
        with self._lock:
            key = f"QA-{next(self._counter)}"
            self.created.append((key, fields))
        return key

    def get_issue(self, issue_key):
        for key, fields in self.created:
            if key == issue_key:
                return RemoteIssue(key=key, summary=fields.get("summary", ""))
        raise IssueNotFoundError.for_key(issue_key)

    def update_issue(self, issue_key, fields):
        with self._lock:
            self.updates.append((issue_key, fields))

    def add_attachment(self, issue_key, filename, data):
        if filename in self.fail_attachments:
            raise TransportError([ErrorCollection(status=500, messages=["upload failed"])])
        with self._lock:
            self.attachments.append((issue_key, filename, data))


@pytest.fixture
def tracker():
    """Fake Jira tracker with an empty search result."""
    return FakeTracker()


@pytest.fixture
def job():
    """Sample CI job."""
    return Job(name="nightly", build_number="42", build_url="https://ci.example.com/job/nightly/42/")


@pytest.fixture
def failing_test():
    """Sample failing test result."""
    return TestResult(
        test_id="com.example.LoginTest.testLogin",
        name="testLogin",
        class_name="com.example.LoginTest",
        status=TestStatus.FAILED,
        stdout="starting login\n",
        stderr="",
        error_stack_trace="java.lang.AssertionError: expected 200 but was 500",
        error_details="expected 200 but was 500",
    )


@pytest.fixture
def resolver():
    """Resolver with a summary/description template set and one job."""
    templates = [
        StringField(field_key="summary", value="${TEST_FULL_NAME}"),
        StringField(field_key="description", value="${BUILD_URL}${CRLF}${TEST_STACK_TRACE}"),
    ]
    jobs = {
        "nightly": JobConfig(
            project_key="QA",
            issue_type="10004",
            fields=[LabelsField(values=["auto-test", "${JOB_NAME}"])],
        )
    }
    return FieldTemplateResolver(templates, jobs)


@pytest.fixture
def mapping_store():
    """Opened in-memory issue mapping store."""
    store = IssueMappingStore()
    store.open()
    yield store
    store.close()


@pytest.fixture
def engine(tracker, resolver, mapping_store):
    """Reconciliation engine wired to the fake tracker."""
    return ReconciliationEngine(tracker, resolver, mapping_store)


@pytest.fixture
def make_tracker():
    """Factory for fake trackers with custom search results or latency."""
    return FakeTracker
