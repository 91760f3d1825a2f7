"""Contract tests for idempotency.

Re-running the reporter for an already tracked test produces no Jira writes,
and a failed reconciliation leaves the mapping untouched.
"""

import pytest

from jira_test_reporter.errors import ConfigurationError, ErrorCollection, TransportError
from jira_test_reporter.models.job import Job
from jira_test_reporter.services.reconciler import ReconciliationEngine


def test_second_reconcile_is_a_no_op(engine, tracker, mapping_store, job, failing_test):
    """The second call for the same test returns None and creates nothing."""
    first = engine.reconcile(job, {}, failing_test)
    second = engine.reconcile(job, {}, failing_test)

    assert first == "QA-101"
    assert second is None
    assert len(tracker.created) == 1
    assert len(tracker.searches) == 1
    assert mapping_store.get("nightly", failing_test.test_id) == "QA-101"


def test_mapped_test_makes_no_remote_calls(engine, tracker, mapping_store, job, failing_test):
    """A mapping from a previous run short-circuits before any search."""
    mapping_store.put("nightly", failing_test.test_id, "QA-5")

    assert engine.reconcile(job, {}, failing_test) is None
    assert tracker.searches == []
    assert tracker.created == []
    assert tracker.attachments == []


def test_same_test_in_other_job_is_reconciled_separately(
    engine, tracker, resolver, mapping_store, job, failing_test
):
    """Mappings are per job: another job with the same test gets its own issue."""
    engine.reconcile(job, {}, failing_test)
    resolver.job_configs["weekly"] = resolver.job_configs["nightly"]

    second = engine.reconcile(Job(name="weekly"), {}, failing_test)

    assert second == "QA-102"
    assert mapping_store.get("weekly", failing_test.test_id) == "QA-102"


def test_search_failure_leaves_mapping_untouched(
    make_tracker, resolver, mapping_store, job, failing_test
):
    """TransportError from the search propagates and nothing is recorded."""

    def fail(jql):
        raise TransportError([ErrorCollection(status=503, messages=["Service Unavailable"])])

    tracker = make_tracker(on_search=fail)
    engine = ReconciliationEngine(tracker, resolver, mapping_store)

    with pytest.raises(TransportError, match="Error 503"):
        engine.reconcile(job, {}, failing_test)

    assert mapping_store.get("nightly", failing_test.test_id) is None
    assert tracker.created == []


def test_create_failure_leaves_mapping_untouched(engine, tracker, mapping_store, job, failing_test):
    """TransportError from create propagates and nothing is recorded."""

    def fail(fields):
        raise TransportError([ErrorCollection(status=400, messages=["summary: too long"])])

    tracker.create_issue = fail

    with pytest.raises(TransportError):
        engine.reconcile(job, {}, failing_test)

    assert mapping_store.get("nightly", failing_test.test_id) is None


def test_unconfigured_job_raises_configuration_error(engine, tracker, mapping_store, failing_test):
    """A job without Jira settings fails before any remote call."""
    with pytest.raises(ConfigurationError, match="No Jira configuration"):
        engine.reconcile(Job(name="unknown"), {}, failing_test)

    assert tracker.searches == []
    assert len(mapping_store) == 0


def test_attachment_failure_keeps_mapping(engine, tracker, mapping_store, job, failing_test):
    """An upload failure after creation still records the created issue."""
    tracker.fail_attachments = {"stdout.out"}

    issue_key = engine.reconcile(job, {}, failing_test)

    assert issue_key == "QA-101"
    assert mapping_store.get("nightly", failing_test.test_id) == "QA-101"
    assert [name for _, name, _ in tracker.attachments] == ["stacktrace.out", "details.out"]

    # A retry of the same test does not create a second issue
    assert engine.reconcile(job, {}, failing_test) is None
    assert len(tracker.created) == 1


def test_config_job_supplies_configuration_while_job_keys_mapping(
    engine, tracker, mapping_store, job, failing_test
):
    """A job without its own configuration reports through another job's settings."""
    pr_job = Job(name="nightly-pr-17")

    issue_key = engine.reconcile(pr_job, {}, failing_test, config_job=job)

    assert issue_key == "QA-101"
    fields = tracker.created[0][1]
    assert fields["project"] == {"key": "QA"}
    assert fields["labels"] == ["auto-test", "nightly-pr-17"]
    assert mapping_store.get("nightly-pr-17", failing_test.test_id) == "QA-101"
    assert mapping_store.get("nightly", failing_test.test_id) is None

    assert engine.reconcile(pr_job, {}, failing_test, config_job=job) is None
    assert len(tracker.created) == 1
