"""CI job models."""

from dataclasses import dataclass, field
from typing import List

from jira_test_reporter.models.field_template import FieldTemplate


@dataclass(frozen=True)
class Job:
    """A CI job whose configuration governs issue creation.

    Attributes:
        name: Job identity (mapping key together with the test id).
        build_number: Number of the build being reported, if known.
        build_url: URL of the build being reported, if known.
    """

    name: str
    build_number: str | None = None
    build_url: str | None = None


@dataclass
class JobConfig:
    """Per-job issue settings.

    Attributes:
        project_key: Jira project that receives the issues (e.g. "QA").
        issue_type: Jira issue type id or name (e.g. "10004" or "Bug").
        fields: Ordered field templates overriding the global templates.
    """

    project_key: str
    issue_type: str
    fields: List[FieldTemplate] = field(default_factory=list)
