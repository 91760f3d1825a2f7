"""Jira issue models."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class RemoteIssue:
    """Issue as stored in Jira.

    Attributes:
        key: Issue key (e.g. "QA-123").
        summary: Issue summary line.
        labels: Labels currently set on the issue.
        project_key: Key of the owning project.
        issue_type_id: Id of the issue type.
        status: Status name (e.g. "Open").
        resolved: Whether the issue has a resolution.
        created: Creation timestamp as returned by Jira.
        updated: Last update timestamp as returned by Jira.
    """

    key: str
    summary: str
    labels: List[str] = field(default_factory=list)
    project_key: str = ""
    issue_type_id: str = ""
    status: str = ""
    resolved: bool = False
    created: str = ""
    updated: str = ""


@dataclass
class SearchResult:
    """Result of a JQL search.

    Attributes:
        total: Number of matching issues reported by Jira (may exceed len(issues)).
        issues: Issues in the returned page.
    """

    total: int = 0
    issues: List[RemoteIssue] = field(default_factory=list)


@dataclass
class IssueDescription:
    """Candidate issue: ordered field id to value mapping.

    Later assignments to the same field id replace earlier ones while the
    field keeps its original position.
    """

    fields: Dict[str, Any] = field(default_factory=dict)

    def set_field(self, field_key: str, value: Any) -> None:
        self.fields[field_key] = value

    def get(self, field_key: str, default: Any = None) -> Any:
        return self.fields.get(field_key, default)

    @property
    def project_key(self) -> str:
        return self.fields.get("project", {}).get("key", "")

    @property
    def summary(self) -> str:
        return str(self.fields.get("summary", ""))

    @property
    def labels(self) -> List[str]:
        return list(self.fields.get("labels") or [])

    def to_fields(self) -> Dict[str, Any]:
        """Return a copy suitable for the Jira create-issue call."""
        return dict(self.fields)


ISSUE_KEY_PATTERN = re.compile(r"^([A-Za-z][A-Za-z0-9_]*)-(\d+)$")


def issue_key_sort_key(issue_key: str) -> tuple:
    """Sort key ordering issue keys by project then issue number.

    Keys that do not look like PROJECT-123 sort after well formed ones,
    lexicographically.

    Examples:
        >>> sorted(["QA-10", "QA-9"], key=issue_key_sort_key)
        ['QA-9', 'QA-10']
    """
    match = ISSUE_KEY_PATTERN.match(issue_key)
    if match is None:
        return (1, issue_key, 0)
    return (0, match.group(1).upper(), int(match.group(2)))
