"""Exception types raised by the reporter."""

from dataclasses import dataclass, field
from typing import List, Optional

from jira.exceptions import JIRAError


@dataclass
class ErrorCollection:
    """One status/messages group returned by Jira for a failed call.

    Attributes:
        status: HTTP status code (None when the call never got a response).
        messages: Error messages in the order Jira returned them.
    """

    status: Optional[int]
    messages: List[str] = field(default_factory=list)


class ReporterError(Exception):
    """Base class for all reporter errors."""


class TransportError(ReporterError):
    """Jira rejected or failed a call.

    Carries one or more ErrorCollection entries that can be flattened into a
    single report with report().
    """

    def __init__(self, errors: List[ErrorCollection]):
        self.errors = errors
        super().__init__(self.report(newline="; "))

    def report(self, newline: str = "\n") -> str:
        """Join all error collections into one human-readable string.

        Args:
            newline: Separator placed between lines (e.g. "<br>" for HTML).

        Returns:
            str: "Error <status>" followed by each message, per collection.
        """
        lines: List[str] = []
        for collection in self.errors:
            lines.append(f"Error {collection.status}")
            lines.extend(collection.messages)
        return newline.join(lines)

    @classmethod
    def from_jira_error(cls, error: JIRAError) -> "TransportError":
        """Build a TransportError from a JIRAError raised by the jira library.

        Prefers the errorMessages/errors body Jira sends with 4xx responses and
        falls back to the exception text.
        """
        messages: List[str] = []
        response = getattr(error, "response", None)
        if response is not None:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                messages.extend(str(m) for m in body.get("errorMessages") or [])
                messages.extend(str(m) for m in (body.get("errors") or {}).values())

        if not messages and error.text:
            messages.append(str(error.text))

        return cls([ErrorCollection(status=error.status_code, messages=messages)])


class IssueNotFoundError(TransportError):
    """Referenced issue key no longer exists on the Jira server."""

    @classmethod
    def for_key(cls, issue_key: str) -> "IssueNotFoundError":
        return cls([ErrorCollection(status=404, messages=[f"Issue {issue_key} not found"])])


class ConfigurationError(ReporterError):
    """Job lacks a required project key, issue type or field template."""


class FieldResolutionError(ConfigurationError):
    """A field template references a variable that cannot be resolved."""


class MappingConflictError(ReporterError):
    """A (job, test) pair is already mapped to a different issue key."""
