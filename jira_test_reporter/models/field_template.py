"""Field templates used to populate Jira issues.

A template names a Jira field id and knows how to render its value for a
given set of variables (test details, build metadata, environment).
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Mapping

from jira_test_reporter.errors import FieldResolutionError


VARIABLE_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_.]*)\}")


def expand_variables(text: str, variables: Mapping[str, str]) -> str:
    """Replace every ${NAME} reference in text with its value.

    Args:
        text: Template text.
        variables: Variable name to value mapping.

    Returns:
        str: Text with all references replaced.

    Raises:
        FieldResolutionError: If a reference has no value in variables.

    Examples:
        >>> expand_variables("${TEST_NAME} failed", {"TEST_NAME": "testLogin"})
        'testLogin failed'
    """

    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in variables:
            raise FieldResolutionError(f"Unresolvable variable ${{{name}}} in {text!r}")
        return variables[name]

    return VARIABLE_PATTERN.sub(_substitute, text)


@dataclass
class FieldTemplate(ABC):
    """Base class for a Jira field template.

    Attributes:
        field_key: Jira field id (e.g. "summary", "labels", "customfield_10010").
    """

    field_key: str

    @abstractmethod
    def render(self, variables: Mapping[str, str]) -> Any:
        """Render the Jira REST value of this field."""


@dataclass
class StringField(FieldTemplate):
    """Free text field (summary, description, text custom fields)."""

    value: str = ""

    def render(self, variables: Mapping[str, str]) -> str:
        return expand_variables(self.value, variables)


@dataclass
class SelectableField(FieldTemplate):
    """Single select field, sent as {"id": value}."""

    value: str = ""

    def render(self, variables: Mapping[str, str]) -> dict:
        return {"id": expand_variables(self.value, variables)}


@dataclass
class SelectableArrayField(FieldTemplate):
    """Multi select field (components, versions), sent as [{"id": v}, ...]."""

    values: List[str] = field(default_factory=list)

    def render(self, variables: Mapping[str, str]) -> list[dict]:
        return [{"id": expand_variables(v, variables)} for v in self.values]


@dataclass
class UserField(FieldTemplate):
    """User picker field (assignee, reporter), sent as {"name": value}."""

    value: str = ""

    def render(self, variables: Mapping[str, str]) -> dict:
        return {"name": expand_variables(self.value, variables)}


@dataclass
class LabelsField(FieldTemplate):
    """Labels field. Jira labels cannot contain whitespace."""

    field_key: str = "labels"
    values: List[str] = field(default_factory=list)

    def render(self, variables: Mapping[str, str]) -> list[str]:
        labels = []
        for value in self.values:
            label = re.sub(r"\s+", "_", expand_variables(value, variables).strip())
            if label:
                labels.append(label)
        return labels


FIELD_TYPES: dict[str, type[FieldTemplate]] = {
    "string": StringField,
    "select": SelectableField,
    "multiselect": SelectableArrayField,
    "user": UserField,
    "labels": LabelsField,
}


def build_field_template(spec: Mapping[str, Any]) -> FieldTemplate:
    """Build a FieldTemplate from its configuration mapping.

    Args:
        spec: Mapping with "type", "field" and either "value" or "values".

    Returns:
        FieldTemplate: Template instance of the requested type.

    Raises:
        ValueError: If the type is unknown.
    """
    kind = spec.get("type", "string")
    template_cls = FIELD_TYPES.get(kind)
    if template_cls is None:
        raise ValueError(f"Unknown field template type: {kind}")

    if template_cls in (SelectableArrayField, LabelsField):
        return template_cls(field_key=spec["field"], values=list(spec.get("values", [])))
    return template_cls(field_key=spec["field"], value=str(spec.get("value", "")))
