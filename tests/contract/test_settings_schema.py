"""Contract tests for the reporter settings file.

Validates that documented settings pass SETTINGS_SCHEMA and malformed ones
are rejected with a ConfigurationError naming the offending location.
"""

import pytest
import yaml
from jsonschema import validate

from jira_test_reporter.config import SETTINGS_SCHEMA, ReporterSettings
from jira_test_reporter.errors import ConfigurationError


DOCUMENTED_SETTINGS = """
templates:
  - field: summary
    value: "${TEST_FULL_NAME}"
  - field: description
    value: "${BUILD_URL}${CRLF}${TEST_STACK_TRACE}"
jobs:
  nightly:
    project_key: QA
    issue_type: "10004"
    fields:
      - field: labels
        type: labels
        values: [auto-test, "${JOB_NAME}"]
      - field: components
        type: multiselect
        values: ["10100"]
      - field: assignee
        type: user
        value: qa-bot
      - field: priority
        type: select
        value: 3
"""


def test_documented_settings_are_valid():
    data = yaml.safe_load(DOCUMENTED_SETTINGS)

    validate(instance=data, schema=SETTINGS_SCHEMA)
    settings = ReporterSettings.from_dict(data)

    assert [t.field_key for t in settings.jobs["nightly"].fields] == [
        "labels",
        "components",
        "assignee",
        "priority",
    ]


@pytest.mark.parametrize(
    "data, location",
    [
        ({"jobs": {"nightly": {"issue_type": "1"}}}, "jobs/nightly"),
        ({"jobs": {"nightly": {"project_key": "", "issue_type": "1"}}}, "jobs/nightly/project_key"),
        ({"templates": [{"value": "no field id"}]}, "templates/0"),
        ({"templates": [{"field": "x", "type": "cascade"}]}, "templates/0/type"),
        ({"unexpected": True}, "<root>"),
    ],
)
def test_invalid_settings_are_rejected(data, location):
    with pytest.raises(ConfigurationError, match=f"Invalid reporter settings at {location}"):
        ReporterSettings.from_dict(data)
