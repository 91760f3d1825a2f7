"""Configuration module for Jira Test Reporter.

Runtime settings come from environment variables; field templates and
per-job Jira settings come from a YAML file validated against SETTINGS_SCHEMA.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml
from jsonschema import ValidationError, validate

from jira_test_reporter.errors import ConfigurationError
from jira_test_reporter.models.field_template import (
    FieldTemplate,
    StringField,
    build_field_template,
)
from jira_test_reporter.models.job import JobConfig


_TRUE_VALUES = ("true", "1", "yes")

FIELD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["field"],
    "properties": {
        "field": {"type": "string", "minLength": 1},
        "type": {"enum": ["string", "select", "multiselect", "user", "labels"]},
        "value": {"type": ["string", "number"]},
        "values": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": False,
}

SETTINGS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "templates": {"type": "array", "items": FIELD_SCHEMA},
        "jobs": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["project_key", "issue_type"],
                "properties": {
                    "project_key": {"type": "string", "minLength": 1},
                    "issue_type": {"type": ["string", "integer"]},
                    "fields": {"type": "array", "items": FIELD_SCHEMA},
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}

DEFAULT_TEMPLATES: List[FieldTemplate] = [
    StringField(field_key="summary", value="${TEST_FULL_NAME}"),
    StringField(field_key="description", value="${BUILD_URL}${CRLF}${TEST_STACK_TRACE}"),
]


@dataclass
class ReporterSettings:
    """Field templates and job configuration.

    Attributes:
        templates: Global field templates, applied to every job in order.
        jobs: Job name to job configuration.
    """

    templates: List[FieldTemplate] = field(default_factory=lambda: list(DEFAULT_TEMPLATES))
    jobs: Dict[str, JobConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "ReporterSettings":
        """Build settings from parsed YAML.

        Raises:
            ConfigurationError: If the data does not match SETTINGS_SCHEMA.
        """
        data = data or {}
        try:
            validate(instance=data, schema=SETTINGS_SCHEMA)
        except ValidationError as e:
            location = "/".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigurationError(f"Invalid reporter settings at {location}: {e.message}") from e

        templates = [build_field_template(spec) for spec in data.get("templates", [])]
        jobs = {
            name: JobConfig(
                project_key=job["project_key"],
                issue_type=str(job["issue_type"]),
                fields=[build_field_template(spec) for spec in job.get("fields", [])],
            )
            for name, job in (data.get("jobs") or {}).items()
        }
        return cls(templates=templates or list(DEFAULT_TEMPLATES), jobs=jobs)


def load_settings(path: str) -> ReporterSettings:
    """Load reporter settings from a YAML file.

    Args:
        path: YAML file path.

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read reporter settings {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse reporter settings {path}: {e}") from e
    return ReporterSettings.from_dict(data)


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # Jira Configuration
    jira_server: str
    jira_user: str
    jira_api_token: str
    jira_timeout: int

    # Reporting Configuration
    settings_path: str
    junit_reports: List[str]
    job_name: str
    build_number: str | None
    build_url: str | None

    # Mapping Store Configuration
    mapping_db_dsn: str | None

    # Operational Configuration
    concurrency: int
    dry_run: bool
    verbose: bool

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Raises:
            ValueError: If required variables are missing or invalid.

        Returns:
            Config: Validated configuration instance.
        """
        # Jira Configuration
        jira_server = cls._get_required_env("JIRA_SERVER")
        if not jira_server.startswith("https://"):
            raise ValueError("JIRA_SERVER must be an HTTPS URL")

        jira_user = cls._get_required_env("JIRA_USER")
        jira_api_token = cls._get_required_env("JIRA_API_TOKEN")

        jira_timeout = int(os.getenv("JIRA_TIMEOUT", "30"))
        if not 1 <= jira_timeout <= 300:
            raise ValueError("JIRA_TIMEOUT must be between 1 and 300 seconds")

        # Reporting Configuration
        settings_path = cls._get_required_env("REPORTER_CONFIG")
        junit_reports = [
            pattern.strip()
            for pattern in cls._get_required_env("JUNIT_REPORTS").split(",")
            if pattern.strip()
        ]
        if not junit_reports:
            raise ValueError("JUNIT_REPORTS must contain at least one pattern")

        job_name = cls._get_required_env("JOB_NAME")
        build_number = os.getenv("BUILD_NUMBER") or None
        build_url = os.getenv("BUILD_URL") or None

        # Mapping Store Configuration
        mapping_db_dsn = os.getenv("MAPPING_DB_DSN") or None
        if mapping_db_dsn and not mapping_db_dsn.startswith("mysql://"):
            raise ValueError("MAPPING_DB_DSN must be a mysql:// URL")

        # Operational Configuration
        concurrency = int(os.getenv("RECONCILE_CONCURRENCY", "4"))
        if not 1 <= concurrency <= 32:
            raise ValueError("RECONCILE_CONCURRENCY must be between 1 and 32")

        dry_run = os.getenv("DRY_RUN", "false").lower() in _TRUE_VALUES
        verbose = os.getenv("VERBOSE", "false").lower() in _TRUE_VALUES

        return cls(
            jira_server=jira_server,
            jira_user=jira_user,
            jira_api_token=jira_api_token,
            jira_timeout=jira_timeout,
            settings_path=settings_path,
            junit_reports=junit_reports,
            job_name=job_name,
            build_number=build_number,
            build_url=build_url,
            mapping_db_dsn=mapping_db_dsn,
            concurrency=concurrency,
            dry_run=dry_run,
            verbose=verbose,
        )

    @staticmethod
    def _get_required_env(key: str) -> str:
        """Get required environment variable or raise ValueError.

        Args:
            key: Environment variable name.

        Returns:
            str: Environment variable value.

        Raises:
            ValueError: If environment variable is not set or empty.
        """
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Required environment variable {key} is not set")
        return value
