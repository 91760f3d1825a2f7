"""Unit tests for configuration validation."""

import os

import pytest

from jira_test_reporter.config import DEFAULT_TEMPLATES, Config, ReporterSettings, load_settings
from jira_test_reporter.errors import ConfigurationError
from jira_test_reporter.models.field_template import LabelsField, StringField


BASE_ENV = {
    "JIRA_SERVER": "https://test.atlassian.net",
    "JIRA_USER": "test@example.com",
    "JIRA_API_TOKEN": "test_token",
    "REPORTER_CONFIG": "/etc/jira-test-reporter.yaml",
    "JUNIT_REPORTS": "build/test-results/**/*.xml, reports/*.xml",
    "JOB_NAME": "nightly",
}


@pytest.fixture
def base_env(monkeypatch):
    """Set all required environment variables and clear optional ones."""
    for key in (
        "BUILD_NUMBER",
        "BUILD_URL",
        "MAPPING_DB_DSN",
        "JIRA_TIMEOUT",
        "RECONCILE_CONCURRENCY",
        "DRY_RUN",
        "VERBOSE",
    ):
        monkeypatch.delenv(key, raising=False)
    for key, value in BASE_ENV.items():
        monkeypatch.setenv(key, value)
    return monkeypatch


def test_config_from_env_valid(base_env):
    """Test loading valid configuration from environment variables."""
    base_env.setenv("BUILD_NUMBER", "42")

    config = Config.from_env()

    assert config.jira_server == "https://test.atlassian.net"
    assert config.jira_timeout == 30  # Default
    assert config.junit_reports == ["build/test-results/**/*.xml", "reports/*.xml"]
    assert config.job_name == "nightly"
    assert config.build_number == "42"
    assert config.build_url is None
    assert config.mapping_db_dsn is None
    assert config.concurrency == 4  # Default
    assert config.dry_run is False  # Default


def test_config_missing_required_var(monkeypatch):
    """Test that missing required variable raises ValueError."""
    for key in list(os.environ.keys()):
        if key.startswith("JIRA_"):
            monkeypatch.delenv(key, raising=False)

    with pytest.raises(
        ValueError, match="Required environment variable JIRA_SERVER is not set"
    ):
        Config.from_env()


def test_config_invalid_jira_server(base_env):
    """Test that non-HTTPS Jira server raises ValueError."""
    base_env.setenv("JIRA_SERVER", "http://test.atlassian.net")

    with pytest.raises(ValueError, match="JIRA_SERVER must be an HTTPS URL"):
        Config.from_env()


def test_config_invalid_mapping_dsn(base_env):
    base_env.setenv("MAPPING_DB_DSN", "postgres://db/mappings")

    with pytest.raises(ValueError, match="MAPPING_DB_DSN must be a mysql:// URL"):
        Config.from_env()


@pytest.mark.parametrize("value", ["0", "33"])
def test_config_concurrency_range(base_env, value):
    base_env.setenv("RECONCILE_CONCURRENCY", value)

    with pytest.raises(ValueError, match="RECONCILE_CONCURRENCY must be between 1 and 32"):
        Config.from_env()


def test_config_dry_run_parsing(base_env):
    """Test that DRY_RUN boolean parsing works correctly."""
    for dry_run_value in ["true", "True", "TRUE", "1", "yes"]:
        base_env.setenv("DRY_RUN", dry_run_value)
        assert Config.from_env().dry_run is True, f"Expected True for DRY_RUN={dry_run_value}"

    for dry_run_value in ["false", "False", "FALSE", "0", "no", ""]:
        base_env.setenv("DRY_RUN", dry_run_value)
        assert Config.from_env().dry_run is False, f"Expected False for DRY_RUN={dry_run_value}"


def test_config_verbose_default(base_env):
    """Test that VERBOSE defaults to false."""
    assert Config.from_env().verbose is False


class TestReporterSettings:
    """Test loading field templates and job configuration."""

    def test_load_settings_from_yaml(self, tmp_path):
        path = tmp_path / "reporter.yaml"
        path.write_text(
            """
templates:
  - field: summary
    value: "${TEST_FULL_NAME}"
jobs:
  nightly:
    project_key: QA
    issue_type: 10004
    fields:
      - field: labels
        type: labels
        values: [auto-test]
""",
            encoding="utf-8",
        )

        settings = load_settings(str(path))

        assert settings.templates == [StringField("summary", "${TEST_FULL_NAME}")]
        job = settings.jobs["nightly"]
        assert job.project_key == "QA"
        assert job.issue_type == "10004"
        assert job.fields == [LabelsField(values=["auto-test"])]

    def test_empty_settings_use_default_templates(self):
        settings = ReporterSettings.from_dict(None)

        assert settings.templates == DEFAULT_TEMPLATES
        assert settings.jobs == {}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read reporter settings"):
            load_settings(str(tmp_path / "missing.yaml"))

    def test_malformed_yaml_raises(self, tmp_path):
        path = tmp_path / "reporter.yaml"
        path.write_text("jobs: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Cannot parse reporter settings"):
            load_settings(str(path))
