"""Resolve the Jira fields of a candidate issue for a failing test."""

import logging
from typing import Dict, Iterable, Mapping, Optional

from jira_test_reporter.errors import ConfigurationError
from jira_test_reporter.models.field_template import FieldTemplate
from jira_test_reporter.models.issue import IssueDescription
from jira_test_reporter.models.job import Job, JobConfig
from jira_test_reporter.models.test_result import TestResult


logger = logging.getLogger(__name__)


def build_variables(
    job: Job, test_result: TestResult, env_vars: Mapping[str, str]
) -> Dict[str, str]:
    """Build the variables available to field templates.

    Environment variables come first; test and build variables override
    environment variables with the same name.

    Args:
        job: Job being reported.
        test_result: Failing test.
        env_vars: Environment of the build.

    Returns:
        Dict[str, str]: Variable name to value.
    """
    variables = dict(env_vars)
    variables.update(
        {
            "JOB_NAME": job.name,
            "BUILD_NUMBER": job.build_number or env_vars.get("BUILD_NUMBER", ""),
            "BUILD_URL": job.build_url or env_vars.get("BUILD_URL", ""),
            "TEST_FULL_NAME": test_result.full_name,
            "TEST_NAME": test_result.name,
            "TEST_CLASS_NAME": test_result.class_name,
            "TEST_PACKAGE_NAME": test_result.package_name,
            "TEST_STDOUT": test_result.stdout or "",
            "TEST_STDERR": test_result.stderr or "",
            "TEST_STACK_TRACE": test_result.error_stack_trace or "",
            "TEST_ERROR_DETAILS": test_result.error_details or "",
            "CRLF": "\n",
        }
    )
    return variables


def issue_type_value(issue_type: str) -> Dict[str, str]:
    """Render an issue type as Jira expects it: numeric ids by id, else by name."""
    if issue_type.isdigit():
        return {"id": issue_type}
    return {"name": issue_type}


class FieldTemplateResolver:
    """Merge global field templates with per-job overrides.

    Global templates apply first, in order; job fields apply after them, in
    order. A later template for the same field id replaces the earlier value.
    """

    def __init__(
        self,
        global_templates: Iterable[FieldTemplate],
        job_configs: Mapping[str, JobConfig],
    ):
        self.global_templates = list(global_templates)
        self.job_configs = dict(job_configs)

    def job_config(self, job: Job) -> JobConfig:
        """Return the validated configuration of a job.

        Raises:
            ConfigurationError: If the job has no configuration, project key or issue type.
        """
        config = self.job_configs.get(job.name)
        if config is None:
            raise ConfigurationError(f"No Jira configuration for job {job.name}")
        if not config.project_key or not config.project_key.strip():
            raise ConfigurationError(f"Job {job.name} has no Jira project key")
        if not config.issue_type or not config.issue_type.strip():
            raise ConfigurationError(f"Job {job.name} has no Jira issue type")
        return config

    def resolve(
        self,
        job: Job,
        test_result: TestResult,
        env_vars: Mapping[str, str],
        config_job: Optional[Job] = None,
    ) -> IssueDescription:
        """Build the candidate issue for a failing test.

        Args:
            job: Job being reported; provides the build variables.
            test_result: Failing test.
            env_vars: Environment of the build.
            config_job: Job whose Jira configuration applies (defaults to job).

        Returns:
            IssueDescription: Fields for the Jira create call.

        Raises:
            ConfigurationError: On missing configuration or an empty summary.
            FieldResolutionError: If a template references an unknown variable.
        """
        config = self.job_config(config_job if config_job is not None else job)
        variables = build_variables(job, test_result, env_vars)

        description = IssueDescription()
        description.set_field("project", {"key": config.project_key})
        description.set_field("issuetype", issue_type_value(config.issue_type))

        for template in [*self.global_templates, *config.fields]:
            if not template.field_key:
                raise ConfigurationError(f"Field template without field id in job {job.name}")
            description.set_field(template.field_key, template.render(variables))

        if not description.summary.strip():
            raise ConfigurationError(
                f"No summary template resolves for job {job.name}; summary is required"
            )

        logger.debug(
            f"Resolved {len(description.fields)} fields for {test_result.test_id} in {job.name}"
        )
        return description
