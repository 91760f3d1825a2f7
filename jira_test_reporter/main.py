"""Main entry point for Jira Test Reporter."""

import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Mapping

from jira_test_reporter.config import Config, load_settings
from jira_test_reporter.models.job import Job
from jira_test_reporter.models.test_result import TestResult
from jira_test_reporter.services.database import MySQLMappingPersistence
from jira_test_reporter.services.field_resolver import FieldTemplateResolver
from jira_test_reporter.services.issue_mapping import IssueMappingStore
from jira_test_reporter.services.jira_client import JiraClient, get_issue_url
from jira_test_reporter.services.junit_reader import read_junit_reports
from jira_test_reporter.services.logger import (
    log_reconcile_result,
    log_run_summary,
    setup_logging,
)
from jira_test_reporter.services.reconciler import CREATED, ReconciliationEngine


logger = logging.getLogger(__name__)


def process_test(
    test_result: TestResult,
    job: Job,
    env_vars: Mapping[str, str],
    engine: ReconciliationEngine,
    config: Config,
) -> str:
    """Reconcile a single failing test.

    Args:
        test_result: Failing test.
        job: Job being reported.
        env_vars: Environment of the build.
        engine: Reconciliation engine.
        config: Application configuration.

    Returns:
        str: Action taken (created, linked, mapped or dry_run).
    """
    test_start = time.time()

    if config.dry_run:
        issue_keys = engine.lookup_existing_issue_keys(job, env_vars, test_result)
        logger.info(
            f"DRY_RUN: {test_result.test_id} related issues: {sorted(issue_keys) or 'none'}"
        )
        action = "dry_run"
    else:
        outcome = engine.reconcile_outcome(job, env_vars, test_result)
        if outcome.action == CREATED:
            logger.info(
                f"Created {get_issue_url(config.jira_server, outcome.issue_key)} "
                f"for {test_result.test_id}"
            )
        action = outcome.action
        issue_keys = {outcome.issue_key}

    log_reconcile_result(
        job_name=job.name,
        test_id=test_result.test_id,
        action=action,
        issue_keys=sorted(issue_keys),
        duration_ms=int((time.time() - test_start) * 1000),
    )
    return action


def main() -> int:
    """Main execution function.

    Returns:
        int: Exit code (0 for success, 1 if any test could not be reconciled).
    """
    start_time = time.time()

    setup_logging(verbose=os.getenv("VERBOSE", "false").lower() in ("true", "1", "yes"))
    logger.info("Starting Jira Test Reporter")

    try:
        config = Config.from_env()
        settings = load_settings(config.settings_path)
        logger.info(
            f"Configuration loaded: {len(settings.templates)} field templates, "
            f"{len(settings.jobs)} jobs"
        )

        if config.dry_run:
            logger.info("DRY_RUN mode enabled - no Jira issues or mappings will be written")

        job = Job(
            name=config.job_name,
            build_number=config.build_number,
            build_url=config.build_url,
        )
        env_vars = dict(os.environ)

        test_results = read_junit_reports(config.junit_reports)
        failed_tests = [t for t in test_results if t.is_failed()]
        logger.info(f"Loaded {len(test_results)} test cases, {len(failed_tests)} failing")

        persistence = None
        if config.mapping_db_dsn:
            persistence = MySQLMappingPersistence(config.mapping_db_dsn)
            persistence.ensure_schema()

        tracker = JiraClient(
            server=config.jira_server,
            user=config.jira_user,
            token=config.jira_api_token,
            timeout=config.jira_timeout,
        )
        resolver = FieldTemplateResolver(settings.templates, settings.jobs)

        totals = {"created": 0, "linked": 0, "mapped": 0, "dry_run": 0, "failed": 0}

        with IssueMappingStore(persistence) as mapping_store:
            engine = ReconciliationEngine(tracker, resolver, mapping_store)

            with ThreadPoolExecutor(max_workers=config.concurrency) as executor:
                futures = {
                    executor.submit(
                        process_test, test_result, job, env_vars, engine, config
                    ): test_result
                    for test_result in failed_tests
                }

                for future in as_completed(futures):
                    test_result = futures[future]
                    try:
                        action = future.result()
                    except Exception as e:
                        # Reported and counted; other tests are still reconciled
                        logger.error(
                            f"Could not reconcile {test_result.test_id}: {e}", exc_info=True
                        )
                        log_reconcile_result(
                            job_name=job.name,
                            test_id=test_result.test_id,
                            action="failed",
                            issue_keys=[],
                            duration_ms=0,
                        )
                        action = "failed"
                    totals[action] += 1

        duration_sec = time.time() - start_time
        log_run_summary(
            total_tests=len(test_results),
            failed_tests=len(failed_tests),
            created=totals["created"],
            linked=totals["linked"],
            already_mapped=totals["mapped"],
            errors=totals["failed"],
            duration_sec=duration_sec,
        )

        if totals["failed"]:
            logger.error(f"{totals['failed']} failing tests could not be reconciled")
            return 1

        logger.info(f"Run completed successfully in {duration_sec:.2f} seconds")
        return 0

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
