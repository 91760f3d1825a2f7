"""Read test results from JUnit XML reports."""

import glob
import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List

from jira_test_reporter.models.test_result import TestResult, TestStatus


logger = logging.getLogger(__name__)


def _text(element: ET.Element | None) -> str | None:
    if element is None:
        return None
    return element.text


def parse_testcase(testcase: ET.Element) -> TestResult:
    """Convert a <testcase> element into a TestResult.

    <failure> and <error> both count as FAILED; the element text is the
    stack trace and its message attribute the error details.
    """
    name = testcase.get("name", "")
    class_name = testcase.get("classname", "")
    problem = testcase.find("failure")
    if problem is None:
        problem = testcase.find("error")

    if problem is not None:
        status = TestStatus.FAILED
    elif testcase.find("skipped") is not None:
        status = TestStatus.SKIPPED
    else:
        status = TestStatus.PASSED

    result = TestResult(
        test_id=f"{class_name}.{name}" if class_name else name,
        name=name,
        class_name=class_name,
        status=status,
        stdout=_text(testcase.find("system-out")),
        stderr=_text(testcase.find("system-err")),
        duration=float(testcase.get("time") or 0.0),
    )
    if problem is not None:
        result.error_stack_trace = problem.text
        result.error_details = problem.get("message")
    return result


def read_junit_report(path: str) -> List[TestResult]:
    """Parse every test case of one JUnit XML file.

    Args:
        path: Report file path.

    Returns:
        List[TestResult]: Test cases in document order.

    Raises:
        ValueError: If the file is not well formed XML.
    """
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ValueError(f"Malformed JUnit report {path}: {e}") from e

    return [parse_testcase(testcase) for testcase in root.iter("testcase")]


def read_junit_reports(patterns: Iterable[str]) -> List[TestResult]:
    """Parse all reports matching the given glob patterns.

    Args:
        patterns: Glob patterns (e.g. "build/test-results/**/*.xml").

    Returns:
        List[TestResult]: Test cases of every matching report.
    """
    results: List[TestResult] = []
    for pattern in patterns:
        paths = sorted(glob.glob(pattern, recursive=True))
        if not paths:
            logger.warning(f"No JUnit reports match {pattern}")
        for path in paths:
            cases = read_junit_report(path)
            logger.info(f"Read {len(cases)} test cases from {path}")
            results.extend(cases)
    return results
