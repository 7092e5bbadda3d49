#!/usr/bin/env python3
"""
Core operations shared between MCP server and CLI.
Contains the business logic for parsing, running and exporting test runs.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from bc_testrun_parser.config import get_patterns
from bc_testrun_parser.junit_writer import write_junit_xml
from bc_testrun_parser.models import StatusCounts, TestRunReport, TestStatus
from bc_testrun_parser.patterns import PatternConfigError
from bc_testrun_parser.transcript_capture import DEFAULT_TIMEOUT, capture_transcript
from bc_testrun_parser.transcript_parser import TestRunParser

logger = logging.getLogger(__name__)

MAX_ERROR_TEXT = 2000


def _get_parser(patterns_file: Optional[str] = None) -> TestRunParser:
    return TestRunParser(get_patterns(Path(patterns_file) if patterns_file else None))


def _run_status(total: int, failed: int) -> str:
    # PASS only if: no failures AND at least one test ran
    return "PASS" if failed == 0 and total > 0 else "FAIL"


def summarize(report: TestRunReport, counts: Optional[StatusCounts] = None) -> dict:
    """
    Build the result dict for a parsed run.

    Args:
        report: Fully attributed report
        counts: Counts-only fallback result, used instead of the report when given

    Returns:
        dict with mode, status and either "report" or "counts"
    """
    if counts is not None:
        return {
            "mode": "counts_only",
            "status": _run_status(counts.total, counts.failed),
            "counts": counts.to_dict(),
        }
    return {
        "mode": "attributed",
        "status": _run_status(report.total_count, report.failed_count),
        "report": report.to_dict(),
    }


def analyze_transcript(
    transcript: str,
    duration_seconds: float = 0.0,
    patterns_file: Optional[str] = None
) -> dict:
    """
    Parse a transcript and summarize it.

    Args:
        transcript: Console output of one test-engine run
        duration_seconds: Measured wall-clock time of the run
        patterns_file: Optional YAML patterns override

    Returns:
        Summary dict (see summarize), or {"error": ...}
    """
    try:
        parser = _get_parser(patterns_file)
    except PatternConfigError as e:
        logger.error(f"Invalid transcript patterns: {e}")
        return {"error": str(e)}

    report, counts = parser.parse_with_fallback(transcript, duration_seconds)
    if counts is not None:
        logger.warning(
            f"No attributable test lines found; falling back to status counts "
            f"({counts.total} tests)"
        )
    elif report.total_count == 0:
        logger.warning("No tests found in transcript")
    else:
        logger.info(
            f"Parsed {report.total_count} tests: {report.passed_count} passed, "
            f"{report.failed_count} failed, {report.skipped_count} skipped"
        )
    return summarize(report, counts)


def read_transcript(path: str) -> str:
    """Read a transcript file; a UTF-8 BOM (PowerShell Out-File) is dropped."""
    return Path(path).read_text(encoding="utf-8-sig", errors="replace")


def analyze_file(
    path: str,
    duration_seconds: float = 0.0,
    patterns_file: Optional[str] = None
) -> dict:
    """Parse a transcript file and summarize it."""
    if not Path(path).is_file():
        return {"error": f"Transcript file not found: {path}"}
    try:
        transcript = read_transcript(path)
    except OSError as e:
        logger.error(f"Error reading transcript {path}: {e}")
        return {"error": str(e)}

    result = analyze_transcript(transcript, duration_seconds, patterns_file)
    if "error" not in result:
        result["source"] = str(path)
    return result


def run_and_analyze(
    command: list[str],
    timeout: int = DEFAULT_TIMEOUT,
    patterns_file: Optional[str] = None
) -> dict:
    """
    Run a test command, then parse what it printed.

    Returns:
        Summary dict plus "return_code" and "transcript", or {"error": ...}
    """
    if not command:
        return {"error": "No test command given"}
    try:
        captured = capture_transcript(command, timeout=timeout)
    except FileNotFoundError as e:
        logger.error(f"Test command not found: {e}")
        return {"error": f"Command not found: {command[0]}"}
    except OSError as e:
        logger.error(f"Cannot run test command {command[0]}: {e}")
        return {"error": f"Cannot run {command[0]}: {e}"}
    except subprocess.TimeoutExpired:
        logger.error(f"Test command timed out after {timeout} seconds")
        return {"error": f"Test command timed out after {timeout} seconds"}

    result = analyze_transcript(captured.transcript, captured.duration_seconds, patterns_file)
    if "error" in result:
        return result
    result["return_code"] = captured.return_code
    result["transcript"] = captured.transcript
    return result


def get_test_failures(transcript: str, patterns_file: Optional[str] = None) -> dict:
    """
    Failed tests of a run, grouped by codeunit.

    Returns:
        {"total_failed": n, "codeunits": [{"codeunit_id", "codeunit_name", "failures": [...]}]}
    """
    try:
        parser = _get_parser(patterns_file)
    except PatternConfigError as e:
        return {"error": str(e)}

    report = parser.parse(transcript)
    codeunits = []
    for (codeunit_id, codeunit_name), outcomes in report.codeunits.items():
        failures = []
        for outcome in outcomes:
            if outcome.status != TestStatus.FAILED:
                continue
            error_text = outcome.error_text
            if len(error_text) > MAX_ERROR_TEXT:
                error_text = error_text[:MAX_ERROR_TEXT] + "..."
            failures.append({
                "function_name": outcome.function_name,
                "duration_seconds": outcome.duration_seconds,
                "error_text": error_text,
            })
        if failures:
            codeunits.append({
                "codeunit_id": codeunit_id,
                "codeunit_name": codeunit_name,
                "failures": failures,
            })

    return {"total_failed": report.failed_count, "codeunits": codeunits}


def export_junit(
    transcript: str,
    output_path: str,
    duration_seconds: float = 0.0,
    suite_name: str = "bc-tests",
    patterns_file: Optional[str] = None
) -> dict:
    """Parse a transcript and write it as JUnit XML."""
    try:
        parser = _get_parser(patterns_file)
    except PatternConfigError as e:
        return {"error": str(e)}

    report, counts = parser.parse_with_fallback(transcript, duration_seconds)
    if counts is not None:
        logger.error("Only counts-only results found; not writing JUnit XML")
        return {"error": "Counts-only results (no attributable test lines) cannot be exported as JUnit XML"}
    if report.total_count == 0:
        logger.warning("No tests found in transcript; writing empty JUnit report")
    try:
        written = write_junit_xml(report, output_path, suite_name)
    except OSError as e:
        logger.error(f"Error writing JUnit XML to {output_path}: {e}")
        return {"error": str(e)}

    logger.info(f"Wrote JUnit XML for {report.total_count} tests to {written}")
    return {"path": str(written), "tests": report.total_count, "failed": report.failed_count}


def get_active_patterns(patterns_file: Optional[str] = None) -> dict:
    """The pattern set that parsing would use, as a plain dict."""
    try:
        return _get_parser(patterns_file).patterns.to_dict()
    except PatternConfigError as e:
        return {"error": str(e)}
