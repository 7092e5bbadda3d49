"""Parser for Business Central test-engine console transcripts.

Turns the detailed output of a test run into a TestRunReport. Parsing is
lossy-tolerant: unrecognized lines are skipped and nothing here raises for
any input string, because the tests have already run by the time this is
called and their results matter more than perfect formatting.
"""

import math
from dataclasses import replace
from typing import Optional

from .models import StatusCounts, TestOutcome, TestRunReport, TestStatus
from .patterns import DEFAULT_PATTERNS, TranscriptPatterns


def parse_duration(text: Optional[str]) -> float:
    """Parse an engine duration such as ``0.271`` or ``1,02``. Bad input gives 0.0."""
    if not text:
        return 0.0
    try:
        value = float(text.strip().replace(",", "."))
    except ValueError:
        return 0.0
    return _non_negative(value)


def _non_negative(value) -> float:
    """Finite, non-negative seconds; anything else is 0.0."""
    try:
        value = float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def _parse_id(text: Optional[str]) -> int:
    if text and text.isdigit():
        return int(text)
    return 0


class _ScanState:
    """Per-call mutable state of one transcript scan."""

    def __init__(self):
        self.codeunit_name = ""
        self.codeunit_id = 0
        self.in_error_capture = False
        self.error_lines: list[str] = []
        self.outcomes: list[TestOutcome] = []

    def start_error(self, first_line: str = ""):
        self.in_error_capture = True
        self.error_lines = [first_line] if first_line else []

    def finish_error(self):
        """Attach the captured error text to the last outcome and stop capturing."""
        if self.in_error_capture and self.outcomes:
            text = " ".join(self.error_lines).strip()
            self.outcomes[-1] = replace(self.outcomes[-1], error_text=text)
        self.in_error_capture = False
        self.error_lines = []

    def drop_error(self):
        """Stop capturing without attaching anything."""
        self.in_error_capture = False
        self.error_lines = []


class TestRunParser:
    """Single-pass line classifier over a test transcript.

    Each line is tried, in order, as a codeunit header, a test function
    result, an error marker, and an error terminator (blank line or call
    stack). Anything else is error detail while an error is being captured
    and is ignored otherwise.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, patterns: Optional[TranscriptPatterns] = None):
        self.patterns = patterns or DEFAULT_PATTERNS

    def parse(self, transcript: Optional[str], duration_seconds: float = 0.0) -> TestRunReport:
        """
        Parse a full transcript into a report.

        Args:
            transcript: Captured console output of one test-engine run
            duration_seconds: Wall-clock time of the run, measured by the caller

        Returns:
            TestRunReport with outcomes in transcript order
        """
        state = _ScanState()
        for line in (transcript or "").splitlines():
            self._classify(line, state)
        # Transcript cut off mid-error: keep what was captured
        state.finish_error()
        return TestRunReport(
            outcomes=tuple(state.outcomes),
            duration_seconds=_non_negative(duration_seconds),
        )

    def count_statuses(self, transcript: Optional[str], duration_seconds: float = 0.0) -> StatusCounts:
        """Counts-only pass: tally status words on loosely matching Testfunction lines."""
        counts = {status: 0 for status in TestStatus}
        for line in (transcript or "").splitlines():
            match = self.patterns.fallback_status.search(line)
            if not match:
                continue
            status = self.patterns.status_words.get(match.group("status"))
            if status is not None:
                counts[status] += 1
        return StatusCounts(
            passed=counts[TestStatus.PASSED],
            failed=counts[TestStatus.FAILED],
            skipped=counts[TestStatus.SKIPPED],
            duration_seconds=_non_negative(duration_seconds),
        )

    def parse_with_fallback(
        self, transcript: Optional[str], duration_seconds: float = 0.0
    ) -> tuple[TestRunReport, Optional[StatusCounts]]:
        """
        Parse, falling back to status counting only when nothing was attributed.

        Returns:
            (report, counts) where counts is None unless the report is empty
            and the fallback pass found at least one test line. Callers use
            one or the other, never both.
        """
        report = self.parse(transcript, duration_seconds)
        if report.total_count:
            return report, None
        counts = self.count_statuses(transcript, duration_seconds)
        return report, (counts if counts.total else None)

    def _classify(self, line: str, state: _ScanState):
        patterns = self.patterns

        match = patterns.codeunit_header.match(line)
        if match and match.group("status") in patterns.status_words:
            state.drop_error()
            state.codeunit_id = _parse_id(match.group("id"))
            state.codeunit_name = match.group("name").strip()
            return

        match = patterns.test_function.match(line)
        if match and match.group("status") in patterns.status_words:
            state.finish_error()
            state.outcomes.append(TestOutcome(
                codeunit_name=state.codeunit_name,
                codeunit_id=state.codeunit_id,
                function_name=match.group("name").strip(),
                status=patterns.status_words[match.group("status")],
                duration_seconds=parse_duration(match.group("duration")),
            ))
            return

        match = patterns.error_marker.match(line)
        if match:
            rest = match.groupdict().get("rest") or ""
            state.start_error(rest.strip())
            return

        if not line.strip() or patterns.call_stack_marker in line:
            if state.in_error_capture:
                state.finish_error()
            return

        if state.in_error_capture:
            state.error_lines.append(line.strip())


def parse_transcript(
    transcript: Optional[str],
    duration_seconds: float = 0.0,
    patterns: Optional[TranscriptPatterns] = None,
) -> TestRunReport:
    """Parse a transcript with the given (or default) patterns."""
    return TestRunParser(patterns).parse(transcript, duration_seconds)


def count_statuses(
    transcript: Optional[str],
    duration_seconds: float = 0.0,
    patterns: Optional[TranscriptPatterns] = None,
) -> StatusCounts:
    """Counts-only fallback over a transcript."""
    return TestRunParser(patterns).count_statuses(transcript, duration_seconds)
