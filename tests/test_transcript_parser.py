"""Tests for the transcript line classifier."""

import pytest

from bc_testrun_parser.models import StatusCounts, TestRunReport, TestStatus
from bc_testrun_parser.patterns import patterns_from_mapping
from bc_testrun_parser.transcript_parser import (
    TestRunParser,
    count_statuses,
    parse_duration,
    parse_transcript,
)

from conftest import HELLO_WORLD, SALES_RUN


def test_codeunit_context_attaches_to_functions():
    report = parse_transcript(HELLO_WORLD)

    assert report.total_count == 2
    first, second = report.outcomes
    for outcome in report.outcomes:
        assert outcome.codeunit_name == "HelloWorld Test"
        assert outcome.codeunit_id == 50000

    assert first.function_name == "TestHello"
    assert first.status == TestStatus.PASSED
    assert first.duration_seconds == pytest.approx(0.10)
    assert first.error_text == ""

    assert second.function_name == "TestWorld"
    assert second.status == TestStatus.FAILED
    assert second.duration_seconds == pytest.approx(0.05)
    assert second.error_text == "Expected true but was false"


def test_error_text_stops_at_blank_line():
    transcript = HELLO_WORLD + "\n  Testfunction TestThird Skipped (0.00 seconds)\n"

    report = parse_transcript(transcript)

    assert report.total_count == 3
    third = report.outcomes[2]
    assert third.status == TestStatus.SKIPPED
    assert third.error_text == ""
    assert report.outcomes[1].error_text == "Expected true but was false"


def test_error_text_stops_at_call_stack():
    report = parse_transcript(SALES_RUN)

    credit_memo = report.outcomes[1]
    assert credit_memo.function_name == "TestPostCreditMemo"
    assert credit_memo.error_text == (
        "Assert.AreEqual failed. Expected:<10> (Integer). Actual:<0> (Integer). "
        "Amount on the posted credit memo"
    )
    assert "CodeUnit 50100" not in credit_memo.error_text
    assert all(o.error_text == "" for o in report.outcomes if o is not credit_memo)


def test_context_switches_on_new_codeunit_header():
    report = parse_transcript(SALES_RUN)

    assert [(o.codeunit_id, o.codeunit_name) for o in report.outcomes] == [
        (50100, "Sales Posting Tests"),
        (50100, "Sales Posting Tests"),
        (50101, "Purchase Tests"),
        (50101, "Purchase Tests"),
    ]
    assert report.passed_count == 2
    assert report.failed_count == 1
    assert report.skipped_count == 1


def test_outcomes_keep_transcript_order():
    report = parse_transcript(SALES_RUN)

    assert [o.function_name for o in report.outcomes] == [
        "TestPostInvoice", "TestPostCreditMemo", "TestReceive", "TestInvoice",
    ]


def test_function_without_codeunit_header():
    report = parse_transcript("  Testfunction Orphan Success (0.01 seconds)\n")

    assert report.total_count == 1
    outcome = report.outcomes[0]
    assert outcome.codeunit_name == ""
    assert outcome.codeunit_id == 0
    assert outcome.status == TestStatus.PASSED
    assert outcome.full_name == "Orphan"


def test_empty_transcript():
    report = parse_transcript("")

    assert report.total_count == 0
    assert report.outcomes == ()
    assert report.succeeded


def test_none_transcript_is_treated_as_empty():
    assert parse_transcript(None).total_count == 0


def test_unrecognized_text_yields_empty_report():
    report = parse_transcript("BcContainerHelper version 6.0.1\nNo tests to run\nError:\n  oops\n")

    assert report.total_count == 0


def test_duration_precision():
    report = parse_transcript("Testfunction Precise Success (1.234 seconds)")

    assert report.outcomes[0].duration_seconds == pytest.approx(1.234, abs=1e-6)


def test_duration_with_decimal_comma():
    report = parse_transcript("Testfunction Localized Success (1,5 seconds)")

    assert report.outcomes[0].duration_seconds == pytest.approx(1.5)


def test_malformed_duration_becomes_zero():
    report = parse_transcript("Testfunction Odd Failure (1.2.3 seconds)")

    assert report.total_count == 1
    assert report.outcomes[0].duration_seconds == 0.0
    assert report.outcomes[0].status == TestStatus.FAILED


@pytest.mark.parametrize("text,expected", [
    ("0.271", 0.271),
    ("1.02", 1.02),
    ("3", 3.0),
    ("2,25", 2.25),
    ("", 0.0),
    (None, 0.0),
    ("abc", 0.0),
    ("-1", 0.0),
    ("nan", 0.0),
])
def test_parse_duration(text, expected):
    assert parse_duration(text) == pytest.approx(expected)


def test_truncated_error_is_kept():
    transcript = (
        "Codeunit 1 Cut Failure (0.5 seconds)\n"
        "  Testfunction TestCut Failure (0.5 seconds)\n"
        "    Error:\n"
        "      The record in table Customer already ex"
    )

    report = parse_transcript(transcript)

    assert report.outcomes[-1].error_text == "The record in table Customer already ex"


def test_error_marker_text_on_same_line():
    transcript = (
        "Testfunction TestInline Failure (0.1 seconds)\n"
        "  Error: Item No. must have a value\n"
        "    in Sales Line\n"
        "\n"
    )

    report = parse_transcript(transcript)

    assert report.outcomes[0].error_text == "Item No. must have a value in Sales Line"


def test_error_before_any_function_is_discarded():
    transcript = (
        "Error:\n"
        "  Could not connect to service tier\n"
        "\n"
        "Testfunction TestAfter Success (0.1 seconds)\n"
    )

    report = parse_transcript(transcript)

    assert report.total_count == 1
    assert report.outcomes[0].error_text == ""


def test_pending_error_is_finalized_by_next_function_line():
    transcript = (
        "Testfunction TestFirst Failure (0.1 seconds)\n"
        "  Error:\n"
        "    first failure\n"
        "Testfunction TestSecond Success (0.1 seconds)\n"
    )

    report = parse_transcript(transcript)

    assert report.outcomes[0].error_text == "first failure"
    assert report.outcomes[1].error_text == ""


def test_pending_error_is_dropped_by_codeunit_header():
    transcript = (
        "Codeunit 1 First Failure (0.1 seconds)\n"
        "Testfunction TestA Failure (0.1 seconds)\n"
        "Error:\n"
        "  message for A\n"
        "Codeunit 2 Second Success (0.1 seconds)\n"
        "Testfunction TestB Success (0.1 seconds)\n"
    )

    report = parse_transcript(transcript)

    assert report.outcomes[0].error_text == ""
    assert report.outcomes[1].codeunit_id == 2
    assert report.outcomes[1].codeunit_name == "Second"
    assert report.outcomes[1].error_text == ""


def test_consecutive_function_lines_do_not_share_errors():
    transcript = (
        "Testfunction TestA Failure (0.1 seconds)\n"
        "Testfunction TestB Failure (0.1 seconds)\n"
        "Error:\n"
        "  only B\n"
    )

    report = parse_transcript(transcript)

    assert report.outcomes[0].error_text == ""
    assert report.outcomes[1].error_text == "only B"


def test_windows_line_endings():
    transcript = HELLO_WORLD.replace("\n", "\r\n")

    report = parse_transcript(transcript)

    assert report.total_count == 2
    assert report.outcomes[1].error_text == "Expected true but was false"


def test_counts_always_add_up():
    transcripts = [
        "",
        HELLO_WORLD,
        SALES_RUN,
        SALES_RUN + HELLO_WORLD,
        "Testfunction X Skipped (0 seconds)\nrandom\n\nTestfunction Y Failure (1 seconds)",
    ]
    for transcript in transcripts:
        report = parse_transcript(transcript)
        assert report.total_count == len(report.outcomes)
        assert report.total_count == (
            report.passed_count + report.failed_count + report.skipped_count
        )


def test_parse_is_idempotent():
    parser = TestRunParser()

    assert parser.parse(SALES_RUN, 12.5) == parser.parse(SALES_RUN, 12.5)


def test_duration_is_taken_from_caller():
    report = parse_transcript(HELLO_WORLD, duration_seconds=42.0)

    assert report.duration_seconds == 42.0
    assert isinstance(report, TestRunReport)


def test_fallback_counts_unattributable_lines():
    transcript = (
        "[10:00:01] Testfunction TestA Success (12 ms)\n"
        "[10:00:02] Testfunction TestB Failure (3 ms)\n"
        "[10:00:03] Testfunction TestC Success (4 ms)\n"
    )

    report, counts = TestRunParser().parse_with_fallback(transcript, 3.0)

    assert report.total_count == 0
    assert counts == StatusCounts(passed=2, failed=1, skipped=0, duration_seconds=3.0)
    assert counts.total == 3


def test_fallback_not_used_when_outcomes_were_attributed():
    transcript = SALES_RUN + "[10:00:01] Testfunction Extra Success (12 ms)\n"

    report, counts = TestRunParser().parse_with_fallback(transcript)

    assert counts is None
    assert report.total_count == 4


def test_fallback_returns_none_when_nothing_matches():
    report, counts = TestRunParser().parse_with_fallback("nothing here")

    assert report.total_count == 0
    assert counts is None


def test_count_statuses_module_function():
    counts = count_statuses(SALES_RUN)

    assert (counts.passed, counts.failed, counts.skipped) == (2, 1, 1)


def test_custom_status_words():
    patterns = patterns_from_mapping({
        "test_function": r'^\s*Testfunction\s+(?P<name>.+?)\s+(?P<status>\w+)\s+\((?P<duration>[\d.,]+)\s+seconds\)',
        "status_words": {"OK": "Passed", "FAIL": "Failed"},
    })
    transcript = (
        "Testfunction TestA OK (0.1 seconds)\n"
        "Testfunction TestB FAIL (0.2 seconds)\n"
        "Testfunction TestC WEIRD (0.3 seconds)\n"
    )

    report = parse_transcript(transcript, patterns=patterns)

    assert [(o.function_name, o.status) for o in report.outcomes] == [
        ("TestA", TestStatus.PASSED),
        ("TestB", TestStatus.FAILED),
    ]


def test_custom_prefix_pattern():
    patterns = patterns_from_mapping({
        "test_function": r'^\[[^\]]*\]\s*Testfunction\s+(?P<name>.+?)\s+(?P<status>Success|Failure|Skipped)\s+\((?P<duration>[\d.,]+)\s+seconds\)',
    })

    report = parse_transcript("[bcserver] Testfunction TestA Success (0.5 seconds)", patterns=patterns)

    assert report.total_count == 1
    assert report.outcomes[0].duration_seconds == pytest.approx(0.5)


@pytest.mark.parametrize("duration", [float("nan"), float("inf"), -3.0, None])
def test_unusable_run_duration_becomes_zero(duration):
    report = parse_transcript(HELLO_WORLD, duration_seconds=duration)
    counts = count_statuses(HELLO_WORLD, duration_seconds=duration)

    assert report.duration_seconds == 0.0
    assert counts.duration_seconds == 0.0
