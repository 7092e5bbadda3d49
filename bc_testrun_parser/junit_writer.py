"""JUnit/XUnit XML export for parsed test runs."""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union

from .models import TestRunReport, TestStatus

NO_CODEUNIT = "(no codeunit)"


def _seconds(value: float) -> str:
    return f"{value:.3f}"


def build_junit_tree(report: TestRunReport, suite_name: str = "bc-tests") -> ET.Element:
    """Build a <testsuites> element with one <testsuite> per codeunit."""
    root = ET.Element("testsuites", {
        "name": suite_name,
        "tests": str(report.total_count),
        "failures": str(report.failed_count),
        "skipped": str(report.skipped_count),
        "time": _seconds(report.duration_seconds),
    })

    for (codeunit_id, codeunit_name), outcomes in report.codeunits.items():
        suite_label = codeunit_name or NO_CODEUNIT
        failures = sum(1 for o in outcomes if o.status == TestStatus.FAILED)
        skipped = sum(1 for o in outcomes if o.status == TestStatus.SKIPPED)
        suite = ET.SubElement(root, "testsuite", {
            "name": suite_label,
            "id": str(codeunit_id),
            "tests": str(len(outcomes)),
            "failures": str(failures),
            "errors": "0",
            "skipped": str(skipped),
            "time": _seconds(sum(o.duration_seconds for o in outcomes)),
        })
        for outcome in outcomes:
            case = ET.SubElement(suite, "testcase", {
                "classname": suite_label,
                "name": outcome.function_name,
                "time": _seconds(outcome.duration_seconds),
            })
            if outcome.status == TestStatus.FAILED:
                failure = ET.SubElement(case, "failure", {"message": outcome.error_text})
                failure.text = outcome.error_text
            elif outcome.status == TestStatus.SKIPPED:
                ET.SubElement(case, "skipped")

    return root


def report_to_junit_xml(report: TestRunReport, suite_name: str = "bc-tests") -> str:
    """Render a report as a JUnit XML document string."""
    root = build_junit_tree(report, suite_name)
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True).decode("utf-8") + "\n"


def write_junit_xml(report: TestRunReport, path: Union[str, Path], suite_name: str = "bc-tests") -> Path:
    """Write a report as JUnit XML, creating parent directories. Returns the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report_to_junit_xml(report, suite_name), encoding="utf-8")
    return path
