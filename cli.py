#!/usr/bin/env python3
"""CLI for the Business Central test-run analyzer."""

import argparse
import json
import logging
import sys

import core
from bc_testrun_parser.config import get_default_format
from bc_testrun_parser.transcript_capture import DEFAULT_TIMEOUT


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(levelname)s: %(message)s'
    )


def _read_input(source: str) -> str:
    if source == '-':
        return sys.stdin.read()
    return core.read_transcript(source)


def _exit_code(result: dict) -> int:
    if "error" in result:
        return 2
    return 0 if result.get("status") == "PASS" else 1


def _print_summary(result: dict):
    """Print human-readable summary."""
    print(f"\n{'='*60}")
    if result.get("source"):
        print(f"Transcript: {result['source']}")

    if result.get("mode") == "counts_only":
        counts = result.get("counts", {})
        print("Mode: counts only (test lines could not be attributed)")
        print(f"\nTest Results:")
        print(f"  Total:   {counts.get('total', 0)}")
        print(f"  Passed:  {counts.get('passed', 0)}")
        print(f"  Failed:  {counts.get('failed', 0)}")
        print(f"  Skipped: {counts.get('skipped', 0)}")
        print(f"  Duration: {counts.get('duration_seconds', 0.0):.2f}s")
    else:
        report = result.get("report", {})
        print(f"\nTest Results:")
        print(f"  Total:   {report.get('total', 0)}")
        print(f"  Passed:  {report.get('passed', 0)}")
        print(f"  Failed:  {report.get('failed', 0)}")
        print(f"  Skipped: {report.get('skipped', 0)}")
        print(f"  Duration: {report.get('duration_seconds', 0.0):.2f}s")

        failed_tests = [o for o in report.get("outcomes", []) if o["status"] == "Failed"]
        if failed_tests:
            print(f"\nFailed Tests ({len(failed_tests)}):")
            for t in failed_tests[:10]:
                name = f"{t['codeunit_id']} {t['codeunit_name']}::{t['function_name']}"
                print(f"  - {name[:70]}")
                if t.get("error_text"):
                    print(f"      {t['error_text'][:200]}")
            if len(failed_tests) > 10:
                print(f"  ... and {len(failed_tests) - 10} more")

    print(f"\nStatus: {result.get('status', 'N/A')}")
    print(f"{'='*60}\n")


def _emit(result: dict, fmt: str):
    if fmt == 'json':
        print(json.dumps(result, indent=2, default=str))
    else:
        _print_summary(result)


def _export_junit(args, transcript: str, duration: float) -> int:
    export = core.export_junit(
        transcript, args.junit, duration_seconds=duration,
        suite_name=args.suite_name, patterns_file=args.patterns
    )
    if "error" in export:
        print(f"Error: {export['error']}", file=sys.stderr)
        return 2
    print(f"JUnit XML written to {export['path']}", file=sys.stderr)
    return 0


def cmd_parse(args):
    """Parse a captured transcript."""
    try:
        transcript = _read_input(args.transcript)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = core.analyze_transcript(transcript, args.duration, args.patterns)
    if "error" in result:
        print(f"Error: {result['error']}", file=sys.stderr)
        return 2
    if args.transcript != '-':
        result["source"] = args.transcript

    _emit(result, args.format)

    if args.junit and _export_junit(args, transcript, args.duration):
        return 2
    return _exit_code(result)


def cmd_failures(args):
    """Show failed tests grouped by codeunit."""
    try:
        transcript = _read_input(args.transcript)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = core.get_test_failures(transcript, args.patterns)
    if "error" in result:
        print(f"Error: {result['error']}", file=sys.stderr)
        return 2

    if args.format == 'json':
        print(json.dumps(result, indent=2))
    else:
        if not result["codeunits"]:
            print("No failed tests")
        for cu in result["codeunits"]:
            print(f"Codeunit {cu['codeunit_id']} {cu['codeunit_name']}")
            for f in cu["failures"]:
                print(f"  - {f['function_name']} ({f['duration_seconds']:.3f}s)")
                if f["error_text"]:
                    print(f"      {f['error_text']}")
    return 1 if result["total_failed"] else 0


def cmd_run(args):
    """Run a test command and parse its output."""
    command = list(args.test_command)
    if command and command[0] == '--':
        command = command[1:]

    result = core.run_and_analyze(command, timeout=args.timeout, patterns_file=args.patterns)
    if "error" in result:
        print(f"Error: {result['error']}", file=sys.stderr)
        return 2

    transcript = result.pop("transcript", "")
    if args.show_output:
        print(transcript)
    _emit(result, args.format)

    if args.junit:
        duration = result.get("report", result.get("counts", {})).get("duration_seconds", 0.0)
        if _export_junit(args, transcript, duration):
            return 2
    return _exit_code(result)


def cmd_patterns(args):
    """Show the active transcript patterns."""
    result = core.get_active_patterns(args.patterns)
    if "error" in result:
        print(f"Error: {result['error']}", file=sys.stderr)
        return 2
    print(json.dumps(result, indent=2))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description='Business Central test-run transcript analyzer')
    parser.add_argument('-v', '--verbose', action='store_true')
    parser.add_argument('--patterns', help='YAML file overriding the transcript line patterns')

    sub = parser.add_subparsers(dest='command', required=True)
    default_format = get_default_format()

    p = sub.add_parser('parse', help='Parse a captured test transcript')
    p.add_argument('transcript', help="Transcript file, or '-' for stdin")
    p.add_argument('--duration', type=float, default=0.0, help='Measured run time in seconds')
    p.add_argument('--format', '-f', choices=['text', 'json'], default=default_format)
    p.add_argument('--junit', help='Also write JUnit XML to this path')
    p.add_argument('--suite-name', default='bc-tests', help='JUnit testsuites name')
    p.set_defaults(func=cmd_parse)

    p = sub.add_parser('failures', help='Show failed tests grouped by codeunit')
    p.add_argument('transcript', help="Transcript file, or '-' for stdin")
    p.add_argument('--format', '-f', choices=['text', 'json'], default=default_format)
    p.set_defaults(func=cmd_failures)

    p = sub.add_parser('run', help='Run a test command and parse its output')
    p.add_argument('--timeout', type=int, default=DEFAULT_TIMEOUT, help='Timeout in seconds')
    p.add_argument('--format', '-f', choices=['text', 'json'], default=default_format)
    p.add_argument('--junit', help='Also write JUnit XML to this path')
    p.add_argument('--suite-name', default='bc-tests', help='JUnit testsuites name')
    p.add_argument('--show-output', action='store_true', help='Print the captured transcript')
    p.add_argument('test_command', nargs=argparse.REMAINDER, help='Command to run (after --)')
    p.set_defaults(func=cmd_run)

    p = sub.add_parser('patterns', help='Print the active transcript patterns')
    p.set_defaults(func=cmd_patterns)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
