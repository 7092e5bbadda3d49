#!/usr/bin/env python3
"""
MCP Server for bc-test-analyzer.
Provides tools for turning Business Central test transcripts into structured results.
"""

import asyncio
import json
import logging

from fastmcp import FastMCP

import core
from bc_testrun_parser.config import get_log_level, get_mcp_port

# Configure logging
logging.basicConfig(
    level=get_log_level(),
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# FastMCP server
mcp = FastMCP("bc-test-analyzer")


@mcp.tool(
    name="parse_transcript",
    description="""Parse the console output of a Business Central test run.

    Expects the detailed output of Run-TestsInBcContainer (Codeunit / Testfunction
    result lines, Error: blocks). Returns total/passed/failed/skipped counts and one
    entry per test function with codeunit, status, duration and error text.
    If no line can be attributed to a test function, returns counts only
    (mode "counts_only").

    Args:
        transcript: Full captured console output of the run
        duration_seconds: Measured wall-clock time of the run (default: 0)
    """
)
async def parse_transcript(transcript: str, duration_seconds: float = 0.0) -> str:
    try:
        result = core.analyze_transcript(transcript, duration_seconds)
        return json.dumps(result, indent=2, default=str)
    except Exception as e:
        logger.error(f"Error in parse_transcript: {str(e)}")
        return json.dumps({"error": str(e)})


@mcp.tool(
    name="get_test_failures",
    description="""Get the failed tests of a run, grouped by codeunit.

    DEBUGGING TIP: Use this first when a test run failed. It lists each failing
    test function with the error message captured between Error: and the call stack.

    Args:
        transcript: Full captured console output of the run
    """
)
async def get_test_failures(transcript: str) -> str:
    try:
        result = core.get_test_failures(transcript)
        return json.dumps(result, indent=2, default=str)
    except Exception as e:
        logger.error(f"Error in get_test_failures: {str(e)}")
        return json.dumps({"error": str(e)})


@mcp.tool(
    name="analyze_transcript_file",
    description="""Parse a transcript file saved on the server host.

    Args:
        path: Path of the transcript file
        duration_seconds: Measured wall-clock time of the run (default: 0)
    """
)
async def analyze_transcript_file(path: str, duration_seconds: float = 0.0) -> str:
    try:
        result = core.analyze_file(path, duration_seconds)
        return json.dumps(result, indent=2, default=str)
    except Exception as e:
        logger.error(f"Error in analyze_transcript_file: {str(e)}")
        return json.dumps({"error": str(e)})


@mcp.tool(
    name="export_junit_report",
    description="""Parse a transcript and write the results as JUnit XML.

    Args:
        transcript: Full captured console output of the run
        output_path: Where to write the XML file on the server host
        duration_seconds: Measured wall-clock time of the run (default: 0)
        suite_name: Name of the testsuites element (default: "bc-tests")
    """
)
async def export_junit_report(
    transcript: str,
    output_path: str,
    duration_seconds: float = 0.0,
    suite_name: str = "bc-tests"
) -> str:
    try:
        result = core.export_junit(transcript, output_path, duration_seconds, suite_name)
        return json.dumps(result, indent=2)
    except Exception as e:
        logger.error(f"Error in export_junit_report: {str(e)}")
        return json.dumps({"error": str(e)})


async def main():
    patterns = core.get_active_patterns()
    if "error" in patterns:
        logger.warning(f"Transcript patterns could not be loaded: {patterns['error']}")

    port = get_mcp_port()
    logger.info(f"Starting bc-test-analyzer MCP server on port {port}")
    await mcp.run_async(transport="sse", host="0.0.0.0", port=port)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
