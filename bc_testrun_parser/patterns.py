"""
Line patterns for Business Central test-engine transcripts.

The defaults match ``Run-TestsInBcContainer -detailed`` console output:

    Codeunit 50000 HelloWorld Test Success (0.30 seconds)
      Testfunction TestHello Success (0.10 seconds)
      Testfunction TestWorld Failure (0.05 seconds)
        Error:
          Expected true but was false
        Call Stack:
          ...

Engine format drift (extra prefixes, other wording) is handled by supplying
a YAML file that overrides any of these keys.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import yaml

from .models import TestStatus

CODEUNIT_HEADER = (
    r'^\s*Codeunit\s+(?P<id>\d+)\s+(?P<name>.+?)\s+'
    r'(?P<status>Success|Failure|Skipped)\s+\((?P<duration>[\d.,]+)\s+seconds\)'
)
TEST_FUNCTION = (
    r'^\s*Testfunction\s+(?P<name>.+?)\s+'
    r'(?P<status>Success|Failure|Skipped)\s+\((?P<duration>[\d.,]+)\s+seconds\)'
)
ERROR_MARKER = r'^\s*Error:(?P<rest>.*)$'
CALL_STACK_MARKER = 'Call Stack:'
# Counts-only pass: anything with a Testfunction token and a status word later on the line
FALLBACK_STATUS = r'Testfunction\s+\S.*?\s(?P<status>Success|Failure|Skipped)\b'

DEFAULT_STATUS_WORDS = {
    "Success": TestStatus.PASSED,
    "Failure": TestStatus.FAILED,
    "Skipped": TestStatus.SKIPPED,
}

# Named groups each regex key must define
REQUIRED_GROUPS = {
    "codeunit_header": {"id", "name", "status", "duration"},
    "test_function": {"name", "status", "duration"},
    "error_marker": set(),
    "fallback_status": {"status"},
}


class PatternConfigError(ValueError):
    """Raised when a patterns file cannot be turned into a TranscriptPatterns."""


def _compile(key: str, source: str) -> re.Pattern:
    try:
        regex = re.compile(source)
    except re.error as e:
        raise PatternConfigError(f"Invalid regex for '{key}': {e}") from e
    missing = REQUIRED_GROUPS[key] - set(regex.groupindex)
    if missing:
        raise PatternConfigError(
            f"Pattern '{key}' is missing named group(s): {', '.join(sorted(missing))}"
        )
    return regex


@dataclass(frozen=True)
class TranscriptPatterns:
    """Compiled regex set driving the transcript line classifier."""
    codeunit_header: re.Pattern = field(default_factory=lambda: re.compile(CODEUNIT_HEADER))
    test_function: re.Pattern = field(default_factory=lambda: re.compile(TEST_FUNCTION))
    error_marker: re.Pattern = field(default_factory=lambda: re.compile(ERROR_MARKER))
    call_stack_marker: str = CALL_STACK_MARKER
    fallback_status: re.Pattern = field(default_factory=lambda: re.compile(FALLBACK_STATUS))
    status_words: dict = field(default_factory=lambda: dict(DEFAULT_STATUS_WORDS))

    def to_dict(self) -> dict:
        """Plain representation, in the same shape a patterns file uses."""
        return {
            "codeunit_header": self.codeunit_header.pattern,
            "test_function": self.test_function.pattern,
            "error_marker": self.error_marker.pattern,
            "call_stack_marker": self.call_stack_marker,
            "fallback_status": self.fallback_status.pattern,
            "status_words": {word: status.value for word, status in self.status_words.items()},
        }


DEFAULT_PATTERNS = TranscriptPatterns()


def patterns_from_mapping(data: dict) -> TranscriptPatterns:
    """Build patterns from a mapping; keys not present keep their defaults."""
    if not isinstance(data, dict):
        raise PatternConfigError("Patterns file must contain a mapping")

    unknown = set(data) - set(REQUIRED_GROUPS) - {"call_stack_marker", "status_words"}
    if unknown:
        raise PatternConfigError(f"Unknown pattern key(s): {', '.join(sorted(unknown))}")

    kwargs = {}
    for key in REQUIRED_GROUPS:
        if key in data:
            if not data[key]:
                raise PatternConfigError(f"Pattern '{key}' must not be empty")
            kwargs[key] = _compile(key, str(data[key]))

    if "call_stack_marker" in data:
        marker = data["call_stack_marker"]
        if not marker:
            raise PatternConfigError("call_stack_marker must not be empty")
        kwargs["call_stack_marker"] = str(marker)

    if "status_words" in data:
        words = data["status_words"]
        if not isinstance(words, dict) or not words:
            raise PatternConfigError("status_words must be a non-empty mapping")
        by_value = {s.value.lower(): s for s in TestStatus}
        status_words = {}
        for word, status_name in words.items():
            status = by_value.get(str(status_name).lower())
            if status is None:
                raise PatternConfigError(
                    f"Unknown status '{status_name}' for word '{word}' "
                    f"(expected one of: {', '.join(s.value for s in TestStatus)})"
                )
            status_words[str(word)] = status
        kwargs["status_words"] = status_words

    return TranscriptPatterns(**kwargs)


def load_patterns(path: Union[str, Path]) -> TranscriptPatterns:
    """Load a YAML patterns file.

    Args:
        path: File with any of the keys codeunit_header, test_function,
            error_marker, call_stack_marker, fallback_status, status_words

    Returns:
        TranscriptPatterns with the file's overrides applied
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise PatternConfigError(f"Cannot read patterns file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise PatternConfigError(f"Invalid YAML in patterns file {path}: {e}") from e

    if data is None:
        return TranscriptPatterns()
    return patterns_from_mapping(data)
