"""Extraction of failing tests from raw CI test-runner output.

Three heuristic strategies are supported, one per output family:

- Jest: ``FAIL <file>`` headers followed by ``● <suite> › <test>`` blocks
- pytest: the short summary lines ``FAILED <file>::<test> - <message>``
- Generic: any line mentioning ``Error:``, ``FAIL`` or ``Failure``

None of the strategies raise on unexpected input. CI logs are not a stable
format, so the worst case is an empty or low-fidelity result.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from server.models import FailureTestType, FrameworkKind, NormalizedFailure

logger = logging.getLogger(__name__)

UNKNOWN_TEST = "Unknown Test"
UNKNOWN_FILE = "Unknown file"

JEST_FILE_PREFIX = "FAIL "
JEST_TEST_MARKER = "●"
PYTEST_FAILED_PREFIX = "FAILED "
PYTEST_SEPARATOR = " - "
PYTEST_NODE_SEPARATOR = "::"

GENERIC_TRIGGERS = ("Error:", "FAIL", "Failure")
GENERIC_CONTEXT_LINES = 10
GENERIC_SKIP_LINES = 5

_LINE_WORD_PATTERN = re.compile(r"line (\d+)", re.IGNORECASE)
_LINE_COLON_PATTERN = re.compile(r":(\d+):")
_GENERIC_FILE_PATTERN = re.compile(r"([a-zA-Z0-9_\-/.]+\.(js|py|ts|jsx|tsx))")
_GENERIC_TEST_PATTERN = re.compile(r"test ([a-zA-Z0-9_]+)", re.IGNORECASE)

FailureParser = Callable[[str], list[NormalizedFailure]]


def detect_framework(output: str) -> FrameworkKind:
    """Pick the output family from framework-specific signatures.

    Jest is recognised by a ``FAIL `` header plus either the runner's name or
    its ``●`` test marker; output piped straight from a reporter does not always
    mention the command that started it.
    """
    jest_signature = "npm test" in output or "jest" in output or JEST_TEST_MARKER in output
    if JEST_FILE_PREFIX in output and jest_signature:
        return FrameworkKind.JEST
    if PYTEST_FAILED_PREFIX in output and "pytest" in output:
        return FrameworkKind.PYTEST
    return FrameworkKind.GENERIC


def extract_line_number(error_text: str) -> int | None:
    """Find a source line number in an error message.

    ``line <n>`` wins over ``:<n>:``; returns None when neither is present.
    """
    match = _LINE_WORD_PATTERN.search(error_text) or _LINE_COLON_PATTERN.search(error_text)
    return int(match.group(1)) if match else None


def _test_type_for(file: str | None) -> FailureTestType:
    if file and "integration" in file:
        return FailureTestType.INTEGRATION
    return FailureTestType.UNIT


def parse_jest_output(output: str) -> list[NormalizedFailure]:
    """Parse Jest output.

    Example::

        FAIL  src/components/__tests__/Login.test.js
          ● Login › should handle login failure

            expect(received).toBe(expected)

    The error block after a ``●`` marker ends at the first blank line that
    follows at least one collected line. A block still open at the end of the
    text is not reported.
    """
    failures: list[NormalizedFailure] = []
    current_file: str | None = None
    current_test: str | None = None
    error_lines: list[str] = []
    collecting = False

    for line in output.split("\n"):
        stripped = line.strip()

        if line.startswith(JEST_FILE_PREFIX):
            current_file = line[len(JEST_FILE_PREFIX):].strip()
            collecting = False
        elif stripped.startswith(JEST_TEST_MARKER):
            current_test = stripped[len(JEST_TEST_MARKER):].strip()
            collecting = True
            error_lines = []
        elif collecting and stripped:
            error_lines.append(line)
        elif collecting and error_lines:
            error = "\n".join(error_lines)
            failures.append(
                NormalizedFailure(
                    test_name=current_test or UNKNOWN_TEST,
                    file=current_file,
                    error=error,
                    line=extract_line_number(error),
                    test_type=_test_type_for(current_file),
                )
            )
            collecting = False

    return failures


def parse_pytest_output(output: str) -> list[NormalizedFailure]:
    """Parse the pytest short test summary.

    Example::

        FAILED tests/test_auth.py::test_login - AssertionError: Expected 200, got 401

    Lines without the `` - `` separator are skipped. pytest does not print a
    line number in the summary, so ``line`` is always None.
    """
    failures: list[NormalizedFailure] = []

    for line in output.split("\n"):
        if PYTEST_FAILED_PREFIX not in line:
            continue

        parts = line.split(PYTEST_SEPARATOR)
        if len(parts) < 2:
            continue

        test_info = parts[0].replace(PYTEST_FAILED_PREFIX, "", 1).strip()
        error = parts[1].strip()
        file, _, test_name = test_info.partition(PYTEST_NODE_SEPARATOR)

        failures.append(
            NormalizedFailure(
                test_name=test_name or UNKNOWN_TEST,
                file=file or None,
                error=error,
                line=None,
                test_type=_test_type_for(file),
            )
        )

    return failures


def parse_generic_output(output: str) -> list[NormalizedFailure]:
    """Fallback parser for unknown runners.

    Every line mentioning one of GENERIC_TRIGGERS opens a block made of that
    line and the following lines (GENERIC_CONTEXT_LINES in total). The next
    GENERIC_SKIP_LINES lines are then skipped so one error is not reported
    several times.
    """
    failures: list[NormalizedFailure] = []
    lines = output.split("\n")

    i = 0
    while i < len(lines):
        if any(trigger in lines[i] for trigger in GENERIC_TRIGGERS):
            context = "\n".join(lines[i:i + GENERIC_CONTEXT_LINES])

            file_match = _GENERIC_FILE_PATTERN.search(context)
            test_match = _GENERIC_TEST_PATTERN.search(context)

            failures.append(
                NormalizedFailure(
                    test_name=test_match.group(1) if test_match else UNKNOWN_TEST,
                    file=file_match.group(0) if file_match else UNKNOWN_FILE,
                    error=context,
                    line=extract_line_number(context),
                    test_type=FailureTestType.UNKNOWN,
                )
            )
            i += GENERIC_SKIP_LINES
        i += 1

    return failures


PARSERS: dict[FrameworkKind, FailureParser] = {
    FrameworkKind.JEST: parse_jest_output,
    FrameworkKind.PYTEST: parse_pytest_output,
    FrameworkKind.GENERIC: parse_generic_output,
}


def extract_failures(output: str, framework: FrameworkKind | None = None) -> list[NormalizedFailure]:
    """Detect the output family (unless given) and run its parser."""
    if not output:
        return []

    kind = framework or detect_framework(output)
    failures = PARSERS[kind](output)
    logger.debug("Parsed %d failure(s) from %s output", len(failures), kind)
    return failures
