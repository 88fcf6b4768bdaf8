"""Unit tests for CI output parsing.

Covers framework detection, the three parsing strategies and the shared
line-number heuristic in server.services.failure_parser.
"""

import pytest

from server.models import FailureTestType, FrameworkKind
from server.services.failure_parser import (
    PARSERS,
    UNKNOWN_FILE,
    UNKNOWN_TEST,
    detect_framework,
    extract_failures,
    extract_line_number,
    parse_generic_output,
    parse_jest_output,
    parse_pytest_output,
)

JEST_LOG = """> app@1.0.0 test
> jest

FAIL src/components/__tests__/Login.test.js
  ● Login › should handle login failure

    expect(received).toBe(expected)
    Expected: 401
    at Object.<anonymous> (src/components/__tests__/Login.test.js:42:17)

PASS src/utils/format.test.js
"""

PYTEST_LOG = """============================= test session starts ==============================
platform linux -- Python 3.12.1, pytest-8.0.0
collected 12 items

tests/test_auth.py ..F.
tests/integration/test_api.py .F

=========================== short test summary info ============================
FAILED tests/test_auth.py::test_login - AssertionError: Expected status code 200, got 401
FAILED tests/integration/test_api.py::test_create - KeyError: 'id'
========================= 2 failed, 10 passed in 1.23s =========================
"""


@pytest.mark.unit
class TestDetectFramework:
    def test_jest_needs_fail_header_and_runner_name(self):
        assert detect_framework("FAIL src/a.test.js\n> jest") == FrameworkKind.JEST
        assert detect_framework("$ npm test\nFAIL src/a.test.js") == FrameworkKind.JEST

    def test_jest_marker_counts_as_runner_signature(self):
        assert detect_framework("FAIL src/x.test.js\n● renders correctly\n") == FrameworkKind.JEST

    def test_fail_header_alone_is_generic(self):
        assert detect_framework("FAIL src/a.test.js\nsomething broke") == FrameworkKind.GENERIC

    def test_pytest(self):
        assert detect_framework(PYTEST_LOG) == FrameworkKind.PYTEST

    def test_failed_without_pytest_is_generic(self):
        assert detect_framework("FAILED build step - exit code 1") == FrameworkKind.GENERIC

    def test_jest_wins_over_pytest(self):
        text = "FAIL src/a.test.js\njest\nFAILED x - y\npytest"
        assert detect_framework(text) == FrameworkKind.JEST

    def test_detection_is_deterministic(self):
        for text in (JEST_LOG, PYTEST_LOG, "", "All 10 tests passed"):
            assert detect_framework(text) == detect_framework(text)

    def test_empty_text_is_generic(self):
        assert detect_framework("") == FrameworkKind.GENERIC


@pytest.mark.unit
class TestExtractLineNumber:
    def test_line_word(self):
        assert extract_line_number("SyntaxError at Line 12") == 12

    def test_colon_form(self):
        assert extract_line_number("at foo (src/a.js:42:17)") == 42

    def test_line_word_takes_priority(self):
        assert extract_line_number("src/a.js:42:17 see line 7") == 7

    def test_no_number(self):
        assert extract_line_number("Expected 200 got 404") is None


@pytest.mark.unit
class TestParseJestOutput:
    def test_single_block(self):
        log = "FAIL src/a.test.js\n● suite > test\nfirst line\nsecond line\n\n"

        failures = parse_jest_output(log)

        assert len(failures) == 1
        failure = failures[0]
        assert failure.file == "src/a.test.js"
        assert failure.test_name == "suite > test"
        assert failure.error == "first line\nsecond line"
        assert failure.test_type == FailureTestType.UNIT
        assert failure.line is None

    def test_realistic_log(self):
        failures = parse_jest_output(JEST_LOG)

        assert len(failures) == 1
        assert failures[0].test_name == "Login › should handle login failure"
        assert failures[0].file == "src/components/__tests__/Login.test.js"
        assert "Expected: 401" in failures[0].error
        assert failures[0].line == 42

    def test_blank_line_right_after_marker_does_not_flush(self):
        log = "FAIL src/a.test.js\n● t\n\n  boom\n\n"

        failures = parse_jest_output(log)

        assert len(failures) == 1
        assert failures[0].error == "  boom"

    def test_integration_file(self):
        log = "FAIL tests/integration/api.test.js\n● api works\nTimeout\n\n"

        failures = parse_jest_output(log)

        assert failures[0].test_type == FailureTestType.INTEGRATION

    def test_several_tests_in_one_file(self):
        log = "FAIL src/a.test.js\n● one\nerr 1\n\n● two\nerr 2\n\n"

        failures = parse_jest_output(log)

        assert [f.test_name for f in failures] == ["one", "two"]
        assert all(f.file == "src/a.test.js" for f in failures)

    def test_unterminated_block_is_dropped(self):
        assert parse_jest_output("FAIL src/a.test.js\n● t\nboom") == []

    def test_marker_without_file(self):
        failures = parse_jest_output("● lonely test\nboom\n\n")

        assert failures[0].file is None
        assert failures[0].test_type == FailureTestType.UNIT


@pytest.mark.unit
class TestParsePytestOutput:
    def test_summary_line(self):
        failures = parse_pytest_output("FAILED tests/test_x.py::test_y - AssertionError: boom")

        assert len(failures) == 1
        failure = failures[0]
        assert failure.file == "tests/test_x.py"
        assert failure.test_name == "test_y"
        assert failure.error == "AssertionError: boom"
        assert failure.line is None
        assert failure.test_type == FailureTestType.UNIT

    def test_realistic_log(self):
        failures = parse_pytest_output(PYTEST_LOG)

        assert [f.test_name for f in failures] == ["test_login", "test_create"]
        assert failures[1].test_type == FailureTestType.INTEGRATION
        assert failures[1].error == "KeyError: 'id'"

    def test_line_without_separator_is_skipped(self):
        assert parse_pytest_output("FAILED tests/test_x.py::test_y") == []

    def test_class_based_test_keeps_full_node_path(self):
        failures = parse_pytest_output("FAILED tests/test_x.py::TestA::test_b - ValueError")

        assert failures[0].file == "tests/test_x.py"
        assert failures[0].test_name == "TestA::test_b"

    def test_missing_test_name(self):
        failures = parse_pytest_output("FAILED tests/test_x.py - collection error")

        assert failures[0].test_name == UNKNOWN_TEST


@pytest.mark.unit
class TestParseGenericOutput:
    def test_error_block(self):
        log = "Running test checkout_flow\nError: cart is empty\n    at cart.js:10:5\n"

        failures = parse_generic_output(log)

        assert len(failures) == 1
        failure = failures[0]
        assert failure.file == "cart.js"
        assert failure.line == 10
        assert failure.test_type == FailureTestType.UNKNOWN
        assert failure.error.startswith("Error: cart is empty")

    def test_test_name_from_context(self):
        failures = parse_generic_output("Failure in test login_flow\nsee app/login.py")

        assert failures[0].test_name == "login_flow"
        assert failures[0].file == "app/login.py"

    def test_fallbacks(self):
        failures = parse_generic_output("Build FAIL")

        assert failures[0].test_name == UNKNOWN_TEST
        assert failures[0].file == UNKNOWN_FILE

    def test_context_is_capped_at_ten_lines(self):
        log = "Error: boom\n" + "\n".join(f"detail {i}" for i in range(20))

        failures = parse_generic_output(log)

        assert len(failures[0].error.split("\n")) == 10

    def test_skips_ahead_after_a_match(self):
        # The repeats right after the first match fall inside the skipped window.
        lines = ["Error: one"] + ["Error: repeated"] * 5 + ["Error: two"]

        failures = parse_generic_output("\n".join(lines))

        assert len(failures) == 2
        assert failures[1].error.startswith("Error: two")

    @pytest.mark.parametrize(
        "text",
        ["All 10 tests passed", "ok\nok\nok", "error: lowercase does not count", "   "],
    )
    def test_no_trigger_returns_empty(self, text):
        assert parse_generic_output(text) == []


@pytest.mark.unit
class TestExtractFailures:
    @pytest.mark.parametrize("kind", list(FrameworkKind))
    def test_empty_input(self, kind):
        assert extract_failures("", kind) == []
        assert PARSERS[kind]("") == []

    def test_empty_input_without_hint(self):
        assert extract_failures("") == []

    def test_dispatches_on_detected_framework(self):
        assert extract_failures(PYTEST_LOG)[0].test_name == "test_login"

    def test_explicit_framework_overrides_detection(self):
        failures = extract_failures("FAILED a.py::t - boom", FrameworkKind.PYTEST)

        assert failures[0].test_name == "t"

    def test_end_to_end_sample(self):
        failures = extract_failures("FAIL src/x.test.js\n● renders correctly\nExpected 200 got 404\n\n")

        assert len(failures) == 1
        assert failures[0].test_name == "renders correctly"
        assert failures[0].error == "Expected 200 got 404"
