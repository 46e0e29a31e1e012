import logging
import re
import time

from rwatch.logs import CorrelationFormatter, format_correlation_id, format_exception, log

LINE_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3} \[\d{10}\] (?P<msg>.*)$")


def test_log_line_is_well_formed(log_lines):
    log("Connecting to Redis.", 7)

    lines = log_lines()
    assert len(lines) == 1
    m = LINE_RE.match(lines[0])
    assert m, lines[0]
    assert "[0000000007]" in lines[0]
    assert m.group("msg") == "Connecting to Redis."


def test_default_correlation_id_is_zero(log_lines):
    log("Opening connection.")
    assert "[0000000000] Opening connection." in log_lines()[0]


def test_correlation_field_stays_ten_digits():
    assert format_correlation_id(0) == "0000000000"
    assert format_correlation_id(42) == "0000000042"
    assert format_correlation_id(9_999_999_999) == "9999999999"
    assert len(format_correlation_id(123_456_789_012_345)) == 10


def test_multiline_message_becomes_one_line(log_lines):
    log("Exception thrown: boom\n  at somewhere\n  at elsewhere", 3)

    lines = log_lines()
    assert len(lines) == 1
    assert LINE_RE.match(lines[0])


def test_timestamp_uses_record_time_with_milliseconds():
    record = logging.LogRecord("rwatch", logging.INFO, __file__, 1, "hello", None, None)
    record.created = time.mktime((2024, 5, 1, 13, 45, 12, 0, 0, -1)) + 0.3456
    record.correlation_id = 1

    line = CorrelationFormatter().format(record)

    assert line == "2024-05-01 13:45:12.345 [0000000001] hello"


def test_percent_signs_are_kept_verbatim(log_lines):
    log("Result: `100%`.", 1)
    assert log_lines()[0].endswith("Result: `100%`.")


def test_format_exception_follows_cause_chain():
    try:
        try:
            raise OSError("Connection refused")
        except OSError as inner:
            raise RuntimeError("connect failed") from inner
    except RuntimeError as e:
        assert format_exception(e) == "RuntimeError: connect failed ---> OSError: Connection refused"


def test_format_exception_follows_implicit_context_unless_suppressed():
    try:
        try:
            raise KeyError("k")
        except KeyError:
            raise ValueError("bad")
    except ValueError as e:
        assert format_exception(e) == "ValueError: bad ---> KeyError: 'k'"

    try:
        try:
            raise KeyError("k")
        except KeyError:
            raise ValueError("bad") from None
    except ValueError as e:
        assert format_exception(e) == "ValueError: bad"
