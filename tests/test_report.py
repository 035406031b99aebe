"""Tests for risk score report parsing."""

import pytest

from casb_risk_sync.casb import parse_risk_report
from casb_risk_sync.errors import ReportUnavailable

from .conftest import HEADER, report_row


def make_report(*rows: str) -> str:
    return "\n".join([HEADER, *rows]) + "\n"


def test_header_is_skipped():
    report = parse_risk_report(make_report(report_row("acct1", "alice@example.com", "12")))
    assert report.scores == {"acct1": 12}
    assert report.aliases == {"acct1": ["alice@example.com"]}


def test_max_score_across_rows_truncated():
    text = make_report(
        report_row("acct1", "alice@example.com", "42.9"),
        report_row("acct1", "alice@corp.example.com", "67.99"),
        report_row("acct1", "alice@example.com", "12"),
    )
    report = parse_risk_report(text)
    assert report.scores == {"acct1": 67}
    assert report.aliases == {"acct1": ["alice@example.com", "alice@corp.example.com"]}


def test_short_rows_are_skipped():
    text = make_report(
        "acct9,short@example.com,99,only,five",
        report_row("acct1", "alice@example.com", "10"),
    )
    report = parse_risk_report(text)
    assert list(report.scores) == ["acct1"]
    assert len(report) == 1


def test_unparseable_score_counts_as_zero():
    report = parse_risk_report(make_report(report_row("acct1", "alice@example.com", "n/a")))
    assert report.scores == {"acct1": 0}


def test_crlf_line_endings():
    text = "\r\n".join([HEADER, report_row("acct1", "alice@example.com", "33")])
    assert parse_risk_report(text).scores == {"acct1": 33}


def test_only_newlines_separate_rows():
    row = "acct1,alice@example.com,61,Sales\x0cEMEA,Rep Lead,US,1,0,0,2024-01-01"
    report = parse_risk_report(make_report(row))
    assert report.scores == {"acct1": 61}


def test_header_only_report_is_empty():
    report = parse_risk_report(HEADER)
    assert report.scores == {}
    assert report.aliases == {}


def test_parsing_is_idempotent():
    text = make_report(
        report_row("acct1", "alice@example.com", "55.5"),
        report_row("acct2", "bob@example.com", "3"),
    )
    first = parse_risk_report(text)
    second = parse_risk_report(text)
    assert first == second


@pytest.mark.parametrize(
    "body",
    ["<html><body>Please log in</body></html>", "<!DOCTYPE html>\n<HTML lang='en'>"],
)
def test_login_page_means_report_unavailable(body):
    with pytest.raises(ReportUnavailable):
        parse_risk_report(body)
