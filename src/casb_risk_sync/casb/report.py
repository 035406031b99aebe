"""Parse the Forcepoint CASB risk score CSV report."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from ..errors import ReportUnavailable

# Rows with fewer fields than this are skipped
MIN_FIELDS = 10

# A login page instead of CSV means the CASB credentials were rejected
HTML_MARKER = "<html"


@dataclass
class RiskReport:
    """Per-account risk data from one report download."""

    scores: dict[str, int] = field(default_factory=dict)  # account -> max risk score
    aliases: dict[str, list[str]] = field(default_factory=dict)  # account -> login names

    def __len__(self) -> int:
        return len(self.scores)


def _parse_score(raw: str) -> int:
    """Parse a score as a float and truncate toward zero; unparseable -> 0."""
    try:
        value = float(raw)
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return int(value)


def parse_risk_report(text: str) -> RiskReport:
    """Build a :class:`RiskReport` from raw report text.

    The first line is a header. Each row is split on commas; field 0 is the
    account, field 1 a login name, field 2 the risk score. An account's
    score is the maximum over its rows and its login names accumulate
    without duplicates.
    """
    if HTML_MARKER in text.lower():
        raise ReportUnavailable(
            "failed in login to Forcepoint CASB in order to download riskScore.csv"
        )

    report = RiskReport()
    lines = text.strip().split("\n")
    for line in lines[1:]:
        parts = line.rstrip("\r").split(",")
        if len(parts) < MIN_FIELDS:
            continue

        account, login_name = parts[0].strip(), parts[1].strip()
        score = _parse_score(parts[2].strip())

        if account not in report.scores:
            report.scores[account] = 0
            report.aliases[account] = []
        if score > report.scores[account]:
            report.scores[account] = score
        if login_name not in report.aliases[account]:
            report.aliases[account].append(login_name)

    return report
