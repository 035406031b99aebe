"""Shared fakes for casb-risk-sync tests."""

from __future__ import annotations

from typing import Any

import pytest

from casb_risk_sync.config import AppConfig

ENV_PREFIXES = ("CASB_", "AZURE_", "RISK_MANAGER_", "LOGGER_")
LEGACY_ENV_NAMES = {"RISK_SCORE_URL", "TERMINATE_USER_ACTIVE_SESSION", "MAP_RISK_SCORE"}

HEADER = "Account,Login Name,Risk Score,Department,Title,Country,Devices,Alerts,Incidents,Updated"


def report_row(account: str, login: str, score: str) -> str:
    return f"{account},{login},{score},Sales,Rep,US,1,0,0,2024-01-01"


class FakeRunner:
    """Command runner that answers from a table instead of running ``az``.

    A response key matches when it is a substring of the command; the
    longest matching key wins. Unmatched commands return an empty string.
    """

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[str] = []
        self.unlogged: list[str] = []

    def run(self, command: str, log_command: bool = True) -> str:
        self.calls.append(command)
        if not log_command:
            self.unlogged.append(command)
        matches = [key for key in self.responses if key in command]
        if not matches:
            return ""
        value = self.responses[max(matches, key=len)]
        if isinstance(value, Exception):
            raise value
        return value

    def calls_matching(self, fragment: str) -> list[str]:
        return [c for c in self.calls if fragment in c]


class FakeFetcher:
    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls = 0

    def fetch(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig.from_dict(
        {
            "casb": {
                "user_name": "casb-reader",
                "password": "casb-secret",
                "risk_score_url": "https://casb.example.com/reports/riskScore.csv",
            },
            "azure": {
                "admin_login_name": "admin@example.com",
                "admin_login_password": "azure-secret",
                "groups_name": "low, medium, high",
            },
            "risk_manager": {
                "interval_time": 10,
                "map_risk_score": [
                    {"0-39": "low"},
                    {"40-69": "medium"},
                    {"70+": "high"},
                ],
            },
        }
    )
