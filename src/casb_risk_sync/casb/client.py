"""Download the risk score report from Forcepoint CASB."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from ..errors import ReportUnavailable

logger = logging.getLogger(__name__)


class ReportFetcher(Protocol):
    """Anything that can fetch the raw risk score report."""

    def fetch(self) -> str: ...


class CasbReportClient:
    """Fetch the risk score CSV with HTTP basic authentication."""

    def __init__(
        self,
        url: str,
        user_name: str,
        password: str,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the CASB report client.

        Args:
            url: Risk score report URL
            user_name: CASB basic-auth user name
            password: CASB basic-auth password
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.url = url
        self.auth = httpx.BasicAuth(user_name, password)
        self.transport = transport

    def fetch(self) -> str:
        """Return the report body as text."""
        logger.debug("Downloading risk scores from %s", self.url)
        try:
            with httpx.Client(auth=self.auth, transport=self.transport) as client:
                response = client.get(self.url)
        except httpx.HTTPError as e:
            raise ReportUnavailable(f"failed in downloading risk scores from CASB: {e}") from e

        if response.status_code >= 400:
            raise ReportUnavailable(
                f"CASB returned HTTP {response.status_code} for the risk score report"
            )
        return response.text
