"""Forcepoint CASB risk score report access."""

from .client import CasbReportClient, ReportFetcher
from .report import RiskReport, parse_risk_report

__all__ = [
    "CasbReportClient",
    "ReportFetcher",
    "RiskReport",
    "parse_risk_report",
]
