"""Risk tier mapping, group reconciliation and the polling engine."""

from .engine import CycleSummary, SyncEngine, resolve_directory_users
from .reconciler import MembershipReconciler, ReconcileResult
from .tiers import RiskRange, assign_tiers, parse_risk_ranges

__all__ = [
    "CycleSummary",
    "MembershipReconciler",
    "ReconcileResult",
    "RiskRange",
    "SyncEngine",
    "assign_tiers",
    "parse_risk_ranges",
    "resolve_directory_users",
]
