"""Polling engine: fetch, parse, map and reconcile on a fixed interval."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..casb import ReportFetcher, RiskReport, parse_risk_report
from ..directory import AzureDirectory, nickname_of
from ..errors import ConfigError, RiskSyncError
from .reconciler import MembershipReconciler
from .tiers import assign_tiers

if TYPE_CHECKING:
    from ..config import AppConfig

logger = logging.getLogger(__name__)


@dataclass
class CycleSummary:
    """Accumulates statistics for one polling cycle."""

    accounts: int = 0
    users_matched: int = 0
    users_assigned: int = 0
    users_unchanged: int = 0
    users_moved: int = 0
    memberships_removed: int = 0
    sessions_revoked: int = 0
    users_failed: int = 0


def resolve_directory_users(
    report: RiskReport,
    directory_users: list[str],
    mail_nickname: bool = False,
) -> dict[str, int]:
    """Keep the report login names that exist in the directory.

    Returns ``login name -> account score``. In nickname mode a login name
    is compared by its part before ``@``.
    """
    known = set(directory_users)
    found: dict[str, int] = {}
    for account, login_names in report.aliases.items():
        for name in login_names:
            lookup = nickname_of(name) if mail_nickname else name
            if lookup in known:
                found[name] = report.scores[account]
    return found


class SyncEngine:
    """Runs risk-score-to-group sync cycles."""

    def __init__(
        self,
        fetcher: ReportFetcher,
        directory: AzureDirectory,
        config_provider: Callable[[], AppConfig],
    ):
        """
        Initialize the sync engine.

        Args:
            fetcher: Source of the raw CASB risk score report
            directory: Azure AD access
            config_provider: Returns the configuration to use; called once
                per cycle so reloaded settings apply from the next cycle on
        """
        self.fetcher = fetcher
        self.directory = directory
        self.config_provider = config_provider

    def run_cycle(self) -> CycleSummary:
        """Run one fetch -> parse -> map -> reconcile pass."""
        config = self.config_provider()
        summary = CycleSummary()

        risk_groups = config.azure.group_names
        if not risk_groups:
            raise ConfigError("AZURE_GROUPS_NAME parameter is missing in your config file")
        ranges = config.risk_ranges()
        mail_nickname = config.risk_manager.mail_nickname

        report = parse_risk_report(self.fetcher.fetch())
        summary.accounts = len(report)
        logger.info("Downloaded risk scores for %d account(s)", summary.accounts)

        users = resolve_directory_users(
            report, self.directory.list_users(mail_nickname), mail_nickname
        )
        summary.users_matched = len(users)

        assignment = assign_tiers(users, ranges)
        summary.users_assigned = len(assignment)
        logger.debug(
            "%d of %d matched user(s) fall into a configured range",
            summary.users_assigned,
            summary.users_matched,
        )

        reconciler = MembershipReconciler(
            self.directory,
            risk_groups,
            mail_nickname=mail_nickname,
            revoke_sessions=config.risk_manager.terminate_user_active_session,
        )
        self._reconcile_all(reconciler, assignment, summary)

        logger.info(
            "Cycle done: %d matched, %d moved, %d unchanged, %d failed",
            summary.users_matched,
            summary.users_moved,
            summary.users_unchanged,
            summary.users_failed,
        )
        return summary

    def _reconcile_all(
        self,
        reconciler: MembershipReconciler,
        assignment: Mapping[str, str],
        summary: CycleSummary,
    ) -> None:
        for user, group in assignment.items():
            try:
                result = reconciler.reconcile(user, group)
            except RiskSyncError as e:
                logger.error("Failed to update risk-level group for %s: %s", user, e)
                summary.users_failed += 1
                continue

            if result.changed:
                summary.users_moved += 1
                summary.memberships_removed += len(result.removed_groups)
                if result.sessions_revoked:
                    summary.sessions_revoked += 1
            else:
                summary.users_unchanged += 1

    def run_forever(
        self,
        sleep: Callable[[float], None] = time.sleep,
        max_cycles: int | None = None,
    ) -> int:
        """Run cycles until interrupted, or until *max_cycles* have run.

        Errors are logged and the next cycle runs on schedule. Returns the
        number of cycles run.
        """
        cycles = 0
        while True:
            try:
                self.run_cycle()
            except RiskSyncError as e:
                logger.error("%s", e)
            except Exception:
                logger.exception("Unexpected error during sync cycle")
            cycles += 1

            if max_cycles is not None and cycles >= max_cycles:
                return cycles

            interval = self.config_provider().risk_manager.interval_time
            logger.debug("Next cycle in %d minute(s)", interval)
            sleep(interval * 60)
