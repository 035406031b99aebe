"""Move a user into the risk-level group matching their current score."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..directory import AzureDirectory

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """What reconciling one user changed."""

    user: str
    target_group: str
    removed_groups: list[str] = field(default_factory=list)
    added: bool = False
    sessions_revoked: bool = False

    @property
    def changed(self) -> bool:
        return self.added


class MembershipReconciler:
    """Keep each user in exactly the risk-level group their score maps to.

    Only the configured risk-level groups are ever touched; a user's other
    group memberships are left alone. Directory errors propagate, and
    memberships already changed before a failure are not rolled back.
    """

    def __init__(
        self,
        directory: AzureDirectory,
        risk_groups: Iterable[str],
        mail_nickname: bool = False,
        revoke_sessions: bool = False,
    ):
        self.directory = directory
        self.risk_groups = list(risk_groups)
        self.mail_nickname = mail_nickname
        self.revoke_sessions = revoke_sessions

    def reconcile(self, user: str, target_group: str) -> ReconcileResult:
        result = ReconcileResult(user=user, target_group=target_group)

        user_id, current_groups = self.directory.get_user_groups(user, self.mail_nickname)
        if target_group in current_groups:
            logger.debug("User %s already in risk-level group %s", user, target_group)
            return result

        stale_groups = [g for g in current_groups if g in self.risk_groups]
        for group in stale_groups:
            group_id = self.directory.get_group_id(group)
            self.directory.remove_user_from_group(user_id, group_id)
            result.removed_groups.append(group)
            logger.info("Removed user:%s from previous risk-level group:%s", user, group)

        group_id = self.directory.get_group_id(target_group)
        self.directory.add_user_to_group(user_id, group_id)
        result.added = True
        logger.info("Added user:%s to new risk-level group:%s", user, target_group)

        if self.revoke_sessions:
            self.directory.revoke_sessions(user_id)
            result.sessions_revoked = True
            logger.warning("All active sessions for user %s have been terminated", user)

        return result
