"""Azure AD operations, expressed as Azure CLI (``az``) commands."""

from __future__ import annotations

import logging
import re
import shlex

from ..errors import CommandError, DirectoryError, LoginError
from .runner import CommandRunner

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,4}$")

GRAPH_API = "https://graph.microsoft.com/v1.0"


def validate_email(email: str) -> str:
    """Return *email* if it looks like a lower-case login name, else raise ValueError."""
    if not EMAIL_PATTERN.match(email):
        raise ValueError(f"invalid email format: {email}")
    return email


def nickname_of(user: str) -> str:
    """The part of a login name before the first ``@``."""
    return user.split("@", 1)[0]


def _lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


class AzureDirectory:
    """Azure AD users and groups, managed through the Azure CLI."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def _az(self, *args: str) -> str:
        return self.runner.run(shlex.join(["az", *args]))

    # -- Session ---------------------------------------------------------------

    def current_account(self) -> str | None:
        """Return the signed-in user name, or None if the CLI has no session."""
        try:
            output = self._az("account", "show", "--query", "user.name", "-o", "tsv")
        except CommandError as e:
            if "az login" in e.detail:
                return None
            raise
        return output or None

    def login(self, username: str, password: str) -> None:
        """Sign the CLI in as the directory administrator."""
        logger.debug("Running: az login -u %s -p ********", username)
        try:
            self.runner.run(
                shlex.join(["az", "login", "-u", username, "-p", password]), log_command=False
            )
        except CommandError as e:
            if "invalid username or password" in e.detail.lower():
                raise LoginError(
                    "error in validating credentials due to invalid username or password"
                ) from None
            raise LoginError(e.detail) from None
        logger.info("Logged in to Azure as %s", username)

    def logout(self) -> None:
        self._az("logout")

    # -- Users -----------------------------------------------------------------

    def list_users(self, mail_nickname: bool = False) -> list[str]:
        """All user principal names (or mail nicknames) in the directory."""
        attribute = "mailNickname" if mail_nickname else "userPrincipalName"
        return _lines(self._az("ad", "user", "list", "--query", f"[].{attribute}", "-o", "tsv"))

    def resolve_user_id(self, user: str, mail_nickname: bool = False) -> str:
        """Return the object id for a login name.

        In nickname mode the name is cut at the first ``@`` and matched
        against ``mailNickname``.
        """
        if mail_nickname:
            nickname = nickname_of(user).replace("'", "\\'")
            ids = _lines(
                self._az(
                    "ad", "user", "list",
                    "--query", f"[?mailNickname=='{nickname}'].id",
                    "-o", "tsv",
                )
            )
            if len(ids) != 1:
                raise DirectoryError(
                    f"expected one user with mailNickname {nickname_of(user)!r}, found {len(ids)}"
                )
            return ids[0]

        user_id = self._az("ad", "user", "show", "--id", user, "--query", "id", "-o", "tsv")
        if not user_id:
            raise DirectoryError(f"user not found: {user}")
        return user_id

    def get_user_groups(self, user: str, mail_nickname: bool = False) -> tuple[str, list[str]]:
        """Return ``(object id, group display names)`` for a user."""
        user_id = self.resolve_user_id(user, mail_nickname)
        output = self._az(
            "ad", "user", "get-member-groups",
            "--id", user_id,
            "--query", "[].displayName",
            "-o", "tsv",
        )
        return user_id, _lines(output)

    def revoke_sessions(self, user_id: str) -> None:
        """Invalidate all refresh tokens and session cookies for a user."""
        self._az(
            "rest",
            "--method", "POST",
            "--uri", f"{GRAPH_API}/users/{user_id}/revokeSignInSessions",
        )

    # -- Groups ----------------------------------------------------------------

    def get_group_id(self, group: str) -> str:
        group_id = self._az("ad", "group", "show", "-g", group, "--query", "id", "-o", "tsv")
        if not group_id:
            raise DirectoryError(f"group not found: {group}")
        return group_id

    def add_user_to_group(self, user_id: str, group_id: str) -> None:
        self._az("ad", "group", "member", "add", "-g", group_id, "--member-id", user_id)

    def remove_user_from_group(self, user_id: str, group_id: str) -> None:
        self._az("ad", "group", "member", "remove", "-g", group_id, "--member-id", user_id)
