"""Tests for moving users between risk-level groups."""

import pytest

from casb_risk_sync.directory import AzureDirectory
from casb_risk_sync.errors import CommandError, DirectoryError
from casb_risk_sync.sync import MembershipReconciler

from .conftest import FakeRunner

RISK_GROUPS = ["low", "medium", "high"]
GROUP_IDS = {
    "az ad group show -g low": "g-low",
    "az ad group show -g medium": "g-medium",
    "az ad group show -g high": "g-high",
}


def make_runner(current_groups: str, **extra) -> FakeRunner:
    responses = {
        "az ad user show --id alice@example.com": "u-alice",
        "get-member-groups --id u-alice": current_groups,
        **GROUP_IDS,
    }
    responses.update(extra)
    return FakeRunner(responses)


def mutations(runner: FakeRunner) -> list[str]:
    return runner.calls_matching("az ad group member") + runner.calls_matching("az rest")


def test_already_in_target_group_is_a_no_op():
    runner = make_runner("high\nAll Staff")
    result = MembershipReconciler(AzureDirectory(runner), RISK_GROUPS).reconcile(
        "alice@example.com", "high"
    )
    assert not result.changed
    assert mutations(runner) == []


def test_move_removes_old_tier_and_adds_new():
    runner = make_runner("medium\nAll Staff\nVPN Users")
    result = MembershipReconciler(AzureDirectory(runner), RISK_GROUPS).reconcile(
        "alice@example.com", "high"
    )

    assert result.changed
    assert result.removed_groups == ["medium"]
    assert runner.calls_matching("az ad group member remove") == [
        "az ad group member remove -g g-medium --member-id u-alice"
    ]
    assert runner.calls_matching("az ad group member add") == [
        "az ad group member add -g g-high --member-id u-alice"
    ]
    # Groups outside the risk-level list are never looked up or touched
    assert not any("All Staff" in c or "VPN" in c for c in runner.calls_matching("az ad group"))


def test_user_without_risk_group_is_only_added():
    runner = make_runner("All Staff")
    result = MembershipReconciler(AzureDirectory(runner), RISK_GROUPS).reconcile(
        "alice@example.com", "low"
    )
    assert result.removed_groups == []
    assert runner.calls_matching("az ad group member remove") == []
    assert len(runner.calls_matching("az ad group member add")) == 1


def test_user_in_several_risk_groups_is_removed_from_all():
    runner = make_runner("low\nmedium")
    result = MembershipReconciler(AzureDirectory(runner), RISK_GROUPS).reconcile(
        "alice@example.com", "high"
    )
    assert result.removed_groups == ["low", "medium"]
    assert len(runner.calls_matching("az ad group member remove")) == 2


def test_failed_removal_stops_reconciliation():
    runner = make_runner(
        "low\nmedium",
        **{"member remove -g g-low": CommandError("Insufficient privileges", 1)},
    )
    reconciler = MembershipReconciler(AzureDirectory(runner), RISK_GROUPS)

    with pytest.raises(CommandError, match="Insufficient privileges"):
        reconciler.reconcile("alice@example.com", "high")

    assert runner.calls_matching("member remove -g g-medium") == []
    assert runner.calls_matching("az ad group member add") == []


def test_sessions_revoked_after_move():
    runner = make_runner("low")
    reconciler = MembershipReconciler(
        AzureDirectory(runner), RISK_GROUPS, revoke_sessions=True
    )
    result = reconciler.reconcile("alice@example.com", "high")

    assert result.sessions_revoked
    assert runner.calls[-1] == (
        "az rest --method POST --uri "
        "https://graph.microsoft.com/v1.0/users/u-alice/revokeSignInSessions"
    )


def test_sessions_not_revoked_when_nothing_changes():
    runner = make_runner("high")
    reconciler = MembershipReconciler(
        AzureDirectory(runner), RISK_GROUPS, revoke_sessions=True
    )
    reconciler.reconcile("alice@example.com", "high")
    assert runner.calls_matching("az rest") == []


def test_failed_revocation_propagates_without_undoing_move():
    runner = make_runner("low", **{"az rest": CommandError("Forbidden", 1)})
    reconciler = MembershipReconciler(
        AzureDirectory(runner), RISK_GROUPS, revoke_sessions=True
    )
    with pytest.raises(CommandError):
        reconciler.reconcile("alice@example.com", "high")

    assert len(runner.calls_matching("az ad group member add")) == 1
    assert len(runner.calls_matching("az ad group member remove")) == 1


def test_nickname_mode_matches_mail_nickname():
    runner = FakeRunner(
        {
            "mailNickname==": "u-alice",
            "get-member-groups --id u-alice": "medium",
            **GROUP_IDS,
        }
    )
    reconciler = MembershipReconciler(AzureDirectory(runner), RISK_GROUPS, mail_nickname=True)
    reconciler.reconcile("alice@corp.example.com", "high")

    lookup = runner.calls[0]
    assert lookup.startswith("az ad user list --query")
    assert "alice" in lookup and "corp.example.com" not in lookup
    assert runner.calls_matching("az ad user show") == []


def test_unknown_target_group_raises():
    runner = make_runner("low", **{"az ad group show -g high": ""})
    reconciler = MembershipReconciler(AzureDirectory(runner), RISK_GROUPS)
    with pytest.raises(DirectoryError, match="group not found"):
        reconciler.reconcile("alice@example.com", "high")
