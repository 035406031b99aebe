"""Map CASB risk scores to risk-level groups using configured score ranges.

Range keys come in two shapes:

* ``"from-to"`` -- bounded, both ends inclusive (``"40-69"``)
* ``"N+"`` -- open-ended, any score >= N (``"70+"``)

Ranges are applied in configured order and a later match overwrites an
earlier one for the same user, so with overlapping ranges the *last*
matching range decides the group. List the highest tier last when ranges
overlap.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ..errors import ConfigFormatError, ConfigParseError


@dataclass(frozen=True)
class RiskRange:
    """One configured score range and the group it maps to."""

    key: str
    group: str
    from_value: int = 0
    to_value: int = 0
    max_value: int | None = None

    def matches(self, score: int) -> bool:
        if self.max_value is not None:
            return score >= self.max_value
        return self.from_value <= score <= self.to_value


def _to_int(text: str, key: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise ConfigParseError(
            f"failed in mapping riskScore range to a risk level group: {key!r}"
        ) from None


def parse_risk_range(key: str, group: str) -> RiskRange:
    """Parse a single ``range-key -> group`` entry."""
    key = str(key)
    if "+" in key:
        return RiskRange(key=key, group=group, max_value=_to_int(key.replace("+", ""), key))

    parts = key.split("-")
    if len(parts) != 2:
        raise ConfigFormatError(
            "format of mapping riskScore to a risk group is not correct "
            f"in the config file: {key!r}"
        )
    return RiskRange(
        key=key,
        group=group,
        from_value=_to_int(parts[0], key),
        to_value=_to_int(parts[1], key),
    )


def parse_risk_ranges(entries: Iterable[Mapping[str, str]]) -> list[RiskRange]:
    """Parse the ordered ``map_risk_score`` config list.

    Each list item is a mapping; items and the keys inside them keep their
    configured order.
    """
    ranges: list[RiskRange] = []
    for entry in entries:
        for key, group in entry.items():
            ranges.append(parse_risk_range(key, group))
    return ranges


def assign_tiers(scores: Mapping[str, int], ranges: Iterable[RiskRange]) -> dict[str, str]:
    """Map each user to a group name; users matching no range are left out."""
    assignment: dict[str, str] = {}
    for risk_range in ranges:
        for user, score in scores.items():
            if risk_range.matches(score):
                assignment[user] = risk_range.group
    return assignment
