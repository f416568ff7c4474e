"""
Risk classification for files.

A file is riskier when it keeps changing together with the same other file, or
when many different people changed it recently. The two signals use unrelated
scales, so each has its own pair of thresholds.
"""
from enum import Enum
from typing import Mapping

from commitcoupling.config import RiskThresholds


class RiskTier(str, Enum):
    """Likelihood that a file carries high-interest technical debt."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def peak_co_change(co_change_counts: Mapping[str, int]) -> int:
    """Largest co-change count of a file, 0 when it never co-changed."""
    return max(co_change_counts.values(), default=0)


def classify_counts(peak: int, recent_contributor_count: int, thresholds: RiskThresholds) -> RiskTier:
    """
    Map raw counters to a risk tier.

    Both checks are inclusive. The high check is evaluated on its own, so a
    file can jump from low straight to high.
    """
    tier = RiskTier.LOW
    if (
        peak >= thresholds.medium_co_changes
        or recent_contributor_count >= thresholds.medium_contributors
    ):
        tier = RiskTier.MEDIUM
    if (
        peak >= thresholds.high_co_changes
        or recent_contributor_count >= thresholds.high_contributors
    ):
        tier = RiskTier.HIGH
    return tier


def classify(stats, thresholds: RiskThresholds) -> RiskTier:
    """Classify a FileStats record."""
    return classify_counts(
        peak_co_change(stats.co_change_counts),
        len(stats.recent_contributors),
        thresholds,
    )
