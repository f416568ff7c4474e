"""
Coupling aggregation for commitcoupling.

Combines the tracked file list with the commit history into one FileStats
record per file in a single pass over the commits.

Co-change counts and recent contributors only consider commits newer than the
recency cutoff; history and contributors are all-time. Co-change maps are not
guaranteed to be symmetric: a partner file that is not in the file list still
shows up in a listed file's map but never gets a record of its own.
"""
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from commitcoupling.git_history import Commit
from commitcoupling.logging_config import get_logger
from commitcoupling.risk import RiskTier

logger = get_logger(__name__)


@dataclass(frozen=True)
class FileStats:
    """
    A tracked file and the statistics derived from its history.

    Instances are built once per analysis and never modified.
    """

    path: str
    line_count: int
    history: tuple[Commit, ...]  # oldest first
    contributors: tuple[str, ...]  # all-time, first-seen order
    recent_contributors: tuple[str, ...]
    co_change_counts: Mapping[str, int] = field(default_factory=dict)
    risk_tier: RiskTier = RiskTier.LOW

    @property
    def recently_changed_together(self) -> list[dict]:
        return [
            {"filePath": path, "count": count} for path, count in self.co_change_counts.items()
        ]

    def to_dict(self) -> dict:
        return {
            "filePath": self.path,
            "linesOfCode": self.line_count,
            "gitHistory": [commit.to_dict() for commit in self.history],
            "contributors": list(self.contributors),
            "recentContributors": list(self.recent_contributors),
            "recentlyChangedTogether": self.recently_changed_together,
            "riskTier": self.risk_tier.value,
        }


class _FileAccumulator:
    """Mutable per-file counters, only used while aggregating."""

    __slots__ = ("history", "contributors", "recent_contributors", "co_change_counts")

    def __init__(self):
        self.history: list[Commit] = []
        # dicts double as insertion-ordered sets
        self.contributors: dict[str, None] = {}
        self.recent_contributors: dict[str, None] = {}
        self.co_change_counts: dict[str, int] = {}

    def add(self, commit: Commit, path: str, is_recent: bool) -> None:
        self.history.append(commit)
        self.contributors.setdefault(commit.author_name, None)
        if not is_recent:
            return

        self.recent_contributors.setdefault(commit.author_name, None)
        for other in commit.changed_files:
            if other != path:
                self.co_change_counts[other] = self.co_change_counts.get(other, 0) + 1

    def merge(self, later: "_FileAccumulator") -> None:
        """Fold in the accumulator of a later, disjoint commit range."""
        self.history.extend(later.history)
        for author in later.contributors:
            self.contributors.setdefault(author, None)
        for author in later.recent_contributors:
            self.recent_contributors.setdefault(author, None)
        for other, count in later.co_change_counts.items():
            self.co_change_counts[other] = self.co_change_counts.get(other, 0) + count


def _accumulate(
    files: frozenset[str], commits: Sequence[Commit], recent_cutoff: int
) -> dict[str, _FileAccumulator]:
    accumulators: dict[str, _FileAccumulator] = {}
    for commit in commits:
        is_recent = commit.timestamp > recent_cutoff
        for path in commit.changed_files:
            if path not in files:
                continue
            accumulator = accumulators.get(path)
            if accumulator is None:
                accumulator = accumulators[path] = _FileAccumulator()
            accumulator.add(commit, path, is_recent)
    return accumulators


def _split(commits: Sequence[Commit], partitions: int) -> list[Sequence[Commit]]:
    """Split commits into contiguous ranges of near-equal size."""
    size, remainder = divmod(len(commits), partitions)
    ranges = []
    start = 0
    for i in range(partitions):
        end = start + size + (1 if i < remainder else 0)
        ranges.append(commits[start:end])
        start = end
    return [r for r in ranges if r]


def aggregate(
    files: Iterable[str],
    commits: Sequence[Commit],
    recent_cutoff: int,
    line_counts: Optional[Mapping[str, int]] = None,
    partitions: int = 1,
) -> dict[str, FileStats]:
    """
    Build a FileStats record for every file.

    Args:
        files: Tracked file paths; the result keeps this order
        commits: Commits ordered oldest first
        recent_cutoff: Epoch milliseconds; commits strictly newer are recent
        line_counts: Line count per path (0 for paths not present)
        partitions: Number of contiguous commit ranges to accumulate in
            separate processes before merging

    Returns:
        Mapping of path to FileStats, every tier still LOW
    """
    files = list(files)
    file_set = frozenset(files)
    commits = list(commits)
    line_counts = line_counts or {}

    if partitions > 1 and len(commits) > partitions:
        ranges = _split(commits, partitions)
        with ProcessPoolExecutor(max_workers=len(ranges)) as executor:
            partial_results = list(
                executor.map(
                    _accumulate,
                    [file_set] * len(ranges),
                    ranges,
                    [recent_cutoff] * len(ranges),
                )
            )
        accumulators = partial_results[0]
        for partial in partial_results[1:]:
            for path, accumulator in partial.items():
                if path in accumulators:
                    accumulators[path].merge(accumulator)
                else:
                    accumulators[path] = accumulator
        logger.debug("Merged %d commit partitions", len(ranges))
    else:
        accumulators = _accumulate(file_set, commits, recent_cutoff)

    stats: dict[str, FileStats] = {}
    for path in files:
        accumulator = accumulators.get(path) or _FileAccumulator()
        stats[path] = FileStats(
            path=path,
            line_count=line_counts.get(path, 0),
            history=tuple(accumulator.history),
            contributors=tuple(accumulator.contributors),
            recent_contributors=tuple(accumulator.recent_contributors),
            co_change_counts=dict(accumulator.co_change_counts),
        )
    return stats
