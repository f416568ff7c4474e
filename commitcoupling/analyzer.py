"""
Repository analysis pipeline for commitcoupling.

Enumerates tracked files, reads the commit history, aggregates per-file
coupling statistics, classifies risk, and nests the result into a tree. Every
call recomputes everything from scratch.
"""
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import Optional

from commitcoupling.config import AnalyzerConfig
from commitcoupling.coupling import aggregate
from commitcoupling.errors import AnalysisCancelled, FileAccessError
from commitcoupling.git_files import get_git_tracked_files
from commitcoupling.git_history import parse_git_log, read_git_log
from commitcoupling.line_counter import count_lines
from commitcoupling.logging_config import get_logger
from commitcoupling.risk import classify
from commitcoupling.tree import TreeNode, build_tree, tree_to_dicts

logger = get_logger(__name__)


class _StageCancel(threading.Event):
    """Event that also reports set when the caller's event is set."""

    def __init__(self, parent: Optional[threading.Event] = None):
        super().__init__()
        self._parent = parent

    def is_set(self) -> bool:
        return super().is_set() or (self._parent is not None and self._parent.is_set())


def _check_cancelled(cancel: threading.Event, stage: str) -> None:
    if cancel.is_set():
        raise AnalysisCancelled(stage)


@dataclass
class AnalysisResult:
    """Output of one analysis run."""

    tree: list[TreeNode]
    anomalies: list[FileAccessError] = field(default_factory=list)
    file_count: int = 0
    commit_count: int = 0

    def to_dict(self) -> dict:
        return {
            "tree": tree_to_dicts(self.tree),
            "anomalies": [{"path": a.path, "reason": a.reason} for a in self.anomalies],
            "fileCount": self.file_count,
            "commitCount": self.commit_count,
        }


class RepoAnalyzer:
    """Computes commit coupling statistics for one repository."""

    def __init__(self, config: AnalyzerConfig, cancel_event: Optional[threading.Event] = None):
        """
        Initialize the analyzer.

        Args:
            config: Analyzer configuration
            cancel_event: Optional event; setting it aborts the analysis and
                kills a running ``git log``
        """
        self.config = config
        self.cancel_event = cancel_event

    def analyze(self) -> AnalysisResult:
        """
        Run the full analysis.

        Returns:
            AnalysisResult with the file tree and any file access anomalies

        Raises:
            RepositoryError: If the repository path is invalid
            CommandError: If a Git command fails
            AnalysisCancelled: If the cancel event was set
        """
        cancel = _StageCancel(self.cancel_event)
        files, raw_log = self._read_repository(cancel)
        _check_cancelled(cancel, "parse")

        commits = parse_git_log(raw_log, files) if files else []
        line_counts, anomalies = count_lines(
            self.config.repo_path, files, max_workers=self.config.max_workers
        )
        _check_cancelled(cancel, "aggregate")

        stats = aggregate(
            files,
            commits,
            self.config.recent_cutoff,
            line_counts,
            partitions=self.config.aggregate_partitions,
        )
        classified = [
            replace(file_stats, risk_tier=classify(file_stats, self.config.thresholds))
            for file_stats in stats.values()
        ]

        logger.info(
            "Analyzed %d files across %d commits (%d anomalies)",
            len(files),
            len(commits),
            len(anomalies),
        )
        return AnalysisResult(
            tree=build_tree(classified),
            anomalies=anomalies,
            file_count=len(files),
            commit_count=len(commits),
        )

    def _read_repository(self, cancel: _StageCancel) -> tuple[list[str], str]:
        """Enumerate files and read the raw log concurrently."""
        repo_path = self.config.repo_path

        with ThreadPoolExecutor(max_workers=2) as executor:
            files_future = executor.submit(
                get_git_tracked_files, repo_path, self.config.exclude_filters
            )
            log_future = executor.submit(read_git_log, repo_path, cancel)

            done, _ = wait([files_future, log_future], return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    # stop the other stage before the executor waits on it
                    cancel.set()
                    raise error

            return files_future.result(), log_future.result()



def get_repo_stats(
    config: AnalyzerConfig, cancel_event: Optional[threading.Event] = None
) -> AnalysisResult:
    """
    Analyze a repository and return its annotated file tree.

    Args:
        config: Analyzer configuration
        cancel_event: Optional event that aborts the analysis when set

    Returns:
        AnalysisResult; ``to_dict()["tree"]`` is the nested code structure
    """
    return RepoAnalyzer(config, cancel_event).analyze()
