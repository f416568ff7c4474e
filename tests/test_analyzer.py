"""Integration tests for the complete analysis workflow."""
import threading

import git
import pytest

from commitcoupling import analyzer as analyzer_module
from commitcoupling.analyzer import RepoAnalyzer, get_repo_stats
from commitcoupling.config import AnalyzerConfig, RiskThresholds
from commitcoupling.errors import AnalysisCancelled, CommandError, RepositoryError
from commitcoupling.git_files import get_git_tracked_files
from commitcoupling.line_counter import UNREADABLE_LINE_COUNT
from commitcoupling.risk import RiskTier
from commitcoupling.tree import DirectoryNode, iter_files


def files_by_path(result):
    return {node.path: node.stats for node in iter_files(result.tree)}


class TestEndToEndWorkflow:
    """Integration tests for get_repo_stats."""

    @pytest.fixture
    def config(self, coupling_repo, recent_cutoff):
        return AnalyzerConfig(
            repo_path=coupling_repo, exclude_filters=(), recent_cutoff=recent_cutoff
        )

    def test_tree_structure(self, config):
        result = get_repo_stats(config)

        assert [node.path for node in result.tree] == ["README.md", "lib", "src"]
        src = result.tree[2]
        assert isinstance(src, DirectoryNode)
        assert [child.path for child in src.children] == ["src/app.py", "src/util"]
        lib_util = result.tree[1].children[0]
        assert lib_util.path == "lib/util"
        assert src.children[1] is not lib_util

    def test_counts(self, config):
        result = get_repo_stats(config)

        assert result.file_count == 4
        assert result.commit_count == 6
        assert result.anomalies == []

    def test_file_statistics(self, config):
        stats = files_by_path(get_repo_stats(config))
        app = stats["src/app.py"]

        assert len(app.history) == 6
        assert app.contributors == ("Alice", "Bob", "Carol", "Dave")
        assert app.recent_contributors == ("Alice", "Bob", "Carol", "Dave")
        assert app.co_change_counts == {"src/util/helpers.py": 3, "lib/util/format.py": 1}
        assert app.line_count == 3

        readme = stats["README.md"]
        assert readme.contributors == ("Alice",)
        assert readme.recent_contributors == ()
        assert readme.co_change_counts == {}

    def test_risk_tiers(self, config):
        stats = files_by_path(get_repo_stats(config))

        assert stats["src/app.py"].risk_tier is RiskTier.MEDIUM
        assert stats["src/util/helpers.py"].risk_tier is RiskTier.MEDIUM
        assert stats["lib/util/format.py"].risk_tier is RiskTier.LOW
        assert stats["README.md"].risk_tier is RiskTier.LOW

    def test_high_contributor_threshold(self, coupling_repo, recent_cutoff):
        config = AnalyzerConfig(
            repo_path=coupling_repo,
            exclude_filters=(),
            recent_cutoff=recent_cutoff,
            thresholds=RiskThresholds(
                medium_co_changes=3, high_co_changes=6, medium_contributors=3, high_contributors=4
            ),
        )
        stats = files_by_path(get_repo_stats(config))

        assert stats["src/app.py"].risk_tier is RiskTier.HIGH
        assert stats["src/util/helpers.py"].risk_tier is RiskTier.MEDIUM

    def test_excluded_files_are_not_coupling_partners(self, coupling_repo, recent_cutoff):
        config = AnalyzerConfig(
            repo_path=coupling_repo, exclude_filters=("lib/",), recent_cutoff=recent_cutoff
        )
        stats = files_by_path(get_repo_stats(config))

        assert "lib/util/format.py" not in stats
        assert stats["src/app.py"].co_change_counts == {"src/util/helpers.py": 3}

    def test_serialized_structure(self, config):
        payload = get_repo_stats(config).to_dict()

        assert payload["fileCount"] == 4
        readme, lib, src = payload["tree"]
        assert readme["filePath"] == "README.md"
        assert lib["directoryPath"] == "lib"
        assert lib["children"][0]["directoryPath"] == "lib/util"
        app = src["children"][0]
        assert app["riskTier"] == "medium"
        assert {"filePath": "src/util/helpers.py", "count": 3} in app["recentlyChangedTogether"]
        assert [c["comment"] for c in app["gitHistory"]][0] == "Initial commit"

    def test_missing_working_tree_file_is_anomaly(self, config, coupling_repo):
        (coupling_repo / "README.md").unlink()

        result = get_repo_stats(config)

        assert [a.path for a in result.anomalies] == ["README.md"]
        assert files_by_path(result)["README.md"].line_count == UNREADABLE_LINE_COUNT
        assert result.file_count == 4

    def test_everything_excluded(self, coupling_repo, recent_cutoff):
        config = AnalyzerConfig(
            repo_path=coupling_repo, exclude_filters=("/", "."), recent_cutoff=recent_cutoff
        )
        result = get_repo_stats(config)

        assert result.tree == []
        assert result.commit_count == 0

    def test_recomputed_on_every_call(self, config, coupling_repo):
        first = get_repo_stats(config)
        (coupling_repo / "new.py").write_text("x = 1\n")
        repo = git.Repo(coupling_repo)
        repo.index.add(["new.py"])
        repo.index.commit("Add new file")
        repo.close()

        second = get_repo_stats(config)

        assert first.file_count == 4
        assert second.file_count == 5


class TestFailures:
    """Tests for errors that abort an analysis."""

    def test_invalid_repository(self, temp_dir):
        with pytest.raises(RepositoryError):
            get_repo_stats(AnalyzerConfig(repo_path=temp_dir / "missing"))

    def test_not_a_repository(self, temp_dir):
        with pytest.raises(RepositoryError):
            get_repo_stats(AnalyzerConfig(repo_path=temp_dir))

    def test_cancelled(self, coupling_repo):
        cancel = threading.Event()
        cancel.set()
        analyzer = RepoAnalyzer(AnalyzerConfig(repo_path=coupling_repo), cancel_event=cancel)

        with pytest.raises(AnalysisCancelled):
            analyzer.analyze()

    def test_stage_failure_cancels_log_reader(self, coupling_repo, monkeypatch):
        seen = []

        def failing_files(repo_path, exclude_filters=()):
            raise RepositoryError(repo_path, "listing failed")

        def waiting_log(repo_path, cancel_event=None):
            seen.append(cancel_event.wait(timeout=5))
            raise AnalysisCancelled("git log")

        monkeypatch.setattr(analyzer_module, "get_git_tracked_files", failing_files)
        monkeypatch.setattr(analyzer_module, "read_git_log", waiting_log)
        caller_event = threading.Event()
        analyzer = RepoAnalyzer(AnalyzerConfig(repo_path=coupling_repo), cancel_event=caller_event)

        with pytest.raises(RepositoryError):
            analyzer.analyze()
        assert seen == [True]
        assert not caller_event.is_set()

    def test_analyzer_reusable_after_failure(self, coupling_repo, recent_cutoff, monkeypatch):
        calls = []

        def flaky_files(repo_path, exclude_filters=()):
            calls.append(repo_path)
            if len(calls) == 1:
                raise CommandError(["git", "ls-files"], 128, "index.lock exists")
            return get_git_tracked_files(repo_path, exclude_filters)

        monkeypatch.setattr(analyzer_module, "get_git_tracked_files", flaky_files)
        analyzer = RepoAnalyzer(
            AnalyzerConfig(repo_path=coupling_repo, exclude_filters=(), recent_cutoff=recent_cutoff)
        )

        with pytest.raises(CommandError):
            analyzer.analyze()
        result = analyzer.analyze()

        assert result.file_count == 4
        assert result.commit_count == 6


class TestPartitionedAggregation:
    """Tests for aggregate_partitions in the pipeline."""

    def test_partitioned_matches_single_pass(self, coupling_repo, recent_cutoff):
        single = AnalyzerConfig(
            repo_path=coupling_repo, exclude_filters=(), recent_cutoff=recent_cutoff
        )
        partitioned = AnalyzerConfig(
            repo_path=coupling_repo,
            exclude_filters=(),
            recent_cutoff=recent_cutoff,
            aggregate_partitions=2,
        )

        assert files_by_path(get_repo_stats(partitioned)) == files_by_path(get_repo_stats(single))
