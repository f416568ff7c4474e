"""
Git history reader and parser for commitcoupling.

Runs ``git log`` and converts its output into Commit records, oldest first.

History policy: commits are pre-filtered by exact match against a known file
list (normally the tracked files). No ``--since`` cutoff is passed to Git, so
the history of a file is its full history; the recency cutoff is applied later
by the coupling aggregator.
"""
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

import git

from commitcoupling.errors import AnalysisCancelled, RepositoryError
from commitcoupling.git_files import command_error_from_git, open_repository, unquote_path
from commitcoupling.logging_config import get_logger

logger = get_logger(__name__)

COMMIT_MARKER = "--COMMIT--"
FIELD_SEPARATOR = "\x1f"

# ISO 8601 author dates keep parsing independent of the local time zone
LOG_FORMAT = f"{COMMIT_MARKER}%n%H%x1f%an%x1f%aI%x1f%s"
LOG_ARGS = ("--no-renames", "--name-status", f"--pretty=format:{LOG_FORMAT}")

# Added and modified; deletions never count as a change to a living file
KEPT_STATUSES = frozenset("AM")


@dataclass(frozen=True)
class Commit:
    """A single commit and the files it added or modified."""

    hash: str
    author_name: str
    timestamp: int  # epoch milliseconds
    changed_files: tuple[str, ...]
    message: str

    def to_dict(self) -> dict:
        return {
            "commitHash": self.hash,
            "authorName": self.author_name,
            "date": self.timestamp,
            "changedFiles": list(self.changed_files),
            "comment": self.message,
        }


def parse_iso_timestamp(value: str) -> int:
    """Convert an ISO 8601 timestamp with offset into epoch milliseconds."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return int(datetime.fromisoformat(value).timestamp() * 1000)


def _parse_record(lines: list[str], included: Optional[set[str]]) -> Optional[Commit]:
    """Parse one commit record; returns None when nothing relevant changed."""
    if not lines:
        return None

    header, *status_lines = lines
    fields = header.split(FIELD_SEPARATOR, 3)
    if len(fields) != 4:
        logger.warning("Skipping malformed git log header: %r", header)
        return None

    commit_hash, author_name, iso_date, message = fields
    try:
        timestamp = parse_iso_timestamp(iso_date)
    except ValueError:
        logger.warning("Skipping commit %s with unparseable date %r", commit_hash, iso_date)
        return None

    changed_files: list[str] = []
    seen: set[str] = set()
    for line in status_lines:
        status, _, raw_path = line.partition("\t")
        if not raw_path or status[:1] not in KEPT_STATUSES:
            continue

        path = unquote_path(raw_path)
        if included is not None and path not in included:
            continue
        if path not in seen:
            seen.add(path)
            changed_files.append(path)

    if not changed_files:
        return None

    return Commit(
        hash=commit_hash,
        author_name=author_name,
        timestamp=timestamp,
        changed_files=tuple(changed_files),
        message=message,
    )


def parse_git_log(raw: str, included_files: Optional[Iterable[str]] = None) -> list[Commit]:
    """
    Parse ``git log`` output produced with LOG_ARGS.

    Args:
        raw: Raw log text, newest commit first
        included_files: If given, only these exact paths are kept and commits
            touching none of them are dropped

    Returns:
        Commits ordered oldest first
    """
    included = set(included_files) if included_files is not None else None

    records: list[list[str]] = []
    current: Optional[list[str]] = None
    for line in raw.split("\n"):
        line = line.rstrip("\r")
        if line == COMMIT_MARKER:
            current = []
            records.append(current)
        elif current is not None and line.strip():
            current.append(line)

    commits = [commit for commit in (_parse_record(r, included) for r in records) if commit]
    logger.debug("Parsed %d of %d commits", len(commits), len(records))

    # git log is newest first; sorted() is stable so equal timestamps keep log order
    commits.reverse()
    return sorted(commits, key=lambda commit: commit.timestamp)


def read_git_log(
    repo_path: Union[str, Path], cancel_event: Optional[threading.Event] = None
) -> str:
    """
    Run ``git log`` in the repository and return its output.

    The output is streamed so a set cancel_event kills the Git process instead
    of waiting for it to finish.

    Raises:
        RepositoryError: If repo_path is not a valid repository
        CommandError: If ``git log`` exits non-zero
        AnalysisCancelled: If cancel_event is set while reading
    """
    repo = open_repository(repo_path)
    try:
        if not repo.head.is_valid():
            logger.info("Repository %s has no commits yet", repo_path)
            return ""

        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelled("git log")

        process = repo.git.log(*LOG_ARGS, as_process=True)
        chunks = []
        for line in process.stdout:
            if cancel_event is not None and cancel_event.is_set():
                process.kill()
                raise AnalysisCancelled("git log")
            chunks.append(line)
        process.wait()
    except git.exc.CommandError as e:
        raise command_error_from_git(e) from e
    finally:
        repo.close()

    return b"".join(chunks).decode("utf-8", errors="replace")


def get_git_history(
    repo_path: Union[str, Path],
    included_files: Iterable[str],
    cancel_event: Optional[threading.Event] = None,
) -> list[Commit]:
    """
    Get the commits that added or modified any of the included files.

    Args:
        repo_path: Path to the root of the Git repository
        included_files: Exact repository-relative paths, normally the result
            of get_git_tracked_files(); if empty the result is empty
        cancel_event: Optional event that aborts the read when set

    Returns:
        Commits ordered oldest first, each listing only included files

    Raises:
        RepositoryError: If repo_path does not exist or is not a repository
        CommandError: If ``git log`` exits non-zero
    """
    included = list(included_files)
    path = Path(repo_path)
    if not path.exists():
        raise RepositoryError(path, "path does not exist")

    if not included:
        return []

    return parse_git_log(read_git_log(path, cancel_event), included)
