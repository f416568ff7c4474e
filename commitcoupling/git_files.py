"""
Tracked file enumeration for commitcoupling.

Lists the files in the Git index (never a filesystem walk), applies substring
exclusion filters, and decodes the C-style quoting Git applies to paths with
unusual bytes.
"""
import re
from pathlib import Path
from typing import Iterable, Union

import git

from commitcoupling.errors import CommandError, InvalidPathError, RepositoryError
from commitcoupling.logging_config import get_logger

logger = get_logger(__name__)

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")

# Single-character escapes produced by git's quote_c_style()
_SIMPLE_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "f": 0x0C,
    "n": 0x0A,
    "r": 0x0D,
    "t": 0x09,
    "v": 0x0B,
    '"': 0x22,
    "\\": 0x5C,
}


def validate_path(path: Union[str, Path]) -> None:
    """Reject paths that contain control characters."""
    if _CONTROL_CHARS_RE.search(str(path)):
        raise InvalidPathError(path)


def open_repository(repo_path: Union[str, Path]) -> git.Repo:
    """
    Open a Git repository with GitPython.

    Args:
        repo_path: Path to the root of the repository

    Returns:
        git.Repo instance

    Raises:
        RepositoryError: If the path is missing or not a Git repository
    """
    validate_path(repo_path)
    path = Path(repo_path)
    if not path.exists():
        raise RepositoryError(path, "path does not exist")

    try:
        return git.Repo(path)
    except git.exc.NoSuchPathError as e:
        raise RepositoryError(path, "path does not exist") from e
    except git.exc.InvalidGitRepositoryError as e:
        raise RepositoryError(path, "not a Git repository") from e


def command_error_from_git(error: git.exc.CommandError) -> CommandError:
    """Translate a GitPython command failure into a CommandError."""
    command = error.command if isinstance(error.command, (list, tuple)) else [str(error.command)]
    status = error.status if isinstance(error.status, int) else None
    stderr = error.stderr or ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    # GitPython prefixes captured stderr with a label
    stderr = stderr.strip()
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'")
    return CommandError(command, status, stderr)


def unquote_path(raw_path: str) -> str:
    """
    Decode a path the way Git printed it.

    Git wraps paths containing non-ASCII or special bytes in double quotes and
    escapes them (``"na\\303\\257ve.txt"``). Unquoted paths are returned as-is.

    Args:
        raw_path: Path as printed by ``git ls-files`` or ``git log``

    Returns:
        The literal path
    """
    if len(raw_path) < 2 or not (raw_path.startswith('"') and raw_path.endswith('"')):
        return raw_path

    body = raw_path[1:-1]
    decoded = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\":
            decoded.extend(char.encode("utf-8"))
            i += 1
            continue

        escape = body[i + 1 : i + 2]
        octal = body[i + 1 : i + 4]
        if len(octal) == 3 and all(c in "01234567" for c in octal):
            decoded.append(int(octal, 8))
            i += 4
        elif escape in _SIMPLE_ESCAPES:
            decoded.append(_SIMPLE_ESCAPES[escape])
            i += 2
        else:
            # Not an escape git produces; keep the backslash literally
            decoded.extend(b"\\")
            i += 1

    path = decoded.decode("utf-8", errors="replace")
    logger.debug("Decoded quoted path %s -> %s", raw_path, path)
    return path


def filter_excluded(files: Iterable[str], exclude_filters: Iterable[str]) -> list[str]:
    """
    Drop every path that contains any filter string as a substring.

    Filters are plain substrings, so ``"test"`` also excludes ``testament.txt``.
    """
    filters = [f for f in exclude_filters if f]
    if not filters:
        return list(files)
    return [path for path in files if not any(f in path for f in filters)]


def get_git_tracked_files(
    repo_path: Union[str, Path], exclude_filters: Iterable[str] = ()
) -> list[str]:
    """
    List the files under version control, in index order.

    Args:
        repo_path: Path to the root of the Git repository
        exclude_filters: Substrings; any path containing one is left out

    Returns:
        Repository-relative paths using forward slashes

    Raises:
        RepositoryError: If repo_path is not a valid repository
        CommandError: If ``git ls-files`` fails
    """
    repo = open_repository(repo_path)
    try:
        output = repo.git.ls_files()
    except git.exc.CommandError as e:
        raise command_error_from_git(e) from e
    finally:
        repo.close()

    files = [unquote_path(line) for line in output.split("\n") if line]
    tracked = filter_excluded(files, exclude_filters)
    logger.debug("Found %d tracked files (%d excluded)", len(tracked), len(files) - len(tracked))
    return tracked


def get_git_repo_url(repo_path: Union[str, Path]) -> str:
    """
    Get the web URL of the repository from its ``origin`` remote.

    A trailing ``.git`` suffix and trailing slash are removed.

    Raises:
        RepositoryError: If the repository is invalid or has no origin remote
    """
    repo = open_repository(repo_path)
    try:
        try:
            url = repo.remote("origin").url
        except ValueError as e:
            raise RepositoryError(repo_path, "no origin remote configured") from e
    finally:
        repo.close()

    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url
