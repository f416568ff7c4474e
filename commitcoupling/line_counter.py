"""Streaming line counts for tracked files."""
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Union

from commitcoupling.errors import FileAccessError
from commitcoupling.logging_config import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024

# Line count for files that cannot be read, so they still get a visible size
UNREADABLE_LINE_COUNT = 1


def count_lines_in_file(path: Union[str, Path]) -> int:
    """
    Count the lines in a file without loading it into memory.

    A final line without a terminator still counts as a line.
    """
    count = 0
    last_byte = b""
    with open(path, "rb") as f:
        while True:
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            count += chunk.count(b"\n")
            last_byte = chunk[-1:]

    if last_byte and last_byte != b"\n":
        count += 1
    return count


def count_lines(
    repo_path: Union[str, Path], files: Iterable[str], max_workers: int = 8
) -> tuple[dict[str, int], list[FileAccessError]]:
    """
    Count lines for every file in parallel.

    Files that cannot be read do not abort the run: they get
    UNREADABLE_LINE_COUNT and a FileAccessError in the returned anomalies.

    Args:
        repo_path: Repository root the file paths are relative to
        files: Repository-relative file paths
        max_workers: Size of the thread pool

    Returns:
        Tuple of (line count per path, anomalies)
    """
    root = Path(repo_path)
    files = list(files)

    def count(path: str) -> Union[int, FileAccessError]:
        try:
            return count_lines_in_file(root / path)
        except OSError as e:
            return FileAccessError(path, e.strerror or type(e).__name__)

    line_counts: dict[str, int] = {}
    anomalies: list[FileAccessError] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for path, result in zip(files, executor.map(count, files)):
            if isinstance(result, FileAccessError):
                logger.warning("%s", result)
                anomalies.append(result)
                line_counts[path] = UNREADABLE_LINE_COUNT
            else:
                line_counts[path] = result

    return line_counts, anomalies
