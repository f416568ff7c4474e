"""Pytest fixtures and test utilities."""
import tempfile
from pathlib import Path

import pytest
import git

DAY = 86400
BASE_TIME = 1_600_000_000  # 2020-09-13, epoch seconds

ALICE = git.Actor("Alice", "alice@example.com")
BOB = git.Actor("Bob", "bob@example.com")
CAROL = git.Actor("Carol", "carol@example.com")
DAVE = git.Actor("Dave", "dave@example.com")


def init_repo(repo_path: Path) -> git.Repo:
    """Create an empty Git repository with a configured user."""
    repo_path.mkdir(parents=True, exist_ok=True)
    repo = git.Repo.init(repo_path)
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
    return repo


def commit_files(
    repo: git.Repo,
    files: dict,
    message: str,
    author: git.Actor = ALICE,
    timestamp: int = BASE_TIME,
    delete: tuple = (),
) -> git.Commit:
    """
    Write files, stage them, and commit with a fixed author and date.

    Args:
        repo: Repository to commit to
        files: Mapping of relative path to new file content
        message: Commit message
        author: Author and committer of the commit
        timestamp: Author and commit date in epoch seconds
        delete: Relative paths to remove in the same commit
    """
    root = Path(repo.working_tree_dir)
    for relative_path, content in files.items():
        full_path = root / relative_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content, encoding="utf-8")
    if files:
        repo.index.add(list(files))
    if delete:
        repo.index.remove(list(delete), working_tree=True)

    date = f"{timestamp} +0000"
    return repo.index.commit(
        message, author=author, committer=author, author_date=date, commit_date=date
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_git_repo(temp_dir):
    """
    Create a repository with four commits.

    - Commit 1 adds file1.js, file2.txt, subdir/file3.ts and subdir/file4.md
    - Commit 2 modifies file1.js and subdir/file3.ts
    - Commit 3 modifies subdir/file3.ts
    - Commit 4 modifies file2.txt
    """
    repo = init_repo(temp_dir / "sample_repo")

    commit_files(
        repo,
        {
            "file1.js": "// contents of file1.js",
            "file2.txt": "// contents of file2.txt",
            "subdir/file3.ts": "// contents of subdir/file3.ts",
            "subdir/file4.md": "// contents of subdir/file4.md",
        },
        "First commit",
        timestamp=BASE_TIME,
    )
    commit_files(
        repo,
        {
            "file1.js": "// updated contents of file1.js",
            "subdir/file3.ts": "// updated contents of file3.ts",
        },
        "Second commit",
        timestamp=BASE_TIME + DAY,
    )
    commit_files(
        repo,
        {"subdir/file3.ts": "// updated contents of file3.ts again"},
        "Third commit",
        timestamp=BASE_TIME + 2 * DAY,
    )
    commit_files(
        repo,
        {"file2.txt": "// updated contents of file2"},
        "4th commit",
        timestamp=BASE_TIME + 3 * DAY,
    )

    yield Path(repo.working_tree_dir)
    repo.close()


@pytest.fixture
def recent_cutoff():
    """Recency cutoff in epoch milliseconds used with coupling_repo."""
    return (BASE_TIME + 10 * DAY) * 1000


@pytest.fixture
def coupling_repo(temp_dir):
    """
    Create a repository with old and recent commits by several authors.

    Old (before the cutoff):
    - Alice adds README.md, src/app.py and src/util/helpers.py
    - Bob modifies src/app.py and src/util/helpers.py

    Recent:
    - Alice modifies src/app.py and src/util/helpers.py
    - Bob modifies both and adds lib/util/format.py
    - Carol modifies src/app.py and src/util/helpers.py
    - Dave modifies src/app.py alone
    """
    repo = init_repo(temp_dir / "coupling_repo")

    commit_files(
        repo,
        {
            "README.md": "# Project\n",
            "src/app.py": "import helpers\n",
            "src/util/helpers.py": "def helper():\n    pass\n",
        },
        "Initial commit",
        author=ALICE,
        timestamp=BASE_TIME,
    )
    commit_files(
        repo,
        {"src/app.py": "import helpers\n# v2\n", "src/util/helpers.py": "def helper():\n    return 2\n"},
        "Old change",
        author=BOB,
        timestamp=BASE_TIME + DAY,
    )
    commit_files(
        repo,
        {"src/app.py": "import helpers\n# v3\n", "src/util/helpers.py": "def helper():\n    return 3\n"},
        "Recent change by Alice",
        author=ALICE,
        timestamp=BASE_TIME + 20 * DAY,
    )
    commit_files(
        repo,
        {
            "src/app.py": "import helpers\n# v4\n",
            "src/util/helpers.py": "def helper():\n    return 4\n",
            "lib/util/format.py": "def fmt(value):\n    return str(value)\n",
        },
        "Recent change by Bob",
        author=BOB,
        timestamp=BASE_TIME + 21 * DAY,
    )
    commit_files(
        repo,
        {"src/app.py": "import helpers\n# v5\n", "src/util/helpers.py": "def helper():\n    return 5\n"},
        "Recent change by Carol",
        author=CAROL,
        timestamp=BASE_TIME + 22 * DAY,
    )
    commit_files(
        repo,
        {"src/app.py": "import helpers\n# v6\nprint(helpers)\n"},
        "Recent change by Dave",
        author=DAVE,
        timestamp=BASE_TIME + 23 * DAY,
    )

    yield Path(repo.working_tree_dir)
    repo.close()


@pytest.fixture
def commit():
    """Factory for Commit records used by unit tests."""
    from commitcoupling.git_history import Commit

    def make(hash, files, author="Alice", timestamp=BASE_TIME * 1000, message=""):
        return Commit(
            hash=hash,
            author_name=author,
            timestamp=timestamp,
            changed_files=tuple(files),
            message=message,
        )

    return make
