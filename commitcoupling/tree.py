"""
Directory tree construction for commitcoupling.

Turns the flat per-file statistics into nested directory and file nodes. Every
node is identified by its full path from the repository root, so two
directories that share a name under different parents stay separate.
"""
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Union

from commitcoupling.coupling import FileStats
from commitcoupling.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class FileNode:
    """Leaf node wrapping the statistics of one file ("piece of code")."""

    stats: FileStats

    @property
    def path(self) -> str:
        return self.stats.path

    def to_dict(self) -> dict:
        return self.stats.to_dict()


@dataclass
class DirectoryNode:
    """A directory and everything beneath it ("collection of code")."""

    path: str
    children: list["TreeNode"] = field(default_factory=list)
    # children keyed by their full path
    _index: dict[str, "TreeNode"] = field(default_factory=dict, repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def get(self, path: str) -> Union["TreeNode", None]:
        return self._index.get(path)

    def add(self, node: "TreeNode") -> "TreeNode":
        self._index[node.path] = node
        self.children.append(node)
        return node

    def to_dict(self) -> dict:
        return {
            "directoryPath": self.path,
            "children": [child.to_dict() for child in self.children],
        }


TreeNode = Union[FileNode, DirectoryNode]


def build_tree(stats_list: Iterable[FileStats]) -> list[TreeNode]:
    """
    Nest file statistics into directories following their paths.

    Args:
        stats_list: One FileStats per file, in the order children should appear

    Returns:
        The children of the repository root
    """
    root = DirectoryNode(path="")

    for stats in stats_list:
        if not stats.path:
            logger.warning("Skipping file with empty path")
            continue

        parts = stats.path.split("/")
        current = root
        for depth in range(len(parts) - 1):
            prefix = "/".join(parts[: depth + 1])
            child = current.get(prefix)
            if child is None:
                child = current.add(DirectoryNode(path=prefix))
            elif isinstance(child, FileNode):
                raise ValueError(f"{prefix} is both a file and a directory")
            current = child

        file_path = stats.path
        existing = current.get(file_path)
        if existing is None:
            current.add(FileNode(stats))
        elif isinstance(existing, DirectoryNode):
            raise ValueError(f"{file_path} is both a file and a directory")
        else:
            logger.debug("Ignoring duplicate entry for %s", file_path)

    return root.children


def iter_files(nodes: Iterable[TreeNode]) -> Iterator[FileNode]:
    """Yield every file node, depth first."""
    for node in nodes:
        if isinstance(node, DirectoryNode):
            yield from iter_files(node.children)
        else:
            yield node


def tree_to_dicts(nodes: Iterable[TreeNode]) -> list[dict]:
    """Serialize a tree into the structure the visualization consumes."""
    return [node.to_dict() for node in nodes]
