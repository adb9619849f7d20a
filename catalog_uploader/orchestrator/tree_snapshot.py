"""
Directory tree snapshots.

A snapshot records every recognized media file below the root and, for each
directory, how many such files it holds in total. Comparing two snapshots
tells which files are probably new without opening any of them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from ..services.media_paths import is_video
from .file_collector import DirectoryIdentity, enter_directory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileNode:
    path: Path


@dataclass
class DirectoryNode:
    path: Path
    descendant_file_count: int = 0
    children: List["TreeNode"] = field(default_factory=list)


TreeNode = Union[FileNode, DirectoryNode]


def build_tree(root: Path) -> DirectoryNode:
    """
    Snapshot the media files below root.

    Unreadable directories are kept as empty nodes.
    """
    root_node = DirectoryNode(Path(root))
    directories = [root_node]
    stack = [root_node]
    visited: Set[DirectoryIdentity] = set()

    while stack:
        node = stack.pop()
        try:
            entries = enter_directory(node.path, visited)
        except OSError as e:
            logger.warning("Cannot read directory %s for snapshot: %s", node.path, e)
            continue

        for entry in entries:
            entry_path = Path(entry.path)
            if entry.is_dir():
                child = DirectoryNode(entry_path)
                node.children.append(child)
                directories.append(child)
                stack.append(child)
            elif entry.is_file() and is_video(entry_path):
                node.children.append(FileNode(entry_path))

    # children are always created after their parent
    for directory in reversed(directories):
        directory.descendant_file_count = sum(
            1 if isinstance(child, FileNode) else child.descendant_file_count
            for child in directory.children
        )
    return root_node


def diff_trees(new: DirectoryNode, old: Optional[DirectoryNode]) -> List[Path]:
    """
    Files of ``new`` that are likely missing from ``old``, in traversal order.

    Directories whose descendant count did not change are not descended
    into. Where it changed, files without a path match among the old
    directory's files are reported, matching sub-directories are compared
    the same way and sub-directories with no old counterpart contribute all
    of their files.
    """
    likely_new: List[Path] = []
    stack: List[Tuple[TreeNode, Optional[DirectoryNode]]] = [(new, old)]

    while stack:
        node, previous = stack.pop()

        if isinstance(node, FileNode):
            likely_new.append(node.path)
            continue

        if previous is None:
            stack.extend((child, None) for child in reversed(node.children))
            continue

        if node.descendant_file_count == previous.descendant_file_count:
            continue

        old_files = {child.path for child in previous.children if isinstance(child, FileNode)}
        old_dirs = {
            child.path: child for child in previous.children if isinstance(child, DirectoryNode)
        }
        for child in reversed(node.children):
            if isinstance(child, FileNode):
                if child.path not in old_files:
                    stack.append((child, None))
            else:
                stack.append((child, old_dirs.get(child.path)))

    return likely_new


def _directory_document(node: DirectoryNode) -> Dict[str, Any]:
    return {
        "type": "directory",
        "path": str(node.path),
        "descendant_file_count": node.descendant_file_count,
        "children": [],
    }


def tree_to_dict(node: TreeNode) -> Dict[str, Any]:
    if isinstance(node, FileNode):
        return {"type": "file", "path": str(node.path)}

    document = _directory_document(node)
    stack: List[Tuple[DirectoryNode, Dict[str, Any]]] = [(node, document)]
    while stack:
        directory, directory_document = stack.pop()
        for child in directory.children:
            if isinstance(child, FileNode):
                directory_document["children"].append({"type": "file", "path": str(child.path)})
            else:
                child_document = _directory_document(child)
                directory_document["children"].append(child_document)
                stack.append((child, child_document))
    return document


def _node_from_dict(data: Dict[str, Any]) -> Tuple[TreeNode, Optional[List[Any]]]:
    """One node without its children, plus the child documents of a directory."""
    try:
        kind = data["type"]
        path = Path(data["path"])
        if kind == "file":
            return FileNode(path), None
        if kind == "directory":
            children = data["children"]
            if not isinstance(children, list):
                raise TypeError(f"children of {path} is not a list")
            return DirectoryNode(path, int(data["descendant_file_count"])), children
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed snapshot node: {e}") from e
    raise ValueError(f"unknown snapshot node type: {kind!r}")


def tree_from_dict(data: Dict[str, Any]) -> TreeNode:
    """
    Rebuild a tree from its document form.

    Raises:
        ValueError: on an unknown node type or missing fields
    """
    root, child_documents = _node_from_dict(data)
    stack = [] if child_documents is None else [(root, child_documents)]
    while stack:
        directory, documents = stack.pop()
        for document in documents:
            child, grandchildren = _node_from_dict(document)
            directory.children.append(child)
            if grandchildren is not None:
                stack.append((child, grandchildren))
    return root
