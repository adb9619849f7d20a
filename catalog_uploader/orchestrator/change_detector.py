"""
ChangeDetector - finds files added since the previous run.

Keeps a JSON snapshot of the root's tree shape between runs. The diff only
decides which files are processed first; every file is still reached by the
full scan.
"""
import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..config import DEFAULT_SNAPSHOT_FILE
from .tree_snapshot import DirectoryNode, build_tree, diff_trees, tree_from_dict, tree_to_dict

logger = logging.getLogger(__name__)


class ChangeDetector:
    """
    Builds, compares and persists tree snapshots.

    Usage:
        detector = ChangeDetector(root, snapshot_path)
        priority, tree = detector.detect()
        ...  # run uploads
        detector.persist(tree)
    """

    def __init__(self, root: Path, snapshot_path: Path = DEFAULT_SNAPSHOT_FILE):
        self._root = Path(root)
        self._snapshot_path = Path(snapshot_path)

    @property
    def snapshot_path(self) -> Path:
        return self._snapshot_path

    def load(self) -> Optional[DirectoryNode]:
        """
        Load the previous snapshot.

        Returns None on the first run, and for a snapshot that cannot be read
        or belongs to another root.
        """
        if not self._snapshot_path.exists():
            logger.debug("No snapshot at %s, first run", self._snapshot_path)
            return None

        try:
            with open(self._snapshot_path, "r", encoding="utf-8") as f:
                tree = tree_from_dict(json.load(f))
        except (OSError, ValueError, RecursionError) as e:
            logger.warning("Ignoring unreadable snapshot %s: %s", self._snapshot_path, e)
            return None

        if not isinstance(tree, DirectoryNode) or tree.path != self._root:
            logger.warning(
                "Ignoring snapshot %s: it was taken for %s, not %s",
                self._snapshot_path, tree.path, self._root,
            )
            return None
        return tree

    def detect(self) -> Tuple[List[Path], DirectoryNode]:
        """
        Snapshot the root and diff it against the previous run.

        Returns:
            (likely new files in traversal order, the new snapshot)
        """
        tree = build_tree(self._root)
        previous = self.load()
        if previous is None:
            logger.info("Snapshot: %d file(s), no previous run to compare", tree.descendant_file_count)
            return [], tree

        likely_new = diff_trees(tree, previous)
        logger.info(
            "Snapshot: %d file(s), %d likely new since last run",
            tree.descendant_file_count, len(likely_new),
        )
        return likely_new, tree

    def persist(self, tree: DirectoryNode) -> None:
        """
        Overwrite the stored snapshot.

        The document is fully encoded before the file is opened, so a tree
        too deep to encode leaves the previous snapshot in place.

        Raises:
            OSError: if the file cannot be written
            RecursionError: if the tree is nested too deeply to encode
        """
        content = json.dumps(tree_to_dict(tree), indent=2)
        self._snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._snapshot_path, "w", encoding="utf-8") as f:
            f.write(content)
        logger.info("Snapshot saved to %s", self._snapshot_path)
