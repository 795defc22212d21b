"""
Path-keyed comparison of two repositories.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..infrastructure.error_handler import ComparisonError
from ..infrastructure.logger import logger
from ..models import FileComparison, FileStatus, TransferOptions
from ..services.remote import RemoteRepository
from .filter import FilterEngine
from .progress import ProgressReporter

STATUS_ORDER = {
    FileStatus.NEW: 0,
    FileStatus.MODIFIED: 1,
    FileStatus.DELETED: 2,
    FileStatus.UNCHANGED: 3,
}


def diff_trees(
    source: Mapping[str, str],
    destination: Mapping[str, str],
    source_sizes: Optional[Mapping[str, int]] = None,
    dest_sizes: Optional[Mapping[str, int]] = None,
) -> List[FileComparison]:
    """
    Classify every path of either side by content hash.

    Results are ordered new, modified, deleted, unchanged, then by path.
    """
    source_sizes = source_sizes or {}
    dest_sizes = dest_sizes or {}
    comparisons = []

    for path in set(source) | set(destination):
        source_hash = source.get(path)
        target_hash = destination.get(path)

        if target_hash is None:
            status = FileStatus.NEW
        elif source_hash is None:
            status = FileStatus.DELETED
        elif source_hash != target_hash:
            status = FileStatus.MODIFIED
        else:
            status = FileStatus.UNCHANGED

        size_diff = None
        if path in source_sizes or path in dest_sizes:
            size_diff = source_sizes.get(path, 0) - dest_sizes.get(path, 0)

        comparisons.append(
            FileComparison(path, status, source_hash, target_hash, size_diff)
        )

    comparisons.sort(key=lambda item: (STATUS_ORDER[item.status], item.path))
    return comparisons


def select_for_transfer(
    comparisons: Sequence[FileComparison], options: TransferOptions
) -> List[FileComparison]:
    wanted = set(options.statuses)
    return [item for item in comparisons if item.status in wanted]


async def fetch_tree_map(
    remote: RemoteRepository,
    branch: Optional[str] = None,
    filter_engine: Optional[FilterEngine] = None,
) -> Tuple[Dict[str, str], Dict[str, int]]:
    """
    Return ``path -> sha`` and ``path -> size`` for every non-ignored blob.

    A branch that does not exist yields empty maps.
    """
    engine = filter_engine or FilterEngine()
    branch = branch or await remote.get_default_branch()
    commit_sha = await remote.get_branch_sha(branch)
    if commit_sha is None:
        logger.info(f"{remote.config.full_name}@{branch} does not exist, treating as empty")
        return {}, {}

    tree_sha = await remote.get_commit_tree_sha(commit_sha)
    hashes: Dict[str, str] = {}
    sizes: Dict[str, int] = {}
    items = await remote.get_tree(tree_sha, recursive=True)
    blobs = [item for item in items if item.get("type") == "blob"]
    for item in engine.filter_files(blobs).included_files:
        hashes[item["path"]] = item["sha"]
        if item.get("size") is not None:
            sizes[item["path"]] = int(item["size"])
    return hashes, sizes


class ComparisonEngine:
    """Compares a source repository against a destination repository."""

    def __init__(
        self,
        source: RemoteRepository,
        destination: RemoteRepository,
        filter_engine: Optional[FilterEngine] = None,
    ):
        self.source = source
        self.destination = destination
        self.filter_engine = filter_engine or FilterEngine()

    async def compare(
        self,
        progress: Optional[ProgressReporter] = None,
        source_branch: Optional[str] = None,
        dest_branch: Optional[str] = None,
    ) -> List[FileComparison]:
        """
        Fetch both trees and diff them.

        Raises:
            ComparisonError: Any fetch failed; the caller should fall back
                to a full transfer
        """
        reporter = ProgressReporter.wrap(progress)
        reporter.report(0, "Starting comparison...")
        try:
            reporter.report(10, f"Reading {self.source.config.full_name}...")
            source_map, source_sizes = await fetch_tree_map(
                self.source, source_branch, self.filter_engine
            )

            reporter.report(50, f"Reading {self.destination.config.full_name}...")
            dest_map, dest_sizes = await fetch_tree_map(
                self.destination,
                dest_branch or self.destination.config.branch,
                self.filter_engine,
            )
        except Exception as e:
            logger.error(f"Comparison failed: {e}")
            raise ComparisonError(
                "Could not compare repositories; fall back to a full transfer", e
            ) from e

        reporter.report(90, "Computing differences...")
        comparisons = diff_trees(source_map, dest_map, source_sizes, dest_sizes)

        counts = {status: 0 for status in FileStatus}
        for item in comparisons:
            counts[item.status] += 1
        summary = {status.value: count for status, count in counts.items()}
        reporter.report(100, "Comparison completed", summary)
        logger.info(f"Comparison: {summary}")
        return comparisons


__all__ = [
    "diff_trees",
    "select_for_transfer",
    "fetch_tree_map",
    "ComparisonEngine",
]
