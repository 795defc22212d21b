"""
Core planning logic and async engines for uploads and transfers.
"""

from .filter import FilterEngine, FilterResult, should_ignore, is_binary_path
from .strategy import select_upload_strategy, plan_small_batches, plan_transfer_batches
from .chunking import plan_chunks
from .progress import ProgressReporter
from .committer import ChunkedCommitBuilder
from .uploader import FileUploader
from .comparison import ComparisonEngine, diff_trees, select_for_transfer
from .orchestrator import TransferOrchestrator

__all__ = [
    "FilterEngine",
    "FilterResult",
    "should_ignore",
    "is_binary_path",
    "select_upload_strategy",
    "plan_small_batches",
    "plan_transfer_batches",
    "plan_chunks",
    "ProgressReporter",
    "ChunkedCommitBuilder",
    "FileUploader",
    "ComparisonEngine",
    "diff_trees",
    "select_for_transfer",
    "TransferOrchestrator",
]
