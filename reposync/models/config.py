"""
Configuration models for RepoSync transfers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional, Tuple

KB = 1024
MB = 1024 * KB


@dataclass
class SyncConfig:
    """
    Unified configuration for uploads, chunked commits and bulk transfers.

    Every size is in bytes and every delay in seconds.
    """

    # Single-file limits
    max_file_size: int = 800 * KB
    ultra_small_threshold: int = 2 * MB
    chunk_size: int = 100 * KB
    ultra_small_chunk_size: int = 50 * KB
    lines_per_chunk: int = 50

    # Multi-file strategy selection
    sequential_threshold: int = 10 * MB
    small_batch_threshold: int = 10
    files_per_batch: int = 3
    max_concurrency: int = 3

    # Tree-based bulk transfers
    tree_batch_files: int = 15
    tree_batch_bytes: int = 800 * KB
    download_pause_every: int = 10

    # Pacing
    download_pause: float = 0.5
    file_delay: float = 0.5
    batch_delay: float = 1.0
    chunk_delay: float = 1.0

    # Remote access
    max_retries: int = 3
    timeout: int = 30
    api_url: str = "https://api.github.com"

    # Paths skipped on top of the built-in ignore patterns
    ignore_patterns: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        self.ignore_patterns = tuple(self.ignore_patterns)
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.max_concurrency < 1 or self.files_per_batch < 1:
            raise ValueError("Concurrency and batch sizes must be positive")
        if self.tree_batch_files < 1 or self.tree_batch_bytes < 1:
            raise ValueError("Tree batch caps must be positive")

    @classmethod
    def from_env(
        cls,
        prefix: str = "REPOSYNC_",
        environ: Optional[Mapping[str, str]] = None,
    ) -> SyncConfig:
        """
        Build a config from environment overrides such as ``REPOSYNC_MAX_RETRIES``.

        Args:
            prefix: Variable name prefix
            environ: Mapping to read instead of ``os.environ``

        Returns:
            SyncConfig with overridden fields coerced to their declared type
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        overrides = {}
        for entry in fields(cls):
            raw = environ.get(f"{prefix}{entry.name.upper()}")
            if raw is None:
                continue
            kind = type(getattr(defaults, entry.name))
            if kind is tuple:
                overrides[entry.name] = tuple(p.strip() for p in raw.split(",") if p.strip())
                continue
            try:
                overrides[entry.name] = kind(raw)
            except ValueError as e:
                raise ValueError(
                    f"Invalid value for {prefix}{entry.name.upper()}: {raw!r}"
                ) from e
        return cls(**overrides)


__all__ = [
    "KB",
    "MB",
    "SyncConfig",
]
