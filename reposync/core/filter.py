"""
Content classification: which paths never leave the source and which
files must travel as base64.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterable, List, Sequence, Tuple

IGNORE_PATTERNS: Tuple[str, ...] = (
    ".git/",
    "node_modules/",
    "dist/",
    "build/",
    ".next/",
    ".nuxt/",
    ".output/",
    ".vite/",
    "coverage/",
    ".nyc_output/",
    ".cache/",
    "tmp/",
    "temp/",
    "__pycache__/",
    "*.log",
    "*.tmp",
    "*.pyc",
    ".DS_Store",
    "Thumbs.db",
    ".env",
    ".env.local",
    ".env.production",
    ".env.development",
)

BINARY_EXTENSIONS = frozenset({
    # images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tif", ".tiff", ".avif",
    # archives
    ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar", ".jar",
    # fonts
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
    # media
    ".mp3", ".mp4", ".wav", ".ogg", ".webm", ".mov", ".avi", ".flac",
    # documents and binaries
    ".pdf", ".exe", ".dll", ".so", ".dylib", ".bin", ".wasm", ".class", ".pyc",
})


@lru_cache(maxsize=None)
def _glob_regex(pattern: str) -> "re.Pattern[str]":
    # anchored at the end: "*.log" is a suffix, not a substring
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")) + "$")


def _matches(path: str, pattern: str) -> bool:
    if pattern.endswith("/"):
        return path.startswith(pattern) or f"/{pattern}" in path
    if "*" in pattern:
        return _glob_regex(pattern).search(path) is not None
    return path == pattern or path.endswith(f"/{pattern}")


def should_ignore(path: str, patterns: Sequence[str] = IGNORE_PATTERNS) -> bool:
    """Return True when ``path`` is a build artifact, secret or VCS internal."""

    return any(_matches(path, pattern) for pattern in patterns)


def is_binary_path(path: str) -> bool:
    """Return True when the extension marks ``path`` as binary content."""

    name = path.rsplit("/", 1)[-1].lower()
    if "." not in name:
        return False
    return name[name.rindex("."):] in BINARY_EXTENSIONS


def _path_of(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, tuple):
        return item[0]
    if isinstance(item, dict):
        return item["path"]
    return item.path


@dataclass
class FilterResult:
    """Result of filtering operation."""

    included_files: List[Any] = field(default_factory=list)
    excluded_files: List[Any] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.included_files) + len(self.excluded_files)

    @property
    def filtered_files(self) -> int:
        return len(self.included_files)


class FilterEngine:
    """Applies the ignore patterns (plus any extras) to collections of files."""

    def __init__(self, extra_patterns: Iterable[str] = ()):
        self.patterns: Tuple[str, ...] = IGNORE_PATTERNS + tuple(extra_patterns)

    def should_include_file(self, item: Any) -> bool:
        return not should_ignore(_path_of(item), self.patterns)

    def filter_files(self, items: Iterable[Any]) -> FilterResult:
        """
        Split items into included and excluded lists, preserving order.

        Args:
            items: Paths, dicts with a ``path`` key, or objects with a ``path`` attribute

        Returns:
            FilterResult with both partitions
        """
        result = FilterResult()
        for item in items:
            if self.should_include_file(item):
                result.included_files.append(item)
            else:
                result.excluded_files.append(item)
        return result


__all__ = [
    "IGNORE_PATTERNS",
    "BINARY_EXTENSIONS",
    "should_ignore",
    "is_binary_path",
    "FilterResult",
    "FilterEngine",
]
