"""
GitHub domain models for RepoSync.

This module contains strongly typed data classes representing
repository endpoints and remote git objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class RepositoryConfig:
    """Immutable identification of one remote repository with write credentials."""

    token: str
    owner: str
    repo: str
    branch: str = "main"

    def __post_init__(self) -> None:
        if not self.owner or not self.repo:
            raise ValueError("Repository owner and repo are required")
        if not self.branch:
            raise ValueError("Branch name cannot be empty")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __repr__(self) -> str:
        masked = f"{self.token[:4]}***" if self.token else ""
        return (
            f"RepositoryConfig(owner={self.owner!r}, repo={self.repo!r}, "
            f"branch={self.branch!r}, token={masked!r})"
        )


@dataclass(frozen=True)
class RepositoryInfo:
    """Repository metadata needed by the sync engine."""

    owner: str
    name: str
    default_branch: str
    private: bool = False
    can_push: bool = False

    @property
    def display_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class TreeEntry:
    """
    One entry of a tree object created on the destination.

    A ``sha`` of ``None`` removes ``path`` from the base tree.
    """

    path: str
    sha: Optional[str]
    mode: str = "100644"
    type: str = "blob"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "mode": self.mode,
            "type": self.type,
            "sha": self.sha,
        }


@dataclass(frozen=True)
class CommitSummary:
    """A commit as listed in repository history."""

    sha: str
    message: str
    author: str
    date: str
    url: str

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


__all__ = [
    "RepositoryConfig",
    "RepositoryInfo",
    "TreeEntry",
    "CommitSummary",
]
