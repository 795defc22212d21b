"""
User-facing interfaces: the Python facade and the command-line tool.
"""

from .api import RepoSyncClient

__all__ = ["RepoSyncClient"]
