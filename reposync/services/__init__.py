"""
Service layer: remote repository access and persistence.
"""

from .remote import RemoteRepository
from .github_api import GitHubAPIService
from .token_store import TokenStore
from .document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    ConfigStore,
)

__all__ = [
    "RemoteRepository",
    "GitHubAPIService",
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "ConfigStore",
    "TokenStore",
]
