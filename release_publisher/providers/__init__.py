"""GitHub REST API integration.

Key Components:
    - GitHubApiClient: authenticated JSON client pinned to api.github.com
    - GitHubRestProvider: ref, contents and pull request operations
    - VersionedStore: compare-and-swap contract for optimistic writes
    - RepositoryFileStore: VersionedStore over one branch of a repository
"""

from release_publisher.providers.base import VersionedStore
from release_publisher.providers.github_api import GitHubApiClient
from release_publisher.providers.github_rest import (
    GitHubRestProvider,
    RepositoryFileStore,
    SetFileContentsParams,
)

__all__ = [
    "GitHubApiClient",
    "GitHubRestProvider",
    "RepositoryFileStore",
    "SetFileContentsParams",
    "VersionedStore",
]
