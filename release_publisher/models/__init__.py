"""Domain models for release publishing.

Key Models:
    - RepositoryRef: (organization, repository) pair
    - FileSnapshot: file bytes plus content identifier
    - PullRequestRecord: pull request to open
    - ReleaseRequest: per-run pipeline input
    - ReleaseResult: pull request locator per target repository

Example:
    >>> from release_publisher.models import normalize_version
    >>> normalize_version("1.2.3")
    'v1.2.3'
"""

from release_publisher.models.domain import (
    FileSnapshot,
    PullRequestRecord,
    ReleaseRequest,
    ReleaseResult,
    RepositoryRef,
    bare_version,
    branch_ref,
    fork_head,
    normalize_version,
    release_branch_name,
)

__all__ = [
    "FileSnapshot",
    "PullRequestRecord",
    "ReleaseRequest",
    "ReleaseResult",
    "RepositoryRef",
    "bare_version",
    "branch_ref",
    "fork_head",
    "normalize_version",
    "release_branch_name",
]
