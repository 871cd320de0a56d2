"""
Domain models for release publishing.

This module contains the value types passed between the GitHub provider and
the release pipeline. They are the normalized internal representation of
GitHub REST payloads; raw JSON never leaves the provider module.

Example:
    Describing the pull request for one catalog repository::

        record = PullRequestRecord(
            org="k8s-operatorhub",
            repo="community-operators",
            head=fork_head("my-fork", "release-v1.2.3-2024-01-02T03-04-05Z"),
            base="main",
            title="Update latest release of IBM Cloud Operator: v1.2.3",
            body="Automated release of IBM Cloud Operator v1.2.3.",
        )
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from release_publisher.exceptions import ValidationError

BRANCH_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%SZ"


@dataclass(frozen=True)
class RepositoryRef:
    """An (organization, repository name) pair on the hosting service."""

    org: str
    """Owning user or organization."""

    name: str
    """Repository name within the organization."""

    @property
    def full_name(self) -> str:
        """Return ``org/name``."""
        return f"{self.org}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class FileSnapshot:
    """A file as read from a repository at some ref.

    The ``sha`` is the blob identifier GitHub expects back as the prior
    version token when the file is replaced.
    """

    path: str
    """Repository-relative path."""

    content: bytes
    """Decoded file bytes. Empty for directories."""

    sha: str
    """Content identifier (git blob SHA)."""

    type: str = "file"
    """Entry type reported by the API: "file", "dir", "symlink" or "submodule"."""


@dataclass(frozen=True)
class PullRequestRecord:
    """Parameters of a pull request to open.

    On the remote side a pull request is identified by its ``(head, base)``
    pair; ``head`` uses the ``owner:branch`` form when the branch lives in a
    fork.
    """

    org: str
    repo: str
    head: str
    base: str
    title: str
    body: str
    draft: bool = False


@dataclass
class ReleaseRequest:
    """Per-run input of the release pipeline, as supplied by the caller."""

    version: str
    fork_org: str
    github_token: str
    csv_file: Path | str
    package_file: Path | str
    crd_glob: str | None = None
    draft: bool = False
    signoff_name: str | None = None
    signoff_email: str | None = None

    def validate(self) -> None:
        """Check required scalar inputs.

        Raises:
            ValidationError: If version, fork org, token or an artifact path is empty
        """
        if not self.version or not self.version.strip():
            raise ValidationError("version is required")
        if not self.fork_org or not self.fork_org.strip():
            raise ValidationError("fork org is required")
        if not self.github_token or not self.github_token.strip():
            raise ValidationError("GitHub token is required")
        if not str(self.csv_file or "").strip():
            raise ValidationError("cluster service version file is required")
        if not str(self.package_file or "").strip():
            raise ValidationError("package file is required")

    @property
    def signoff(self) -> str | None:
        """Return ``Name <email>`` when both sign-off fields are set."""
        if self.signoff_name and self.signoff_email:
            return f"{self.signoff_name} <{self.signoff_email}>"
        return None


@dataclass(frozen=True)
class ReleaseResult:
    """Terminal output of the pipeline for one target repository."""

    label: str
    repository: RepositoryRef
    url: str


def normalize_version(version: str) -> str:
    """Return ``version`` with exactly one leading ``v``.

    >>> normalize_version("1.2.3")
    'v1.2.3'
    >>> normalize_version("v1.2.3")
    'v1.2.3'
    """
    return "v" + bare_version(version)


def bare_version(version: str) -> str:
    """Return ``version`` without its leading ``v``."""
    version = version.strip()
    return version[1:] if version.startswith("v") else version


def release_branch_name(version: str, now: datetime) -> str:
    """Build ``release-<version>-<UTC timestamp>`` for one pipeline run.

    Naive datetimes are taken to be UTC already. Two runs for the same
    version within the same second produce the same name.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime(BRANCH_TIMESTAMP_FORMAT)
    return f"release-{normalize_version(version)}-{stamp}"


def branch_ref(branch_name: str) -> str:
    """Return the ref path of a branch, e.g. ``heads/main``."""
    return "heads/" + branch_name


def fork_head(owner: str, branch_name: str) -> str:
    """Return the cross-repository head locator ``owner:branch``."""
    return f"{owner}:{branch_name}"
