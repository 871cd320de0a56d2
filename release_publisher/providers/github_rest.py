"""GitHub provider implementation using direct REST API calls.

Covers the three groups of operations release publishing needs: git refs,
repository contents and pull requests. Every method issues its requests one
at a time through :class:`GitHubApiClient` and never retries.
"""

import base64
import urllib.parse
from dataclasses import dataclass
from typing import Any

import structlog

from release_publisher.exceptions import ConflictError, RequestFailedError, ValidationError
from release_publisher.models.domain import (
    FileSnapshot,
    PullRequestRecord,
    RepositoryRef,
    branch_ref,
)
from release_publisher.providers.base import VersionedStore
from release_publisher.providers.github_api import GitHubApiClient

log = structlog.get_logger(__name__)

# GitHub answers 422 for "Reference already exists" and "Update is not a fast forward"
_REF_CONFLICT_STATUSES = (409, 422)


def _encode_path(path: str) -> str:
    """Percent-encode a branch name or file path for use in a URL path."""
    return urllib.parse.quote(path, safe="/")


@dataclass
class SetFileContentsParams:
    """Parameters of a create-or-update file write."""

    org: str
    repo: str
    branch_name: str
    file_path: str
    """Repository-relative file path."""

    new_contents: bytes
    message: str | None = None
    """Commit message. Defaults to ``Update <file_path>``."""

    old_contents_sha: str | None = None
    """Blob SHA of the file being replaced. Omit only for new files."""


class GitHubRestProvider:
    """GitHub refs, contents and pull request operations."""

    def __init__(self, client: GitHubApiClient) -> None:
        """Initialize GitHub provider.

        Args:
            client: Authenticated API client
        """
        self.client = client

    # -------------------------------------------------------------------------
    # Refs
    # -------------------------------------------------------------------------

    async def get_ref(self, repo: RepositoryRef, branch_name: str) -> str:
        """Resolve a branch to its current commit SHA.

        Raises:
            NotFoundError: If the branch does not exist
        """
        log.info("get_ref", repo=repo.full_name, branch=branch_name)

        ref_path = _encode_path(branch_ref(branch_name))
        data = await self.client.request("GET", f"/repos/{repo.org}/{repo.name}/git/ref/{ref_path}")
        return data["object"]["sha"]

    async def create_ref(self, repo: RepositoryRef, branch_name: str, sha: str) -> None:
        """Create a new branch pointing at ``sha``.

        Raises:
            ConflictError: If the branch already exists
        """
        log.info("create_ref", repo=repo.full_name, branch=branch_name, sha=sha)

        try:
            await self.client.request(
                "POST",
                f"/repos/{repo.org}/{repo.name}/git/refs",
                json={"ref": "refs/" + branch_ref(branch_name), "sha": sha},
                decode=False,
            )
        except RequestFailedError as e:
            log.error("github_create_ref_failed", repo=repo.full_name, branch=branch_name, error=str(e))
            if e.status_code in _REF_CONFLICT_STATUSES and not isinstance(e, ConflictError):
                raise ConflictError(e.status_code, e.response_text) from e
            raise

    async def update_ref(self, repo: RepositoryRef, branch_name: str, sha: str, force: bool = False) -> None:
        """Move an existing branch to ``sha``.

        Without ``force`` the move must be a fast-forward.

        Raises:
            NotFoundError: If the branch does not exist
            ConflictError: If the move is not a fast-forward and ``force`` is false
        """
        log.info("update_ref", repo=repo.full_name, branch=branch_name, sha=sha, force=force)

        try:
            await self.client.request(
                "PATCH",
                f"/repos/{repo.org}/{repo.name}/git/refs/{_encode_path(branch_ref(branch_name))}",
                json={"sha": sha, "force": force},
                decode=False,
            )
        except RequestFailedError as e:
            log.error("github_update_ref_failed", repo=repo.full_name, branch=branch_name, error=str(e))
            if e.status_code in _REF_CONFLICT_STATUSES and not isinstance(e, ConflictError):
                raise ConflictError(e.status_code, e.response_text) from e
            raise

    # -------------------------------------------------------------------------
    # Contents
    # -------------------------------------------------------------------------

    async def get_file_contents(self, repo: RepositoryRef, path: str, ref: str | None = None) -> FileSnapshot:
        """Read a file and its blob SHA.

        Args:
            repo: Repository to read from
            path: Repository-relative path
            ref: Branch, tag or commit; empty means the default branch

        Raises:
            NotFoundError: If the path does not exist at ``ref``
        """
        log.info("get_file_contents", repo=repo.full_name, path=path, ref=ref)

        params = {"ref": ref} if ref else None
        data = await self.client.request(
            "GET", f"/repos/{repo.org}/{repo.name}/contents/{_encode_path(path)}", params=params
        )
        return self._parse_snapshot(path, data)

    async def set_file_contents(self, params: SetFileContentsParams) -> None:
        """Create or update a file on a branch.

        Reference: https://docs.github.com/en/rest/repos/contents#create-or-update-file-contents

        Raises:
            ValidationError: If a required parameter is empty
            ConflictError: If ``old_contents_sha`` is stale
        """
        for field_name in ("org", "repo", "branch_name", "file_path"):
            if not getattr(params, field_name):
                raise ValidationError(f"{field_name} is required to set file contents")
        if not isinstance(params.new_contents, bytes | bytearray):
            raise ValidationError("new_contents must be bytes")

        message = params.message or "Update " + params.file_path
        log.info(
            "set_file_contents",
            repo=f"{params.org}/{params.repo}",
            branch=params.branch_name,
            path=params.file_path,
            replacing=bool(params.old_contents_sha),
        )

        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(params.new_contents).decode("ascii"),
            "branch": params.branch_name,
        }
        if params.old_contents_sha:
            body["sha"] = params.old_contents_sha

        try:
            await self.client.request(
                "PUT",
                f"/repos/{params.org}/{params.repo}/contents/{_encode_path(params.file_path)}",
                json=body,
                decode=False,
            )
        except RequestFailedError as e:
            log.error(
                "github_set_file_contents_failed",
                path=params.file_path,
                branch=params.branch_name,
                error=str(e),
            )
            raise

    def file_store(self, repo: RepositoryRef, branch_name: str) -> "RepositoryFileStore":
        """Get a compare-and-swap view of one branch of ``repo``."""
        return RepositoryFileStore(self, repo, branch_name)

    # -------------------------------------------------------------------------
    # Pull requests
    # -------------------------------------------------------------------------

    async def list_pull_requests(
        self,
        repo: RepositoryRef,
        head: str,
        base: str | None = None,
        state: str = "open",
    ) -> list[str]:
        """List pull request URLs for a head locator.

        Args:
            repo: Repository the pull requests target
            head: ``branch`` or ``owner:branch``
            base: Optional base branch filter
            state: "open", "closed" or "all"
        """
        log.info("list_pull_requests", repo=repo.full_name, head=head, base=base)

        params = {"head": head, "state": state}
        if base:
            params["base"] = base
        data = await self.client.request("GET", f"/repos/{repo.org}/{repo.name}/pulls", params=params)
        return [pr["html_url"] for pr in data or []]

    async def create_pull_request(self, record: PullRequestRecord) -> str:
        """Open a pull request and return its URL."""
        log.info("create_pull_request", repo=f"{record.org}/{record.repo}", head=record.head, base=record.base)

        data = await self.client.request(
            "POST",
            f"/repos/{record.org}/{record.repo}/pulls",
            json={
                "title": record.title,
                "head": record.head,
                "base": record.base,
                "body": record.body,
                "draft": record.draft,
            },
        )
        return data["html_url"]

    async def ensure_pull_request(self, record: PullRequestRecord) -> str:
        """Return the open pull request for ``(head, base)``, creating it if needed."""
        existing = await self.list_pull_requests(
            RepositoryRef(record.org, record.repo),
            head=record.head,
            base=record.base,
        )
        if existing:
            log.info("pull_request_exists", url=existing[0], head=record.head)
            return existing[0]
        return await self.create_pull_request(record)

    def _parse_snapshot(self, path: str, data: Any) -> FileSnapshot:
        """Convert a contents API payload to a FileSnapshot."""
        if isinstance(data, list):
            return FileSnapshot(path=path, content=b"", sha="", type="dir")

        encoded = data.get("content") or ""
        if data.get("encoding", "base64") == "base64":
            content = base64.b64decode(encoded)
        else:
            content = encoded.encode("utf-8")
        return FileSnapshot(
            path=data.get("path", path),
            content=content,
            sha=data.get("sha", ""),
            type=data.get("type", "file"),
        )


class RepositoryFileStore(VersionedStore):
    """Files on one branch of one repository, keyed by path, versioned by blob SHA."""

    def __init__(self, provider: GitHubRestProvider, repo: RepositoryRef, branch_name: str) -> None:
        self.provider = provider
        self.repo = repo
        self.branch_name = branch_name

    async def read(self, key: str) -> FileSnapshot:
        return await self.provider.get_file_contents(self.repo, key, ref=self.branch_name)

    async def compare_and_swap(
        self,
        key: str,
        value: bytes,
        expected_token: str | None,
        message: str | None = None,
    ) -> None:
        try:
            await self.provider.set_file_contents(
                SetFileContentsParams(
                    org=self.repo.org,
                    repo=self.repo.name,
                    branch_name=self.branch_name,
                    file_path=key,
                    new_contents=value,
                    message=message,
                    old_contents_sha=expected_token,
                )
            )
        except ConflictError:
            raise
        except RequestFailedError as e:
            # A create over an existing file is rejected with 422 ("sha" wasn't supplied)
            if expected_token is None and e.status_code == 422:
                raise ConflictError(e.status_code, e.response_text) from e
            raise
