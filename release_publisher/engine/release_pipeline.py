"""
Release pipeline: publish one operator release to every catalog repository.

For each target repository, in order, the pipeline:

1. mirrors the upstream default branch onto the fork (forced),
2. creates the release branch in the fork at that commit,
3. writes the CRD and cluster service version files into the version directory,
4. rewrites the shared package index using the upstream blob SHA as the
   optimistic-concurrency token,
5. opens (or reuses) the pull request from the fork into upstream.

Requests are awaited one at a time. The first failure aborts the run and
nothing already applied on the remote is rolled back; every error names the
step that failed so the release can be finished by hand.
"""

import glob
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

import structlog

from release_publisher.config.settings import ReleaseSettings, TargetRepository
from release_publisher.exceptions import ReleaseStepError
from release_publisher.models.domain import (
    PullRequestRecord,
    ReleaseRequest,
    ReleaseResult,
    RepositoryRef,
    bare_version,
    fork_head,
    normalize_version,
    release_branch_name,
)
from release_publisher.providers.github_rest import GitHubRestProvider, SetFileContentsParams

log = structlog.get_logger(__name__)

T = TypeVar("T")

PR_TITLE = "Update latest release of IBM Cloud Operator: {version}"
PR_BODY = "Automated release of IBM Cloud Operator {version}."
COMMIT_MESSAGE = "Add IBM Cloud Operator release {version}"


@dataclass
class ReleaseArtifacts:
    """Artifact bytes read from disk before any request is sent."""

    csv: bytes
    package: bytes
    crds: dict[str, bytes] = field(default_factory=dict)
    """CRD file contents keyed by base file name."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReleasePipeline:
    """Drive the GitHub provider through a release, one target repository at a time."""

    def __init__(
        self,
        provider: GitHubRestProvider,
        settings: ReleaseSettings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            provider: GitHub operations, authenticated with the release token
            settings: Target repositories and catalog layout
            clock: Source of the current UTC time for the branch name
        """
        self.provider = provider
        self.settings = settings
        self.clock = clock or _utc_now

    async def run(
        self,
        request: ReleaseRequest,
        on_result: Callable[[ReleaseResult], None] | None = None,
    ) -> list[ReleaseResult]:
        """Publish a release to every configured target repository.

        Args:
            request: Version, fork organization, token and artifact paths
            on_result: Called with each result as soon as its pull request is open

        Returns:
            One result per target repository, in configuration order

        Raises:
            ValidationError: If a required input is empty (before any request)
            ReleaseStepError: If reading an artifact or any remote step fails
        """
        request.validate()
        artifacts = self.read_artifacts(request)

        version = normalize_version(request.version)
        branch_name = release_branch_name(version, self.clock())
        message = self.commit_message(version, request.signoff)

        results: list[ReleaseResult] = []
        with structlog.contextvars.bound_contextvars(version=version, release_branch=branch_name):
            log.info("release_started", targets=[t.upstream.full_name for t in self.settings.targets])

            for target in self.settings.targets:
                try:
                    url = await self._publish(target, request, artifacts, version, branch_name, message)
                except ReleaseStepError as e:
                    log.error("release_target_failed", repo=target.upstream.full_name, step=e.step)
                    raise ReleaseStepError(
                        f"failed to update {target.label.lower()} operator repo",
                        step=e.step,
                    ) from e

                result = ReleaseResult(label=target.label, repository=target.upstream, url=url)
                results.append(result)
                log.info("release_target_complete", repo=target.upstream.full_name, url=url)
                if on_result is not None:
                    on_result(result)

        return results

    def read_artifacts(self, request: ReleaseRequest) -> ReleaseArtifacts:
        """Read the CSV, package index and CRD files.

        Raises:
            ReleaseStepError: Naming the first file that could not be read
        """
        try:
            csv = Path(request.csv_file).read_bytes()
        except OSError as e:
            raise ReleaseStepError("failed to read cluster service version file", step="read_csv") from e

        try:
            package = Path(request.package_file).read_bytes()
        except OSError as e:
            raise ReleaseStepError("failed to read package file", step="read_package") from e

        crds: dict[str, bytes] = {}
        if request.crd_glob:
            for crd_file in sorted(glob.glob(request.crd_glob)):
                try:
                    crds[Path(crd_file).name] = Path(crd_file).read_bytes()
                except OSError as e:
                    raise ReleaseStepError("failed to read CRD file", step="read_crd") from e

        return ReleaseArtifacts(csv=csv, package=package, crds=crds)

    @staticmethod
    def commit_message(version: str, signoff: str | None = None) -> str:
        """Build the commit message for every file written in a release."""
        message = COMMIT_MESSAGE.format(version=version)
        if signoff:
            message += f"\n\nSigned-off-by: {signoff}"
        return message

    async def _publish(
        self,
        target: TargetRepository,
        request: ReleaseRequest,
        artifacts: ReleaseArtifacts,
        version: str,
        branch_name: str,
        message: str,
    ) -> str:
        upstream = target.upstream
        fork = target.fork(request.fork_org)
        default_branch = self.settings.default_branch
        bare = bare_version(version)

        sha = await self._step(
            "get_upstream_ref",
            f'failed to resolve branch "{default_branch}" in upstream repo {upstream}',
            self.provider.get_ref(upstream, default_branch),
        )
        await self._step(
            "sync_fork",
            f'failed to sync branch "{default_branch}" of fork {fork}',
            self.provider.update_ref(fork, default_branch, sha, force=True),
        )
        await self._step(
            "create_branch",
            f'failed to create branch "{branch_name}" in fork {fork}',
            self.provider.create_ref(fork, branch_name, sha),
        )

        for file_name, contents in artifacts.crds.items():
            await self._write_file(
                fork, branch_name, f"{self.settings.version_dir(bare)}/{file_name}", contents, message
            )

        await self._write_file(fork, branch_name, self.settings.csv_path(version, bare), artifacts.csv, message)

        package_path = self.settings.package_path
        old_package = await self._step(
            "read_package_index",
            f'failed to get old contents of file "{package_path}"',
            self.provider.get_file_contents(upstream, package_path, ref=default_branch),
        )
        await self._step(
            "set_file_contents",
            f'failed to set contents of file "{package_path}"',
            self.provider.file_store(fork, branch_name).compare_and_swap(
                package_path, artifacts.package, old_package.sha, message
            ),
        )

        return await self._step(
            "open_pull_request",
            f"failed to open {target.label.lower()} operator PR",
            self.provider.ensure_pull_request(
                PullRequestRecord(
                    org=upstream.org,
                    repo=upstream.name,
                    head=fork_head(request.fork_org, branch_name),
                    base=default_branch,
                    title=PR_TITLE.format(version=version),
                    body=PR_BODY.format(version=version),
                    draft=request.draft,
                )
            ),
        )

    async def _write_file(
        self,
        fork: RepositoryRef,
        branch_name: str,
        path: str,
        contents: bytes,
        message: str,
    ) -> None:
        await self._step(
            "set_file_contents",
            f'failed to set contents of file "{path}"',
            self.provider.set_file_contents(
                SetFileContentsParams(
                    org=fork.org,
                    repo=fork.name,
                    branch_name=branch_name,
                    file_path=path,
                    new_contents=contents,
                    message=message,
                )
            ),
        )

    async def _step(self, step: str, description: str, operation: Awaitable[T]) -> T:
        """Await one remote operation, wrapping any failure with ``description``."""
        try:
            return await operation
        except Exception as e:
            log.error("release_step_failed", step=step, error=str(e))
            raise ReleaseStepError(description, step=step) from e
