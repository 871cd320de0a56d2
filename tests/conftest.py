"""Pytest configuration and shared fixtures.

``FakeGitHub`` is an in-memory stand-in for the parts of the GitHub REST API
the release publisher uses. It is plugged into the real client through
``httpx.MockTransport`` so every test exercises request building, status
classification and JSON decoding without a network.
"""

import base64
import hashlib
import itertools
import json
import re
from datetime import datetime, timezone

import httpx
import pytest

from release_publisher.config.settings import ReleaseSettings
from release_publisher.providers.github_api import GitHubApiClient
from release_publisher.providers.github_rest import GitHubRestProvider

FIXED_NOW = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
FIXED_STAMP = "2024-05-06T07-08-09Z"


def blob_sha(content: bytes) -> str:
    """Compute the blob identifier the fake reports for ``content``."""
    return hashlib.sha1(content).hexdigest()


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"message": message})


class FakeGitHub:
    """Stateful fake of refs, contents and pulls endpoints.

    Commits are modelled as full trees (path -> bytes) with a single parent,
    which is enough to answer fast-forward questions.
    """

    def __init__(self, default_branch: str = "main") -> None:
        self.default_branch = default_branch
        self.commits: dict[str, dict[str, bytes]] = {}
        self.parents: dict[str, str | None] = {}
        self.refs: dict[tuple[str, str, str], str] = {}
        self.pulls: list[dict] = []
        self.messages: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.overrides: dict[tuple[str, str], tuple[int, str]] = {}
        self._ids = itertools.count(1)

    # -- seeding helpers ------------------------------------------------------

    def add_commit(self, files: dict[str, bytes], parent: str | None = None, sha: str | None = None) -> str:
        sha = sha or f"commit{next(self._ids):04d}"
        self.commits[sha] = dict(files)
        self.parents[sha] = parent
        return sha

    def set_branch(self, org: str, repo: str, branch: str, sha: str) -> None:
        self.refs[(org, repo, branch)] = sha

    def branch_sha(self, org: str, repo: str, branch: str) -> str | None:
        return self.refs.get((org, repo, branch))

    def file_at(self, org: str, repo: str, branch: str, path: str) -> bytes | None:
        sha = self.branch_sha(org, repo, branch)
        if sha is None:
            return None
        return self.commits[sha].get(path)

    def calls(self, method: str | None = None) -> list[tuple[str, str]]:
        """Return ``(method, path)`` of every request received."""
        return [
            (r.method, r.url.path) for r in self.requests if method is None or r.method == method
        ]

    # -- transport ------------------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        override = self.overrides.get((request.method, request.url.path))
        if override is not None:
            status, text = override
            return httpx.Response(status, text=text)

        body = json.loads(request.content) if request.content else None
        path = request.url.path

        routes = [
            ("GET", r"^/repos/([^/]+)/([^/]+)/git/ref/heads/(.+)$", self._get_ref),
            ("POST", r"^/repos/([^/]+)/([^/]+)/git/refs$", self._create_ref),
            ("PATCH", r"^/repos/([^/]+)/([^/]+)/git/refs/heads/(.+)$", self._update_ref),
            ("GET", r"^/repos/([^/]+)/([^/]+)/contents/(.+)$", self._get_contents),
            ("PUT", r"^/repos/([^/]+)/([^/]+)/contents/(.+)$", self._put_contents),
            ("GET", r"^/repos/([^/]+)/([^/]+)/pulls$", self._list_pulls),
            ("POST", r"^/repos/([^/]+)/([^/]+)/pulls$", self._create_pull),
        ]
        for method, pattern, handler in routes:
            match = re.match(pattern, path)
            if method == request.method and match:
                return handler(request, body, *match.groups())
        return _error(404, "Not Found")

    def _get_ref(self, request, body, org, repo, branch):
        sha = self.branch_sha(org, repo, branch)
        if sha is None:
            return _error(404, "Not Found")
        return httpx.Response(200, json={"ref": f"refs/heads/{branch}", "object": {"sha": sha, "type": "commit"}})

    def _create_ref(self, request, body, org, repo):
        branch = body["ref"].removeprefix("refs/heads/")
        if (org, repo, branch) in self.refs:
            return _error(422, "Reference already exists")
        if body["sha"] not in self.commits:
            return _error(422, "Object does not exist")
        self.set_branch(org, repo, branch, body["sha"])
        return httpx.Response(201, json={"ref": body["ref"], "object": {"sha": body["sha"]}})

    def _update_ref(self, request, body, org, repo, branch):
        current = self.branch_sha(org, repo, branch)
        if current is None:
            return _error(422, "Reference does not exist")
        if body["sha"] not in self.commits:
            return _error(422, "Object does not exist")
        if not body.get("force") and not self._is_ancestor(current, body["sha"]):
            return _error(422, "Update is not a fast forward")
        self.set_branch(org, repo, branch, body["sha"])
        return httpx.Response(200, json={"ref": f"refs/heads/{branch}", "object": {"sha": body["sha"]}})

    def _get_contents(self, request, body, org, repo, path):
        ref = request.url.params.get("ref") or self.default_branch
        sha = self.branch_sha(org, repo, ref)
        if sha is None:
            return _error(404, "No commit found for the ref")
        tree = self.commits[sha]
        if path in tree:
            content = tree[path]
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "encoding": "base64",
                    "path": path,
                    "sha": blob_sha(content),
                    "content": base64.encodebytes(content).decode("ascii"),
                },
            )
        children = sorted(p for p in tree if p.startswith(path + "/"))
        if children:
            return httpx.Response(200, json=[{"type": "file", "path": p, "sha": blob_sha(tree[p])} for p in children])
        return _error(404, "Not Found")

    def _put_contents(self, request, body, org, repo, path):
        branch = body.get("branch") or self.default_branch
        head = self.branch_sha(org, repo, branch)
        if head is None:
            return _error(404, "Branch not found")
        tree = dict(self.commits[head])
        given = body.get("sha")
        if path in tree:
            if not given:
                return _error(422, "Invalid request.\n\n\"sha\" wasn't supplied.")
            if given != blob_sha(tree[path]):
                return _error(409, f"{path} does not match {given}")
        elif given:
            return _error(422, f"{path} does not exist")
        tree[path] = base64.b64decode(body["content"])
        new_sha = self.add_commit(tree, parent=head)
        self.messages[new_sha] = body["message"]
        self.set_branch(org, repo, branch, new_sha)
        return httpx.Response(200, json={"content": {"path": path, "sha": blob_sha(tree[path])}, "commit": {"sha": new_sha}})

    def _list_pulls(self, request, body, org, repo):
        head = request.url.params.get("head")
        base = request.url.params.get("base")
        state = request.url.params.get("state", "open")
        matches = [
            pr
            for pr in self.pulls
            if pr["org"] == org
            and pr["repo"] == repo
            and (head is None or pr["head"] == head)
            and (base is None or pr["base"] == base)
            and (state == "all" or pr["state"] == state)
        ]
        return httpx.Response(200, json=[{"html_url": pr["html_url"], "number": pr["number"]} for pr in matches])

    def _create_pull(self, request, body, org, repo):
        for pr in self.pulls:
            if (pr["org"], pr["repo"], pr["head"], pr["base"], pr["state"]) == (
                org,
                repo,
                body["head"],
                body["base"],
                "open",
            ):
                return _error(422, f"A pull request already exists for {body['head']}.")
        number = len(self.pulls) + 1
        pr = {
            "org": org,
            "repo": repo,
            "number": number,
            "state": "open",
            "html_url": f"https://github.com/{org}/{repo}/pull/{number}",
            **body,
        }
        self.pulls.append(pr)
        return httpx.Response(201, json={"html_url": pr["html_url"], "number": number})

    def _is_ancestor(self, ancestor: str, sha: str | None) -> bool:
        while sha is not None:
            if sha == ancestor:
                return True
            sha = self.parents.get(sha)
        return False


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Empty in-memory GitHub."""
    return FakeGitHub()


@pytest.fixture
def api_client(fake_github: FakeGitHub) -> GitHubApiClient:
    """API client whose requests are served by ``fake_github``."""
    return GitHubApiClient("test-token", transport=httpx.MockTransport(fake_github))


@pytest.fixture
def provider(api_client: GitHubApiClient) -> GitHubRestProvider:
    """GitHub provider backed by ``fake_github``."""
    return GitHubRestProvider(api_client)


@pytest.fixture
def settings() -> ReleaseSettings:
    """Default release settings (Kubernetes and OpenShift catalogs)."""
    return ReleaseSettings()
