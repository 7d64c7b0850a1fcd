"""
Tests for the GitHub REST client (fork, branch, commit, pull request).
"""

import base64
import threading
import time

import pytest
import requests

from conftest import make_response
from winget_publisher.core.compiler import compile_manifests
from winget_publisher.domain.context import RunContext
from winget_publisher.domain.errors import PublishCancelled, RemoteAPIError
from winget_publisher.domain.manifests import Installer
from winget_publisher.domain.models import PullRequestConfig
from winget_publisher.infra.github_client import (
    PR_BODY,
    GitHubClient,
    GitHubSettings,
    branch_name,
    commit_message,
)
from winget_publisher.infra.hasher import hash_bytes

TOKEN = "ghp_secret_token_value"
NO_WAIT = GitHubSettings(fork_settle_seconds=0)


@pytest.fixture
def manifests(config):
    installer = Installer(
        architecture="x64",
        installer_type="msi",
        installer_url="https://example.com/releases/1.0.0/app-x64.msi",
        installer_sha256=hash_bytes(b"x64"),
    )
    return compile_manifests(config, "1.0.0", [installer])


@pytest.fixture
def client(mock_session):
    return GitHubClient(TOKEN, settings=NO_WAIT, session=mock_session)


def _calls(mock_session):
    """(method, url) of every request sent."""
    return [(c.args[0], c.args[1]) for c in mock_session.request.call_args_list]


def _payload(call):
    return call.kwargs["json"]


class TestNaming:
    def test_branch_name(self, manifests):
        assert branch_name(manifests) == "winget/MyOrg-MyApp/1.0.0"

    def test_commit_message(self, manifests):
        assert commit_message(manifests) == "New version: MyOrg.MyApp version 1.0.0"


class TestRequests:
    """Tests for the HTTP plumbing."""

    def test_headers(self, client, mock_session):
        mock_session.request.return_value = make_response(200, {"login": "octocat"})

        client.get_current_user(RunContext())

        headers = mock_session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == f"Bearer {TOKEN}"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"

    def test_request_timeout_capped_by_deadline(self, client, mock_session):
        mock_session.request.return_value = make_response(200, {"login": "octocat"})

        client.get_current_user(RunContext(timeout=5))

        assert mock_session.request.call_args.kwargs["timeout"] <= 5

    def test_transport_error(self, client, mock_session):
        mock_session.request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(RemoteAPIError) as exc_info:
            client.get_current_user(RunContext())

        assert exc_info.value.step == "get current user"
        assert "connection refused" in str(exc_info.value)

    def test_token_redacted_from_errors(self, client, mock_session):
        mock_session.request.return_value = make_response(
            401, text=f"Bad credentials for {TOKEN}"
        )

        with pytest.raises(RemoteAPIError) as exc_info:
            client.get_current_user(RunContext())

        assert TOKEN not in str(exc_info.value)
        assert TOKEN not in exc_info.value.body
        assert "[REDACTED]" in exc_info.value.body
        assert exc_info.value.status_code == 401

    def test_undecodable_body(self, client, mock_session):
        mock_session.request.return_value = make_response(200, text="<html>")

        with pytest.raises(RemoteAPIError) as exc_info:
            client.get_current_user(RunContext())

        assert "failed to decode response" in str(exc_info.value)

    def test_cancelled_context_sends_nothing(self, client, mock_session):
        ctx = RunContext()
        ctx.cancel()

        with pytest.raises(PublishCancelled):
            client.get_current_user(ctx)

        mock_session.request.assert_not_called()


class TestEnsureFork:
    """Tests for fork discovery and creation."""

    def test_configured_owner_makes_no_calls(self, mock_session):
        client = GitHubClient(TOKEN, fork_owner="release-bot", session=mock_session)

        assert client.ensure_fork(RunContext()) == "release-bot"
        mock_session.request.assert_not_called()

    def test_existing_fork(self, client, mock_session):
        mock_session.request.side_effect = [
            make_response(200, {"login": "octocat"}),
            make_response(200, {"full_name": "octocat/winget-pkgs"}),
        ]

        assert client.ensure_fork(RunContext()) == "octocat"
        assert _calls(mock_session) == [
            ("GET", "https://api.github.com/user"),
            ("GET", "https://api.github.com/repos/octocat/winget-pkgs"),
        ]

    def test_creates_missing_fork(self, client, mock_session):
        mock_session.request.side_effect = [
            make_response(200, {"login": "octocat"}),
            make_response(404, text="Not Found"),
            make_response(202, {"full_name": "octocat/winget-pkgs"}),
        ]

        assert client.ensure_fork(RunContext()) == "octocat"
        assert _calls(mock_session)[-1] == (
            "POST",
            "https://api.github.com/repos/microsoft/winget-pkgs/forks",
        )

    def _fork_created(self):
        return [
            make_response(200, {"login": "octocat"}),
            make_response(404, text="Not Found"),
            make_response(202, {"full_name": "octocat/winget-pkgs"}),
        ]

    def test_waits_for_new_fork_to_settle(self, mock_session):
        client = GitHubClient(
            TOKEN, settings=GitHubSettings(fork_settle_seconds=0.3), session=mock_session
        )
        mock_session.request.side_effect = self._fork_created()
        started = time.monotonic()

        assert client.ensure_fork(RunContext()) == "octocat"
        assert time.monotonic() - started >= 0.25

    def test_existing_fork_does_not_wait(self, mock_session):
        client = GitHubClient(
            TOKEN, settings=GitHubSettings(fork_settle_seconds=30), session=mock_session
        )
        mock_session.request.side_effect = [
            make_response(200, {"login": "octocat"}),
            make_response(200, {"full_name": "octocat/winget-pkgs"}),
        ]
        started = time.monotonic()

        client.ensure_fork(RunContext())

        assert time.monotonic() - started < 5

    def test_cancel_during_settle(self, mock_session):
        client = GitHubClient(
            TOKEN, settings=GitHubSettings(fork_settle_seconds=30), session=mock_session
        )
        mock_session.request.side_effect = self._fork_created()
        ctx = RunContext()
        timer = threading.Timer(0.2, ctx.cancel)
        timer.start()
        started = time.monotonic()

        try:
            with pytest.raises(PublishCancelled):
                client.ensure_fork(ctx)
        finally:
            timer.cancel()

        assert time.monotonic() - started < 5

    def test_fork_creation_failure(self, client, mock_session):
        mock_session.request.side_effect = [
            make_response(200, {"login": "octocat"}),
            make_response(404, text="Not Found"),
            make_response(403, text="forbidden"),
        ]

        with pytest.raises(RemoteAPIError) as exc_info:
            client.ensure_fork(RunContext())

        assert exc_info.value.step == "create fork"
        assert str(exc_info.value).startswith("create fork: ")

    def test_fork_probe_error(self, client, mock_session):
        mock_session.request.side_effect = [
            make_response(200, {"login": "octocat"}),
            make_response(500, text="boom"),
        ]

        with pytest.raises(RemoteAPIError) as exc_info:
            client.ensure_fork(RunContext())

        assert exc_info.value.step == "check fork"


class TestCreatePR:
    """Tests for branch, commit and pull request creation."""

    def _happy_path(self, login_first=False):
        responses = [
            make_response(200, {"object": {"sha": "abc123"}}),
            make_response(201, {"ref": "refs/heads/winget/MyOrg-MyApp/1.0.0"}),
            make_response(201, {}),
            make_response(201, {}),
            make_response(201, {}),
            make_response(
                201, {"number": 42, "html_url": "https://github.com/microsoft/winget-pkgs/pull/42"}
            ),
        ]
        if login_first:
            responses.insert(0, make_response(200, {"login": "octocat"}))
        return responses

    def test_call_sequence(self, manifests, mock_session):
        client = GitHubClient(TOKEN, fork_owner="octocat", session=mock_session)
        mock_session.request.side_effect = self._happy_path()

        pr_url = client.create_pr(RunContext(), manifests, PullRequestConfig())

        assert pr_url == "https://github.com/microsoft/winget-pkgs/pull/42"
        base = "https://api.github.com/repos"
        files = "manifests/m/MyOrg.MyApp/1.0.0/MyOrg.MyApp"
        assert _calls(mock_session) == [
            ("GET", f"{base}/microsoft/winget-pkgs/git/ref/heads/master"),
            ("POST", f"{base}/octocat/winget-pkgs/git/refs"),
            ("PUT", f"{base}/octocat/winget-pkgs/contents/{files}.yaml"),
            ("PUT", f"{base}/octocat/winget-pkgs/contents/{files}.installer.yaml"),
            ("PUT", f"{base}/octocat/winget-pkgs/contents/{files}.locale.en-US.yaml"),
            ("POST", f"{base}/microsoft/winget-pkgs/pulls"),
        ]

    def test_payloads(self, manifests, mock_session):
        client = GitHubClient(TOKEN, fork_owner="octocat", session=mock_session)
        mock_session.request.side_effect = self._happy_path()

        client.create_pr(RunContext(), manifests, PullRequestConfig())
        calls = mock_session.request.call_args_list

        assert _payload(calls[1]) == {
            "ref": "refs/heads/winget/MyOrg-MyApp/1.0.0",
            "sha": "abc123",
        }

        expected = list(manifests.get_files().values())
        for call, content in zip(calls[2:5], expected):
            body = _payload(call)
            assert body["branch"] == "winget/MyOrg-MyApp/1.0.0"
            assert body["message"] == "New version: MyOrg.MyApp version 1.0.0"
            assert base64.b64decode(body["content"]).decode("utf-8") == content

        assert _payload(calls[5]) == {
            "title": "New version: MyOrg.MyApp version 1.0.0",
            "head": "octocat:winget/MyOrg-MyApp/1.0.0",
            "base": "master",
            "body": PR_BODY,
        }

    def test_owner_from_authenticated_user(self, client, manifests, mock_session):
        mock_session.request.side_effect = self._happy_path(login_first=True)

        client.create_pr(RunContext(), manifests, PullRequestConfig())

        assert _calls(mock_session)[0] == ("GET", "https://api.github.com/user")
        assert _payload(mock_session.request.call_args_list[-1])["head"].startswith("octocat:")

    def test_custom_title_and_base(self, manifests, mock_session):
        client = GitHubClient(TOKEN, fork_owner="octocat", session=mock_session)
        mock_session.request.side_effect = self._happy_path()
        pr_config = PullRequestConfig(base_branch="main", title="{{.PackageId}} {{.Version}}")

        client.create_pr(RunContext(), manifests, pr_config)
        calls = mock_session.request.call_args_list

        assert calls[0].args[1].endswith("/git/ref/heads/main")
        assert _payload(calls[-1])["title"] == "MyOrg.MyApp 1.0.0"
        assert _payload(calls[-1])["base"] == "main"

    def test_branch_already_exists(self, manifests, mock_session):
        client = GitHubClient(TOKEN, fork_owner="octocat", session=mock_session)
        mock_session.request.side_effect = [
            make_response(200, {"object": {"sha": "abc123"}}),
            make_response(422, text="Reference already exists"),
        ]

        with pytest.raises(RemoteAPIError) as exc_info:
            client.create_pr(RunContext(), manifests, PullRequestConfig())

        assert exc_info.value.step == "create branch"
        assert exc_info.value.status_code == 422
        assert "Reference already exists" in str(exc_info.value)

    def test_missing_base_sha(self, manifests, mock_session):
        client = GitHubClient(TOKEN, fork_owner="octocat", session=mock_session)
        mock_session.request.return_value = make_response(200, {"object": {}})

        with pytest.raises(RemoteAPIError) as exc_info:
            client.create_pr(RunContext(), manifests, PullRequestConfig())

        assert exc_info.value.step == "get base branch SHA"

    def test_partial_commit_failure(self, manifests, mock_session):
        client = GitHubClient(TOKEN, fork_owner="octocat", session=mock_session)
        mock_session.request.side_effect = [
            make_response(200, {"object": {"sha": "abc123"}}),
            make_response(201, {}),
            make_response(201, {}),
            make_response(409, text="conflict"),
        ]

        with pytest.raises(RemoteAPIError) as exc_info:
            client.create_pr(RunContext(), manifests, PullRequestConfig())

        error = exc_info.value
        assert error.step == "commit files"
        assert str(error).startswith(
            "commit files: failed to create file "
            "manifests/m/MyOrg.MyApp/1.0.0/MyOrg.MyApp.installer.yaml: "
        )
        assert error.committed_files == ["manifests/m/MyOrg.MyApp/1.0.0/MyOrg.MyApp.yaml"]
        # No PR is attempted after a failed commit
        assert mock_session.request.call_count == 4

    def test_pull_request_failure(self, manifests, mock_session):
        client = GitHubClient(TOKEN, fork_owner="octocat", session=mock_session)
        responses = self._happy_path()
        responses[-1] = make_response(422, text="A pull request already exists")
        mock_session.request.side_effect = responses

        with pytest.raises(RemoteAPIError) as exc_info:
            client.create_pr(RunContext(), manifests, PullRequestConfig())

        assert exc_info.value.step == "create pull request"

    def test_pull_request_without_url(self, manifests, mock_session):
        client = GitHubClient(TOKEN, fork_owner="octocat", session=mock_session)
        responses = self._happy_path()
        responses[-1] = make_response(201, {"number": 42})
        mock_session.request.side_effect = responses

        with pytest.raises(RemoteAPIError) as exc_info:
            client.create_pr(RunContext(), manifests, PullRequestConfig())

        assert exc_info.value.step == "create pull request"
        assert "html_url" in str(exc_info.value)
