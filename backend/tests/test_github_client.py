# backend/tests/test_github_client.py
import base64
import io
import json
import urllib.error

import pytest

from app.services import github
from app.services.github import (
    Committer,
    GitHubApiClient,
    SubmissionFile,
    SubmissionRepository,
    WorkflowDispatch,
)


class _FakeResponse:
    def __init__(self, status: int = 200, body: bytes = b"{}"):
        self.status = status
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture()
def calls(monkeypatch):
    seen = []

    def _fake_urlopen(req, timeout=None):
        seen.append(req)
        return _FakeResponse(status=201 if req.get_method() in {"PUT", "POST"} else 200)

    monkeypatch.setattr(github.urllib.request, "urlopen", _fake_urlopen)
    return seen


def _client() -> GitHubApiClient:
    return GitHubApiClient(api_url="https://api.example.test/", token="t0ken", org="cc-org")


def test_push_file_puts_base64_content(calls):
    f = SubmissionFile.from_bytes(b"print('hi')", message="Add solution", committer=Committer(name="A", email="a@x.com"))

    assert _client().push_file("a-x-com", "src/main.py", f) is True

    req = calls[0]
    assert req.get_method() == "PUT"
    assert req.full_url == "https://api.example.test/repos/cc-org/a-x-com/contents/src/main.py"
    assert req.get_header("Authorization") == "Bearer t0ken"
    body = json.loads(req.data)
    assert base64.b64decode(body["content"]) == b"print('hi')"
    assert body["committer"] == {"name": "A", "email": "a@x.com"}


def test_repository_operations_hit_expected_endpoints(calls):
    client = _client()

    assert client.create_repository(SubmissionRepository(name="a-x-com", description="Submission of a@x.com"))
    assert client.trigger_workflow("a-x-com", "lint.yml", WorkflowDispatch(ref="main"))
    assert client.get_repository("a-x-com")
    assert client.delete_repository("a-x-com")

    assert [(r.get_method(), r.full_url) for r in calls] == [
        ("POST", "https://api.example.test/orgs/cc-org/repos"),
        ("POST", "https://api.example.test/repos/cc-org/a-x-com/actions/workflows/lint.yml/dispatches"),
        ("GET", "https://api.example.test/repos/cc-org/a-x-com"),
        ("DELETE", "https://api.example.test/repos/cc-org/a-x-com"),
    ]
    assert json.loads(calls[1].data) == {"ref": "main"}


def test_http_error_is_reported_as_failure(monkeypatch):
    def _fail(req, timeout=None):
        raise urllib.error.HTTPError(req.full_url, 404, "Not Found", {}, io.BytesIO(b"{}"))

    monkeypatch.setattr(github.urllib.request, "urlopen", _fail)

    assert _client().get_repository("missing") is False


def test_network_error_is_reported_as_failure(monkeypatch):
    def _fail(req, timeout=None):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(github.urllib.request, "urlopen", _fail)

    assert _client().delete_repository("a-x-com") is False
