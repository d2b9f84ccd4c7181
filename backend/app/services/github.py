# backend/app/services/github.py
"""
Thin client for the GitHub REST API used to store applicant submissions.

Each submission lives in its own repository under GITHUB_ORG. Every call
returns True on a 2xx response and False otherwise; failures are logged so
the submission flow can decide what to do next.
"""
from __future__ import annotations

import base64
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, Optional
from urllib.parse import quote

from pydantic import BaseModel

from app.core.config import settings

logger = logging.getLogger("codingchallenge")

GITHUB_TIMEOUT_SECONDS = 10


class Committer(BaseModel):
    name: str
    email: str


class SubmissionFile(BaseModel):
    message: str
    content: str  # base64
    committer: Committer

    @classmethod
    def from_bytes(cls, raw: bytes, *, message: str, committer: Committer) -> "SubmissionFile":
        return cls(message=message, content=base64.b64encode(raw).decode("ascii"), committer=committer)


class SubmissionRepository(BaseModel):
    name: str
    description: str


class WorkflowDispatch(BaseModel):
    ref: str


class GitHubApiClient:
    def __init__(
        self,
        api_url: Optional[str] = None,
        token: Optional[str] = None,
        org: Optional[str] = None,
    ) -> None:
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.token = token if token is not None else settings.github_token
        self.org = org or settings.github_org

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> bool:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = urllib.request.Request(
            url=f"{self.api_url}/{path.lstrip('/')}",
            data=data,
            method=method,
            headers=headers,
        )

        try:
            with urllib.request.urlopen(req, timeout=GITHUB_TIMEOUT_SECONDS) as resp:
                resp.read()
                status = getattr(resp, "status", 200)
        except urllib.error.HTTPError as e:
            logger.error("GitHub %s %s failed status=%s", method, path, e.code)
            return False
        except (urllib.error.URLError, OSError):
            logger.exception("GitHub %s %s failed", method, path)
            return False

        return 200 <= int(status) < 300

    def _repo_path(self, repo_name: str) -> str:
        return f"repos/{quote(self.org)}/{quote(repo_name)}"

    def push_file(self, repo_name: str, file_path: str, submission_file: SubmissionFile) -> bool:
        return self._request(
            "PUT",
            f"{self._repo_path(repo_name)}/contents/{quote(file_path)}",
            submission_file.model_dump(),
        )

    def create_repository(self, repository: SubmissionRepository) -> bool:
        return self._request("POST", f"orgs/{quote(self.org)}/repos", repository.model_dump())

    def trigger_workflow(self, repo_name: str, workflow_name: str, dispatch: WorkflowDispatch) -> bool:
        return self._request(
            "POST",
            f"{self._repo_path(repo_name)}/actions/workflows/{quote(workflow_name)}/dispatches",
            dispatch.model_dump(),
        )

    def get_repository(self, repo_name: str) -> bool:
        return self._request("GET", self._repo_path(repo_name))

    def delete_repository(self, repo_name: str) -> bool:
        return self._request("DELETE", self._repo_path(repo_name))
