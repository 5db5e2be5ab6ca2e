"""External audit publication.

Publishers never raise: every outcome, including transport failures,
comes back as a PublicationResult for the caller to log.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from audited_query.__about__ import __version__
from audited_query.core.audit import format_markdown
from audited_query.core.models import PublicationResult

if TYPE_CHECKING:
    from audited_query.core.config import AuditSettings
    from audited_query.core.models import AuditEntry

GITHUB_API_URL = "https://api.github.com"


@runtime_checkable
class AuditPublisher(Protocol):
    def publish(self, entry: AuditEntry) -> PublicationResult: ...


class GitHubIssuePublisher:
    """Post audit entries as comments on a single GitHub issue."""

    def __init__(
        self,
        repo_owner: str,
        repo_name: str,
        issue_number: int,
        token: str,
        timeout: float = 10.0,
        base_url: str = GITHUB_API_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.repo_owner = repo_owner
        self.repo_name = repo_name
        self.issue_number = issue_number
        self._token = token
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def comments_url(self) -> str:
        return (
            f"{self.base_url}/repos/{self.repo_owner}/{self.repo_name}"
            f"/issues/{self.issue_number}/comments"
        )

    def publish(self, entry: AuditEntry) -> PublicationResult:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "User-Agent": f"audited-query/{__version__}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        try:
            with httpx.Client(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = client.post(
                    self.comments_url,
                    json={"body": format_markdown(entry)},
                    headers=headers,
                )
        except httpx.HTTPError as e:
            return PublicationResult(error=f"GitHub request failed: {e}")

        if response.status_code >= 400:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            return PublicationResult(
                error=f"GitHub returned {response.status_code}: {detail}"
            )

        try:
            url = response.json()["html_url"]
        except (ValueError, KeyError, TypeError):
            return PublicationResult(error="GitHub response did not include html_url")
        return PublicationResult(reference=url)


def build_publisher(settings: AuditSettings) -> AuditPublisher | None:
    """Return a GitHub publisher, or None when the settings are incomplete."""
    if not settings.github_configured:
        return None
    return GitHubIssuePublisher(
        repo_owner=settings.github_repo_owner or "",
        repo_name=settings.github_repo_name or "",
        issue_number=settings.github_issue_number or 0,
        token=settings.github_token or "",
        timeout=settings.publish_timeout,
    )
