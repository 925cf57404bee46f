"""
GitHub REST API client for GitClock.

Covers the handful of endpoints the changelog sync needs:
- GET  /user                                  (who am I)
- GET  /user/repos                            (does the target repo exist)
- POST /user/repos                            (create it)
- GET  /repos/{owner}/{repo}/contents         (find today's changelog)
- PUT  /repos/{owner}/{repo}/contents/{path}  (create or update a file)

Requests are made once; failures surface as GitHubAPIError and the caller
decides what to do. There is no retry.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Iterator

import requests

from . import __version__
from .config import DEFAULT_API_URL

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 100


class GitHubAPIError(Exception):
    """Error from GitHub API."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class RateLimitError(GitHubAPIError):
    """Rate limit exceeded."""
    def __init__(self, reset_time: int | None = None):
        super().__init__("GitHub API rate limit exceeded", 403)
        self.reset_time = reset_time


class GitHubClient:
    """Thin GitHub REST API client bound to one access token."""

    def __init__(self, token: str, api_url: str = DEFAULT_API_URL):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.session = requests.Session()

        self.session.headers["Authorization"] = f"Bearer {self.token}"
        self.session.headers["Accept"] = "application/vnd.github.v3+json"
        self.session.headers["User-Agent"] = f"gitclock/{__version__}"

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Make one API request and raise GitHubAPIError on failure."""
        url = endpoint if endpoint.startswith("http") else f"{self.api_url}{endpoint}"
        logger.debug("%s %s", method, url)

        try:
            response = self.session.request(method, url, params=params, **kwargs)
        except requests.RequestException as e:
            raise GitHubAPIError(f"Request failed: {e}") from e

        # Check rate limit
        if response.status_code == 403:
            remaining = response.headers.get("X-RateLimit-Remaining")
            if remaining == "0":
                reset_time = int(response.headers.get("X-RateLimit-Reset", 0))
                raise RateLimitError(reset_time)

        if response.status_code >= 400:
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code} - {_error_message(response)}",
                response.status_code,
            )

        return response

    def _paginate(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Iterate through paginated API results."""
        params = dict(params or {})
        params.setdefault("per_page", DEFAULT_PER_PAGE)
        page = 1

        while True:
            params["page"] = page
            response = self._request("GET", endpoint, params=params)
            items = response.json()

            if not items:
                break

            for item in items:
                yield item

            if len(items) < params["per_page"]:
                break

            page += 1

    def get_login(self) -> str:
        """Login name of the authenticated user."""
        response = self._request("GET", "/user")
        login = response.json().get("login")
        if not login:
            raise GitHubAPIError("GitHub API error: /user returned no login")
        return login

    def list_repo_names(self) -> list[str]:
        """Names of repositories visible to the authenticated user."""
        return [item.get("name", "") for item in self._paginate("/user/repos")]

    def create_repo(self, name: str, private: bool = False) -> dict[str, Any]:
        """Create a repository under the authenticated user."""
        response = self._request(
            "POST", "/user/repos", json={"name": name, "private": private}
        )
        if not 200 <= response.status_code < 300:
            raise GitHubAPIError(
                f"Failed to create repository: {response.status_code}",
                response.status_code,
            )
        return response.json()

    def list_contents(self, owner: str, repo: str, path: str = "") -> list[dict[str, Any]]:
        """
        List directory entries (name, path, sha, download_url, ...).

        Raises GitHubAPIError with status 404 when the repo or path is absent.
        """
        endpoint = f"/repos/{owner}/{repo}/contents"
        if path:
            endpoint = f"{endpoint}/{path}"
        data = self._request("GET", endpoint).json()
        if isinstance(data, dict):
            # A file path returns a single object
            return [data]
        return data

    def download(self, url: str) -> str:
        """Fetch raw file content from a download_url."""
        return self._request("GET", url).text

    def get_file_text(self, entry: dict[str, Any]) -> str:
        """Text content of a contents-listing entry."""
        if entry.get("download_url"):
            return self.download(entry["download_url"])
        # Listings without download_url still expose the contents API URL
        data = self._request("GET", entry["url"]).json()
        return base64.b64decode(data.get("content", "")).decode("utf-8")

    def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str | None = None,
    ) -> dict[str, Any]:
        """
        Create (no sha) or update (with the current sha) a file.

        Content is text; it is base64-encoded here.
        """
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if sha:
            payload["sha"] = sha
        response = self._request("PUT", f"/repos/{owner}/{repo}/contents/{path}", json=payload)
        return response.json()


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and data.get("message"):
        return data["message"]
    return response.text
