"""GitHub data fetcher with cache-aside reads.

Upstream JSON is passed through unchanged. Responses are cached under
``github:<username>:<datatype>`` for ``CACHE_GITHUB_TTL_SECONDS``. Aggregated
stats are derived from the cached repository list and cached the same way.
A forced resync drops the user's whole namespace and refetches.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any

import httpx

from portfolio_api.core.config import GitHubSettings
from portfolio_api.core.errors import NotFoundAppError, UpstreamAppError, ValidationAppError
from portfolio_api.services.cache_service import CacheService, github_key

logger = logging.getLogger(__name__)

_USERNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$")

TOP_REPOSITORIES = 5


def validate_username(username: str) -> str:
    """Reject anything that is not a syntactically valid GitHub login."""
    if not _USERNAME_RE.match(username):
        raise ValidationAppError(
            code="invalid_username",
            message="Invalid GitHub username",
            details={"username": username[:64]},
        )
    return username.lower()


def create_github_client(github_settings: GitHubSettings) -> httpx.AsyncClient:
    """Build the shared async HTTP client for the GitHub REST API."""
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": "portfolio-api",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if github_settings.token:
        headers["Authorization"] = f"Bearer {github_settings.token}"

    return httpx.AsyncClient(
        base_url=github_settings.api_url,
        headers=headers,
        timeout=httpx.Timeout(github_settings.timeout_seconds),
    )


class GitHubService:
    """Fetch GitHub profile data through the cache."""

    def __init__(self, http_client: httpx.AsyncClient, cache: CacheService) -> None:
        self._http = http_client
        self._cache = cache

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._http.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.error(
                "github.request_failed",
                extra={"path": path, "error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise UpstreamAppError(
                code="github_unavailable",
                message="GitHub API request failed",
            ) from exc

        if response.status_code == 404:
            raise NotFoundAppError(
                code="github_not_found",
                message="GitHub resource not found",
                details={"upstream_status": 404},
            )
        if response.status_code >= 400:
            logger.warning(
                "github.error_response",
                extra={"path": path, "upstream_status": response.status_code},
            )
            raise UpstreamAppError(
                code="github_error",
                message=f"GitHub API returned {response.status_code}",
                details={"upstream_status": response.status_code},
            )

        return response.json()

    async def get_profile(self, username: str) -> dict[str, Any]:
        user = validate_username(username)
        return await self._cache.get_or_load(
            github_key(user, "profile"),
            lambda: self._request(f"/users/{user}"),
            self._cache.github_ttl_seconds,
        )

    async def get_repositories(self, username: str) -> list[dict[str, Any]]:
        user = validate_username(username)
        return await self._cache.get_or_load(
            github_key(user, "repos"),
            lambda: self._request(
                f"/users/{user}/repos",
                params={"per_page": 100, "sort": "updated", "type": "owner"},
            ),
            self._cache.github_ttl_seconds,
        )

    async def get_stats(self, username: str) -> dict[str, Any]:
        """Aggregate stars, forks and languages over the user's own repositories.

        Forks and private repositories are left out. Language percentages are
        relative to the counted repositories that report a language.
        """
        user = validate_username(username)
        return await self._cache.get_or_load(
            github_key(user, "stats"),
            lambda: self._build_stats(user),
            self._cache.github_ttl_seconds,
        )

    async def _build_stats(self, user: str) -> dict[str, Any]:
        repositories = await self.get_repositories(user)
        owned = [r for r in repositories if not r.get("fork") and not r.get("private")]

        languages = Counter(r["language"] for r in owned if r.get("language"))
        with_language = sum(languages.values())
        starred = sorted(
            (r for r in owned if r.get("stargazers_count", 0) > 0),
            key=lambda r: r["stargazers_count"],
            reverse=True,
        )

        return {
            "username": user,
            "total_repos": len(repositories),
            "total_stars": sum(r.get("stargazers_count", 0) for r in owned),
            "total_forks": sum(r.get("forks_count", 0) for r in owned),
            "most_used_languages": [
                {
                    "name": name,
                    "repositories": count,
                    "percentage": round(count * 100 / with_language, 2),
                }
                for name, count in languages.most_common()
            ],
            "top_repositories": [
                {
                    "name": r.get("name"),
                    "full_name": r.get("full_name"),
                    "stars": r["stargazers_count"],
                    "forks": r.get("forks_count", 0),
                    "language": r.get("language"),
                    "description": r.get("description"),
                    "html_url": r.get("html_url"),
                }
                for r in starred[:TOP_REPOSITORIES]
            ],
            "last_fetched": datetime.now(timezone.utc).isoformat(),
        }

    async def get_rate_limit(self) -> dict[str, Any]:
        """Upstream API quota; never cached."""
        return await self._request("/rate_limit")

    async def sync(self, username: str) -> dict[str, Any]:
        """Drop every cached entry for ``username`` and refetch it."""
        user = validate_username(username)
        invalidated = await self._cache.invalidate_github_cache(user)
        profile = await self.get_profile(user)
        repositories = await self.get_repositories(user)
        stats = await self.get_stats(user)
        logger.info(
            "github.synced",
            extra={"username": user, "invalidated": invalidated, "repositories": len(repositories)},
        )
        return {
            "username": user,
            "invalidated": invalidated,
            "profile_cached": bool(profile),
            "repositories": len(repositories),
            "total_stars": stats["total_stars"],
        }
