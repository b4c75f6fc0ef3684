"""GitHub API client for fetching game releases."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import httpx

log = logging.getLogger(__name__)

USER_AGENT = "Phoenix-Launcher/0.7.2"
_ACCEPT = "application/vnd.github.v3+json"

T = TypeVar("T")


class GitHubError(Exception):
    """Raised when the GitHub API cannot be queried or answers with an error."""


@dataclass
class ReleaseAsset:
    """A downloadable file attached to a release."""

    name: str
    size: int
    browser_download_url: str

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ReleaseAsset":
        name = _require(data, "name", str)
        size = _require(data, "size", int)
        if isinstance(size, bool) or size < 0:
            raise ValueError("asset size must be a non-negative integer")
        url = _require(data, "browser_download_url", str)
        return cls(name=name, size=size, browser_download_url=url)


@dataclass
class Release:
    """A GitHub release."""

    tag_name: str
    name: str
    body: str | None
    published_at: str
    assets: list[ReleaseAsset] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Release":
        """Build a release from a decoded API response object."""
        if not isinstance(data, Mapping):
            raise ValueError("release must be a JSON object")
        body = data.get("body")
        if body is not None and not isinstance(body, str):
            raise ValueError("field 'body' must be a string or null")
        assets = _require(data, "assets", list)
        return cls(
            tag_name=_require(data, "tag_name", str),
            name=_require(data, "name", str),
            body=body,
            published_at=_require(data, "published_at", str),
            assets=[ReleaseAsset.from_json(a) for a in assets],
        )


def _require(data: Mapping[str, Any], key: str, kind: type) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    if key not in data:
        raise ValueError(f"missing field '{key}'")
    value = data[key]
    if not isinstance(value, kind):
        raise ValueError(f"field '{key}' has the wrong type")
    return value


@dataclass(frozen=True)
class EmbeddedRelease:
    """A stable release known ahead of time, needing no API request."""

    tag: str
    name: str
    published: str
    asset_name: str | None = None
    asset_url: str | None = None
    asset_size: int | None = None


@dataclass
class RateLimitInfo:
    """GitHub API rate limit state taken from response headers."""

    remaining: int | None = None
    reset_at: int | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitInfo":
        lowered = {k.lower(): v for k, v in headers.items()}
        remaining = _parse_int(lowered.get("x-ratelimit-remaining"), 0, 2**32 - 1)
        reset_at = _parse_int(lowered.get("x-ratelimit-reset"), -(2**63), 2**63 - 1)
        return cls(remaining=remaining, reset_at=reset_at)

    def is_low(self, threshold: int) -> bool:
        """Whether the remaining request count is at or below the threshold."""
        return self.remaining is not None and self.remaining <= threshold

    def reset_in_minutes(self, now: float | None = None) -> int | None:
        """Whole minutes until the limit resets, never negative."""
        if self.reset_at is None:
            return None
        current = int(time.time() if now is None else now)
        return max(int((self.reset_at - current) / 60), 0)


def _parse_int(value: str | None, low: int, high: int) -> int | None:
    if value is None:
        return None
    text = value.strip() if value.strip() == value else value
    if not text or not (text.isdigit() or (text[0] in "+-" and text[1:].isdigit())):
        return None
    number = int(text)
    return number if low <= number <= high else None


@dataclass
class FetchResult(Generic[T]):
    """Fetched data together with the rate limit seen last."""

    data: T
    rate_limit: RateLimitInfo = field(default_factory=RateLimitInfo)


def _tag_letter(tag: str) -> str:
    if tag.startswith("cdda-"):
        tag = tag[len("cdda-"):]
    return tag[2] if len(tag) > 2 else "A"


class GitHubClient:
    """Asynchronous client for a repository's releases."""

    def __init__(
        self,
        api_base: str,
        repository: str,
        releases_per_page: int,
        stable_releases: Iterable[EmbeddedRelease] = (),
        check_letters: Iterable[str] = (),
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.repository = repository
        self.releases_per_page = releases_per_page
        self.stable_releases = list(stable_releases)
        self.check_letters = list(check_letters)
        self.client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def get_release_by_tag(self, tag: str) -> tuple[Release | None, RateLimitInfo]:
        """Fetch a release by tag; the release is None if it cannot be had."""
        url = f"{self.api_base}/repos/{self.repository}/releases/tags/{tag}"
        try:
            response = await self.client.get(url, headers={"Accept": _ACCEPT})
        except httpx.HTTPError as exc:
            log.debug("Request failed for tag %s: %s", tag, exc)
            return None, RateLimitInfo()

        rate_limit = RateLimitInfo.from_headers(response.headers)
        if not response.is_success:
            if response.status_code != 404:
                log.debug("Tag %s returned status %s", tag, response.status_code)
            return None, rate_limit

        try:
            release = Release.from_json(response.json())
        except ValueError as exc:
            log.debug("Failed to parse release for tag %s: %s", tag, exc)
            return None, rate_limit
        log.debug("Found release for tag %s", tag)
        return release, rate_limit

    async def get_stable_releases(self) -> FetchResult[list[Release]]:
        """Known stable releases plus any new ones, newest letter first."""
        start = time.monotonic()
        releases = [
            Release(
                tag_name=e.tag,
                name=e.name,
                body=None,
                published_at=f"{e.published}T00:00:00Z",
                assets=[ReleaseAsset(e.asset_name, e.asset_size, e.asset_url)],
            )
            for e in self.stable_releases
            if e.asset_name is not None and e.asset_url is not None and e.asset_size is not None
        ]
        log.debug("Loaded %d embedded stable releases", len(releases))

        last_rate_limit = RateLimitInfo()
        for letter in self.check_letters:
            release, last_rate_limit = await self.get_release_by_tag(f"0.{letter}-RELEASE")
            if release is not None:
                log.info("Found new stable release: %s", release.tag_name)
                releases.append(release)

        releases.sort(key=lambda r: _tag_letter(r.tag_name), reverse=True)
        log.info(
            "Loaded %d stable releases in %.1fs", len(releases), time.monotonic() - start
        )
        return FetchResult(releases, last_rate_limit)

    async def get_releases_by_tags(self, tags: Sequence[str]) -> FetchResult[list[Release]]:
        """Fetch the releases for the given tags, skipping missing ones."""
        releases = []
        last_rate_limit = RateLimitInfo()
        for tag in tags:
            release, last_rate_limit = await self.get_release_by_tag(tag)
            if release is not None:
                releases.append(release)
        return FetchResult(releases, last_rate_limit)

    async def get_experimental_releases(self) -> FetchResult[list[Release]]:
        """Fetch the most recent releases from the releases list."""
        start = time.monotonic()
        url = (
            f"{self.api_base}/repos/{self.repository}/releases"
            f"?per_page={self.releases_per_page}"
        )
        try:
            response = await self.client.get(url, headers={"Accept": _ACCEPT})
        except httpx.HTTPError as exc:
            raise GitHubError(f"Request failed: {exc}") from exc

        rate_limit = RateLimitInfo.from_headers(response.headers)
        if not response.is_success:
            raise GitHubError(
                f"GitHub API error: {response.status_code} {response.reason_phrase}"
                f" - {response.text}"
            )

        try:
            payload = response.json()
            if not isinstance(payload, list):
                raise ValueError("expected a JSON array of releases")
            releases = [Release.from_json(item) for item in payload]
        except ValueError as exc:
            raise GitHubError(f"Invalid release data: {exc}") from exc

        log.info(
            "Fetched %d experimental releases in %.1fs",
            len(releases),
            time.monotonic() - start,
        )
        return FetchResult(releases, rate_limit)

    @staticmethod
    def find_windows_asset(release: Release) -> ReleaseAsset | None:
        """Find the Windows x64 graphical ZIP, preferring one with sounds."""
        best = None
        for asset in release.assets:
            name = asset.name.lower()
            suitable = (
                "windows" in name
                and ("tiles" in name or "graphics" in name)
                and "x64" in name
                and name.endswith(".zip")
            )
            if not suitable:
                continue
            if "sounds" in name:
                best = asset
                break
            if best is None:
                best = asset

        if best is None:
            log.warning(
                "No Windows x64 graphical asset in %s (%d assets)",
                release.name,
                len(release.assets),
            )
        return best