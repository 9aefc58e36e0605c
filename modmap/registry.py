"""npm registry lookups."""

import asyncio
import time
from datetime import datetime
from urllib.parse import quote

import httpx
import structlog

from .models import VersionInfo
from .versions import clean_version, is_outdated, looks_like_version, update_kind

log = structlog.get_logger("modmap.registry")

USER_AGENT = "modmap-dependency-scanner"


class NpmRegistryClient:
    """Client for the npm registry with a time-bounded metadata cache."""

    def __init__(
        self,
        registry_url: str = "https://registry.npmjs.org",
        timeout: float = 10.0,
        cache_ttl: float = 300.0,
        max_concurrency: int = 6,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize registry client.

        Args:
            registry_url: Base URL of the registry
            timeout: Request timeout in seconds
            cache_ttl: Seconds a fetched document stays fresh
            max_concurrency: Maximum concurrent requests
            transport: Optional httpx transport, used by tests
        """
        self.registry_url = registry_url.rstrip("/")
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.max_concurrency = max_concurrency
        self._transport = transport
        self._cache: dict[str, tuple[dict, float]] = {}
        self._semaphore: asyncio.Semaphore | None = None
        self._semaphore_loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def from_settings(cls, settings) -> "NpmRegistryClient":
        return cls(
            registry_url=settings.registry_url,
            timeout=settings.request_timeout,
            cache_ttl=settings.cache_ttl,
            max_concurrency=settings.max_concurrency,
        )

    def _limiter(self) -> asyncio.Semaphore:
        # A long-lived client can outlive the event loop its semaphore bound to
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
            self._semaphore_loop = loop
        return self._semaphore

    async def get_package_info(self, package_name: str) -> dict | None:
        """Fetch the registry document for a package.

        Returns:
            Package document, or None if it is missing or could not be fetched
        """
        if not package_name or not package_name.strip():
            return None

        cached = self._cache.get(package_name)
        if cached and time.monotonic() - cached[1] < self.cache_ttl:
            log.debug("registry.cache_hit", package=package_name)
            return cached[0]

        url = f"{self.registry_url}/{quote(package_name, safe='@')}"

        try:
            async with self._limiter():
                async with httpx.AsyncClient(
                    timeout=self.timeout,
                    transport=self._transport,
                    headers={"User-Agent": USER_AGENT},
                ) as client:
                    response = await client.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            log.warning("registry.timeout", package=package_name)
            return None
        except httpx.HTTPError as e:
            log.warning("registry.http_error", package=package_name, error=str(e))
            return None
        except ValueError as e:
            log.warning("registry.bad_response", package=package_name, error=str(e))
            return None

        if not isinstance(data, dict):
            return None

        self._cache[package_name] = (data, time.monotonic())
        return data

    async def latest_version(self, package_name: str) -> str | None:
        """Return the ``latest`` dist-tag of a package, if any."""
        info = await self.get_package_info(package_name)
        if not info:
            return None
        latest = (info.get("dist-tags") or {}).get("latest")
        return latest if isinstance(latest, str) else None

    async def get_version_info(self, package_name: str, current_version: str) -> VersionInfo:
        """Compare an installed version with the registry's latest."""
        latest = await self.latest_version(package_name)
        # Declared ranges compare by their base version
        base = clean_version(current_version)
        if not latest or not looks_like_version(base):
            return VersionInfo(
                current=current_version, latest=latest or current_version, is_outdated=False
            )

        published = None
        info = await self.get_package_info(package_name) or {}
        stamp = (info.get("time") or {}).get(latest)
        if isinstance(stamp, str):
            try:
                published = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
            except ValueError:
                published = None

        return VersionInfo(
            current=current_version,
            latest=latest,
            is_outdated=is_outdated(base, latest),
            update_type=update_kind(base, latest),
            published_date=published,
        )

    async def get_security_info(self, package_name: str, version: str) -> list[dict]:
        """Vulnerability data for a package version. Not implemented; always empty."""
        return []

    async def batch_check_versions(
        self, packages: list[tuple[str, str]]
    ) -> dict[str, VersionInfo]:
        """Check several (name, version) pairs concurrently."""
        tasks = [self.get_version_info(name, version) for name, version in packages]
        results = await asyncio.gather(*tasks)
        return {name: info for (name, _), info in zip(packages, results)}

    def clear_cache(self) -> None:
        self._cache.clear()
