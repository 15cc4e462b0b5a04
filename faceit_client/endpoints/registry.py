"""Ordered registry of candidate backend addresses.

Candidates are kept in probing priority order: most-likely-local addresses
first, the deployment-configured fallback always last.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from faceit_client.config.endpoints import CandidateEndpoint, load_candidates

if TYPE_CHECKING:
    from faceit_client.config.settings import ClientSettings


class CandidateRegistry:
    """Immutable view over the candidate list.

    Args:
        endpoints: Named candidates; sorted by priority, ties keep input order.
        fallback_url: Configured default, appended last unless already listed.
    """

    def __init__(
        self,
        endpoints: list[CandidateEndpoint],
        fallback_url: str | None = None,
    ) -> None:
        ordered = sorted(endpoints, key=lambda e: e.priority)

        urls: list[str] = []
        names: dict[str, str] = {}
        for endpoint in ordered:
            url = endpoint.url.rstrip("/")
            if url in names:
                continue
            urls.append(url)
            names[url] = endpoint.name

        self._fallback_url = fallback_url.rstrip("/") if fallback_url else None
        if self._fallback_url and self._fallback_url not in names:
            urls.append(self._fallback_url)
            names[self._fallback_url] = "Configured default"

        self._urls: tuple[str, ...] = tuple(urls)
        self._names = names

    @classmethod
    def from_urls(cls, urls: list[str], fallback_url: str | None = None) -> CandidateRegistry:
        """Build a registry from plain URLs, insertion order = priority."""
        endpoints = [
            CandidateEndpoint(url=url, priority=index + 1) for index, url in enumerate(urls)
        ]
        return cls(endpoints, fallback_url=fallback_url)

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> CandidateRegistry:
        """Build the registry from the endpoints file if set, else from candidate_urls."""
        if settings.endpoints_path:
            return cls(load_candidates(settings.endpoints_path), fallback_url=settings.api_base_url)
        return cls.from_urls(settings.candidate_urls, fallback_url=settings.api_base_url)

    @property
    def fallback_url(self) -> str | None:
        return self._fallback_url

    def candidates(self) -> list[str]:
        """Return the candidate URLs in probing order."""
        return list(self._urls)

    def name_of(self, url: str) -> str:
        return self._names.get(url.rstrip("/"), "")

    def __len__(self) -> int:
        return len(self._urls)
