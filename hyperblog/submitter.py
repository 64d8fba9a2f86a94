"""Sitemap submission for hyperblog.

Notifies external search directories that the sitemap changed. Pings are
best-effort: every configured directory is contacted concurrently with its
own timeout, and the call returns one result per directory whether the
ping worked or not. Failed pings are reported, never retried.

``submit_sitemap_url`` is the full fetch, validate and submit flow. Its
``SubmissionOutcome.to_dict()`` matches the JSON reply of the submission
endpoint: ``{success, message, submissionReport: [{name, success, message}]}``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from .config import SearchEngine, SiteConfig
from .sitemap import validate_sitemap

DEFAULT_TIMEOUT = 7.0

MISSING_URL_MESSAGE = 'Error: Please provide a "sitemapUrl" in your request.'
FETCH_FAILED_MESSAGE = (
    "Could not fetch the sitemap from the provided URL. Please check the address is correct."
)


class NetworkError(Exception):
    """A fetch or ping failed (timeout, transport error or bad status).

    Attributes:
        url: URL that was requested.
        message: Human-readable reason.
    """

    def __init__(self, url: str, message: str):
        self.url = url
        self.message = message
        super().__init__(f"{url}: {message}")


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of one ping."""

    name: str
    success: bool
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "success": self.success, "message": self.detail}


@dataclass
class SubmissionOutcome:
    """Outcome of a fetch, validate and submit run.

    Attributes:
        success: False if the sitemap was missing, unreachable or invalid.
        message: Summary for the caller.
        submission_report: One result per directory (empty when no pings
            were sent).
        status: HTTP-style status; 400 for caller errors.
        validation: Validation summary when the sitemap was valid.
        error: Underlying error detail, when there is one.
    """

    success: bool
    message: str
    submission_report: list[SubmissionResult] = field(default_factory=list)
    status: int = 200
    validation: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.validation is not None:
            payload["validation"] = self.validation
        if self.error is not None:
            payload["error"] = self.error
        payload["submissionReport"] = [r.to_dict() for r in self.submission_report]
        return payload


def ping_url_for(engine: SearchEngine, sitemap_url: str) -> str:
    """Fill a directory's ping template with the URL-encoded sitemap address."""
    return engine.ping_url.replace("[SITEMAP_URL]", quote(sitemap_url, safe="!*'()"))


async def _ping(
    client: httpx.AsyncClient, engine: SearchEngine, sitemap_url: str, timeout: float
) -> SubmissionResult:
    url = ping_url_for(engine, sitemap_url)
    try:
        response = await asyncio.wait_for(client.get(url, timeout=timeout), timeout)
    except (httpx.TimeoutException, asyncio.TimeoutError):
        return SubmissionResult(engine.name, False, f"Request timed out after {timeout:g} seconds.")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return SubmissionResult(engine.name, False, f"An error occurred: {exc}")
    if response.is_success:
        return SubmissionResult(engine.name, True, "Submitted successfully.")
    return SubmissionResult(
        engine.name, False, f"Request returned status code {response.status_code}."
    )


async def submit_async(
    sitemap_url: str,
    engines: Sequence[SearchEngine],
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> list[SubmissionResult]:
    """Ping every directory concurrently and wait for all of them.

    Args:
        sitemap_url: Public URL of the sitemap.
        engines: Directories to notify.
        timeout: Per-ping timeout in seconds.
        client: Optional client to reuse; one is created otherwise.

    Returns:
        One result per directory, in the order given.
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(follow_redirects=True)
    try:
        outcomes = await asyncio.gather(
            *(_ping(client, engine, sitemap_url, timeout) for engine in engines),
            return_exceptions=True,
        )
    finally:
        if owns_client:
            await client.aclose()
    results: list[SubmissionResult] = []
    for engine, outcome in zip(engines, outcomes):
        if isinstance(outcome, BaseException):
            outcome = SubmissionResult(engine.name, False, f"An error occurred: {outcome}")
        results.append(outcome)
    return results


def submit(
    sitemap_url: str,
    engines: Sequence[SearchEngine],
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[SubmissionResult]:
    """Synchronous wrapper around ``submit_async``."""

    async def run() -> list[SubmissionResult]:
        async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
            return await submit_async(sitemap_url, engines, timeout, client)

    return asyncio.run(run())


async def fetch_sitemap(client: httpx.AsyncClient, url: str, timeout: float) -> str:
    """Download a sitemap.

    Raises:
        NetworkError: On timeout, transport failure or a non-success status.
    """
    try:
        response = await asyncio.wait_for(client.get(url, timeout=timeout), timeout)
    except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
        raise NetworkError(url, f"timed out after {timeout:g} seconds") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise NetworkError(url, str(exc)) from exc
    if not response.is_success:
        raise NetworkError(url, f"status code {response.status_code}")
    return response.text


async def submit_sitemap_url_async(
    sitemap_url: str | None,
    config: SiteConfig,
    client: httpx.AsyncClient | None = None,
) -> SubmissionOutcome:
    """Fetch, validate and submit a sitemap.

    Nothing is pinged unless the sitemap could be fetched and is valid.
    """
    if not sitemap_url:
        return SubmissionOutcome(False, MISSING_URL_MESSAGE, status=400)
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(follow_redirects=True)
    try:
        try:
            text = await fetch_sitemap(client, sitemap_url, config.network_timeout)
        except NetworkError as exc:
            return SubmissionOutcome(False, FETCH_FAILED_MESSAGE, status=400, error=exc.message)
        result = validate_sitemap(text)
        if not result.valid:
            return SubmissionOutcome(False, result.message, status=400)
        report = await submit_async(
            sitemap_url, config.search_engines, config.network_timeout, client
        )
    finally:
        if owns_client:
            await client.aclose()
    return SubmissionOutcome(
        True,
        "Sitemap processing complete.",
        submission_report=report,
        validation="Sitemap is valid.",
    )


def submit_sitemap_url(
    sitemap_url: str | None,
    config: SiteConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SubmissionOutcome:
    """Synchronous wrapper around ``submit_sitemap_url_async``."""

    async def run() -> SubmissionOutcome:
        async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
            return await submit_sitemap_url_async(sitemap_url, config, client)

    return asyncio.run(run())
