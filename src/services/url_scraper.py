"""URL metadata extraction for bookmark ingestion."""
import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass, field
from datetime import UTC, datetime
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; BookmarkBot/1.0)'
DEFAULT_TIMEOUT = 10.0


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def extract_domain(url: str) -> str:
    """
    Return the hostname of a URL without a leading 'www.'.

    Returns 'unknown' when the URL has no parsable hostname.
    """
    try:
        hostname = urlparse(url).hostname or ''
    except ValueError:
        hostname = ''
    if not hostname:
        return 'unknown'
    return hostname.removeprefix('www.')


def generate_favicon_url(domain: str) -> str:
    """Favicon service URL for a domain."""
    return f'https://www.google.com/s2/favicons?domain={domain}&sz=32'


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # Unparseable addresses are treated as internal
        return True


async def resolve_host(hostname: str) -> list[tuple]:
    """Resolve a hostname on the event loop's resolver without blocking the loop."""
    loop = asyncio.get_running_loop()
    return await loop.getaddrinfo(hostname, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM)


async def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname to check the actual IP address, preventing
    DNS rebinding attacks where a hostname resolves to an internal IP.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed or the host cannot be resolved.
    """
    parsed = urlparse(url)
    hostname = parsed.hostname

    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = await resolve_host(hostname)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    for _, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw body before extraction)."""

    content: str | None
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None


@dataclass
class ExtractedMetadata:
    """Title, description and preview image found in an HTML document."""

    title: str | None
    description: str | None
    image: str | None


@dataclass
class PageMetadata:
    """
    Metadata for a URL, always populated.

    When the page could not be fetched, title falls back to the domain, the
    other fields are empty, and `error` explains why.
    """

    url: str
    title: str
    description: str
    image: str
    domain: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    error: str | None = None

    @property
    def degraded(self) -> bool:
        """True when these are fallback values rather than scraped ones."""
        return self.error is not None


def fallback_metadata(url: str, error: str | None = None) -> PageMetadata:
    """Build metadata from the URL alone."""
    domain = extract_domain(url)
    return PageMetadata(
        url=url,
        title=domain,
        description='',
        image='',
        domain=domain,
        error=error,
    )


async def _fetch(url: str, timeout: float) -> FetchResult:  # noqa: ASYNC109
    # SSRF protection: validate URL doesn't target internal networks
    try:
        await validate_url_not_private(url)
    except (SSRFBlockedError, ValueError) as e:
        return FetchResult(
            content=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error=str(e),
        )

    async with httpx.AsyncClient(
        follow_redirects=True,
        timeout=timeout,
        headers={'User-Agent': USER_AGENT},
        http2=True,
    ) as client:
        response = await client.get(url)

        # SSRF protection: validate final URL after redirects
        final_url_str = str(response.url)
        try:
            await validate_url_not_private(final_url_str)
        except (SSRFBlockedError, ValueError) as e:
            return FetchResult(
                content=None,
                final_url=final_url_str,
                status_code=response.status_code,
                content_type=None,
                error=f"Redirect blocked: {e}",
            )

        if not response.is_success:
            return FetchResult(
                content=None,
                final_url=final_url_str,
                status_code=response.status_code,
                content_type=response.headers.get('content-type', ''),
                error=f"HTTP {response.status_code}",
            )

        return FetchResult(
            content=response.text,
            final_url=final_url_str,
            status_code=response.status_code,
            content_type=response.headers.get('content-type', ''),
            error=None,
        )


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109
    """
    Fetch the body of a URL.

    Best-effort fetch that returns error info on failure rather than raising.
    Follows redirects and captures the final URL. The whole fetch, including
    the DNS lookups for the private-network check, redirects and body
    download, is bounded by `timeout`.

    Args:
        url:
            The URL to fetch.
        timeout:
            Hard deadline in seconds. No retry is attempted.

    Returns:
        FetchResult containing the decoded body or error info.
    """
    try:
        async with asyncio.timeout(timeout):
            return await _fetch(url, timeout)
    except (httpx.TimeoutException, TimeoutError):
        return FetchResult(
            content=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error="Request timed out",
        )
    except httpx.RequestError as e:
        return FetchResult(
            content=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error=f"Request failed: {e}",
        )


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        return tag['content'].strip() or None
    return None


def extract_html_metadata(html: str) -> ExtractedMetadata:
    """
    Extract title, description and og:image from HTML.

    Pure function with no I/O. Each field is looked up independently; a miss
    yields None without affecting the others.

    Description extraction priority:
    1. <meta property="og:description">
    2. <meta name="description">
    """
    soup = BeautifulSoup(html, 'lxml')

    title = None
    title_tag = soup.find('title')
    if title_tag:
        title = title_tag.get_text().strip() or None

    description = (
        _meta_content(soup, property='og:description')
        or _meta_content(soup, name='description')
    )
    image = _meta_content(soup, property='og:image')

    return ExtractedMetadata(title=title, description=description, image=image)


async def extract_metadata(url: str, timeout: float = DEFAULT_TIMEOUT) -> PageMetadata:  # noqa: ASYNC109
    """
    Fetch a URL and extract its bookmark metadata.

    Never raises: fetch failures and parse failures degrade to
    `fallback_metadata` and are logged.

    Args:
        url: Absolute http(s) URL, already validated by the caller.
        timeout: Hard deadline for the fetch in seconds.

    Returns:
        PageMetadata with scraped values or domain-derived fallbacks.
    """
    result = await fetch_url(url, timeout)

    if result.error or result.content is None:
        logger.warning("Metadata fetch failed for %s: %s", url, result.error)
        return fallback_metadata(url, result.error or "Empty response")

    try:
        extracted = extract_html_metadata(result.content)
    except Exception as e:
        logger.warning("Metadata parse failed for %s: %s", url, e)
        return fallback_metadata(url, f"Parse failed: {e}")

    domain = extract_domain(url)
    return PageMetadata(
        url=url,
        title=extracted.title or domain,
        description=extracted.description or '',
        image=extracted.image or '',
        domain=domain,
    )
