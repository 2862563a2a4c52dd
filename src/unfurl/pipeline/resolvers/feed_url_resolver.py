"""Redirect-following URL resolution with per-hop SSRF validation."""

import asyncio
from typing import List, NamedTuple, Optional, Tuple, Union
from urllib.parse import urldefrag, urljoin

import httpx
from pydantic import BaseModel, Field

from unfurl.core.config import Config
from unfurl.core.enums import FailureKind, RejectionReason
from unfurl.pipeline.pacing import RequestPacer
from unfurl.pipeline.resolvers.google_news import decode_google_news_url
from unfurl.security.url_validator import HostResolver, UrlValidator
from unfurl.utils.exceptions import (
    ContentError,
    HttpClientError,
    IngestionError,
    TransportError,
    ValidationError,
)
from unfurl.utils.logging import get_logger
from unfurl.utils.text_utils import truncate_text

logger = get_logger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})

# 4xx responses worth another attempt
RETRYABLE_CLIENT_STATUS = frozenset({408, 429})

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; Unfurl/1.0)"


class ResolvedUrl(BaseModel):
    """Final destination of a redirect chain plus its response body."""

    final_url: str
    body: str
    content: bytes = b""
    charset: Optional[str] = None
    status_code: int
    content_type: Optional[str] = None
    redirects: List[str] = Field(default_factory=list)


class ResolutionFailure(BaseModel):
    """Why a URL could not be resolved."""

    kind: FailureKind
    message: str
    url: Optional[str] = None
    status_code: Optional[int] = None
    rejection: Optional[RejectionReason] = None

    def describe(self) -> str:
        """One-line description stored as the article's last error."""
        return truncate_text(f"{self.kind.value}: {self.message}", 1000)

    def to_error(self) -> IngestionError:
        """Map the failure onto the ingestion exception taxonomy."""
        if self.kind == FailureKind.INVALID_URL:
            if self.rejection == RejectionReason.UNRESOLVABLE_HOST:
                return TransportError(self.describe())
            return ValidationError(
                self.describe(), reason=self.rejection.value if self.rejection else None
            )
        if self.kind == FailureKind.HTTP_ERROR and self.status_code is not None:
            if self.status_code >= 500 or self.status_code in RETRYABLE_CLIENT_STATUS:
                return TransportError(self.describe())
            return HttpClientError(self.describe(), status_code=self.status_code)
        if self.kind in (
            FailureKind.TIMEOUT,
            FailureKind.CONNECTION_FAILED,
            FailureKind.TOO_MANY_REDIRECTS,
        ):
            return TransportError(self.describe())
        return ContentError(self.describe())


ResolutionResult = Union[ResolvedUrl, ResolutionFailure]


class _Hop(NamedTuple):
    location: Optional[str] = None
    result: Optional[ResolutionResult] = None


class FeedUrlResolver:
    """Follow a feed entry's redirect URL to the final article.

    Redirects are followed by hand, one hop at a time, so that every
    location is validated before it is requested. The final response body
    is streamed with a size cap and returned with the URL, saving a second
    request for extraction.

    Use as an async context manager, or call ``aclose()`` when done, to
    release the HTTP connection pool.
    """

    def __init__(
        self,
        validator: UrlValidator,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        connect_timeout: float = 5.0,
        max_redirects: int = 10,
        max_document_bytes: int = 10 * 1024 * 1024,
        user_agent: Optional[str] = None,
        pacer: Optional[RequestPacer] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the resolver.

        Args:
            validator: SSRF validator consulted before every hop
            client: Pre-built client; one is created when omitted
            timeout: Read/write/pool timeout per request in seconds
            connect_timeout: Connect timeout in seconds
            max_redirects: Redirect hops followed before giving up
            max_document_bytes: Largest body accepted
            user_agent: User-Agent header value
            pacer: Optional pacing consulted before each request
            transport: Custom httpx transport (used by tests)
        """
        self.validator = validator
        self.max_redirects = max_redirects
        self.max_document_bytes = max_document_bytes
        self.pacer = pacer
        # Hard ceiling for one hop, covering slow-drip responses
        self.total_timeout = timeout + connect_timeout

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            follow_redirects=False,
            headers={
                "User-Agent": user_agent or DEFAULT_USER_AGENT,
                "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "FeedUrlResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this resolver created it."""
        if self._owns_client:
            await self.client.aclose()

    async def resolve(self, entry_url: str) -> ResolutionResult:
        """
        Resolve a feed entry URL to its final article URL and HTML.

        Args:
            entry_url: Redirecting link from the feed

        Returns:
            ResolvedUrl on success, ResolutionFailure otherwise
        """
        start_url = entry_url
        decoded = decode_google_news_url(entry_url)
        if decoded:
            logger.debug("google_news_url_decoded", entry_url=entry_url, decoded_url=decoded)
            start_url = decoded

        return await self.fetch(start_url, content_types=HTML_CONTENT_TYPES)

    async def fetch(
        self,
        url: str,
        content_types: Optional[Tuple[str, ...]] = HTML_CONTENT_TYPES,
    ) -> ResolutionResult:
        """
        Fetch a URL, validating the URL and every redirect hop.

        Args:
            url: URL to fetch
            content_types: Accepted media types of the final response;
                None accepts anything

        Returns:
            ResolvedUrl on success, ResolutionFailure otherwise
        """
        current = url
        redirects: List[str] = []

        for _ in range(self.max_redirects + 1):
            validation = await self.validator.validate_async(current)
            if not validation.ok:
                return ResolutionFailure(
                    kind=FailureKind.INVALID_URL,
                    message=validation.message or "Invalid URL",
                    url=current,
                    rejection=validation.reason,
                )

            hop = await self._request(current, content_types)
            if hop.result is not None:
                if isinstance(hop.result, ResolvedUrl) and redirects:
                    return hop.result.model_copy(update={"redirects": redirects})
                return hop.result

            current = urljoin(current, hop.location)
            redirects.append(current)
            logger.debug("redirect_followed", url=url, location=current, hop=len(redirects))

        return ResolutionFailure(
            kind=FailureKind.TOO_MANY_REDIRECTS,
            message=f"More than {self.max_redirects} redirects",
            url=current,
        )

    async def _request(self, url: str, content_types: Optional[Tuple[str, ...]]) -> _Hop:
        if self.pacer is not None:
            await self.pacer.wait()

        try:
            return await asyncio.wait_for(
                self._stream(url, content_types), timeout=self.total_timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            return _Hop(result=_failure(FailureKind.TIMEOUT, f"Request timed out: {str(e) or url}", url))
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            return _Hop(result=_failure(FailureKind.INVALID_URL, f"Invalid URL: {e}", url))
        except httpx.RequestError as e:
            return _Hop(
                result=_failure(
                    FailureKind.CONNECTION_FAILED,
                    f"Connection failed: {type(e).__name__}: {e}",
                    url,
                )
            )

    async def _stream(self, url: str, content_types: Optional[Tuple[str, ...]]) -> _Hop:
        async with self.client.stream("GET", url) as response:
            status = response.status_code

            if status in REDIRECT_STATUS_CODES:
                location = response.headers.get("location")
                if not location:
                    return _Hop(
                        result=_failure(
                            FailureKind.HTTP_ERROR,
                            f"HTTP {status} redirect without Location header",
                            url,
                            status_code=status,
                        )
                    )
                return _Hop(location=location)

            if status >= 300:
                return _Hop(
                    result=_failure(
                        FailureKind.HTTP_ERROR, f"HTTP {status} for {url}", url, status_code=status
                    )
                )

            content_type = response.headers.get("content-type")
            if content_types and content_type and not _matches_content_type(content_type, content_types):
                return _Hop(
                    result=_failure(
                        FailureKind.UNSUPPORTED_CONTENT,
                        f"Unsupported content type: {content_type}",
                        url,
                    )
                )

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > self.max_document_bytes:
                return _Hop(result=self._too_large(url))

            chunks = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > self.max_document_bytes:
                    return _Hop(result=self._too_large(url))
                chunks.append(chunk)

            raw = b"".join(chunks)
            charset = response.charset_encoding

            return _Hop(
                result=ResolvedUrl(
                    final_url=urldefrag(url)[0],
                    body=_decode_body(raw, charset),
                    content=raw,
                    charset=charset,
                    status_code=status,
                    content_type=content_type,
                )
            )

    def _too_large(self, url: str) -> ResolutionFailure:
        return _failure(
            FailureKind.DOCUMENT_TOO_LARGE,
            f"Document exceeds {self.max_document_bytes} bytes",
            url,
        )


def _failure(
    kind: FailureKind, message: str, url: str, status_code: Optional[int] = None
) -> ResolutionFailure:
    return ResolutionFailure(kind=kind, message=message, url=url, status_code=status_code)


def _matches_content_type(header: str, accepted: Tuple[str, ...]) -> bool:
    media_type = header.split(";", 1)[0].strip().lower()
    return media_type in accepted


def _decode_body(raw: bytes, charset: Optional[str]) -> str:
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def create_resolver(
    config: Config,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    dns_resolver: Optional[HostResolver] = None,
) -> FeedUrlResolver:
    """Build a resolver, its validator and optional pacer from configuration.

    Args:
        config: Application configuration.
        transport: Custom httpx transport (used by tests).
        dns_resolver: Host-to-addresses lookup for the validator.

    Returns:
        FeedUrlResolver owning its HTTP client.
    """
    validator = UrlValidator(max_url_length=config.max_url_length, resolver=dns_resolver)
    pacer = RequestPacer(config.request_delay_sec) if config.request_delay_sec > 0 else None

    return FeedUrlResolver(
        validator,
        timeout=config.request_timeout_sec,
        connect_timeout=config.connect_timeout_sec,
        max_redirects=config.max_redirects,
        max_document_bytes=config.max_document_bytes,
        user_agent=config.user_agent,
        pacer=pacer,
        transport=transport,
    )
