"""SSRF protection for outbound URLs.

Every URL the pipeline is about to fetch (feed URLs, feed entry links and
each redirect hop) goes through ``UrlValidator.validate`` first. The
validator only allows ``http``/``https``, caps the URL length and resolves
the host, refusing the URL if ANY resolved address is private, loopback or
link-local. Re-validating on every hop is what defeats DNS rebinding and
open-redirect tricks.

The validator never raises for bad input: it returns a ``ValidationResult``
the caller branches on. ``ensure_safe`` is the raising convenience wrapper.
"""

import asyncio
import ipaddress
import re
import socket
from typing import Callable, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

from unfurl.core.enums import RejectionReason
from unfurl.utils.exceptions import ValidationError
from unfurl.utils.logging import get_logger

logger = get_logger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
HostResolver = Callable[[str], Iterable[str]]

ALLOWED_SCHEMES = frozenset({"http", "https"})

DEFAULT_MAX_URL_LENGTH = 2000

BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        # IPv4 private networks
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        # IPv4 loopback, link-local (cloud metadata lives at 169.254.169.254)
        "127.0.0.0/8",
        "169.254.0.0/16",
        "0.0.0.0/8",
        # IPv6 loopback, unique local, link-local, unspecified
        "::1/128",
        "fc00::/7",
        "fe80::/10",
        "::/128",
    )
)

_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):")


def system_resolver(host: str) -> List[str]:
    """Resolve a hostname to all of its addresses using the system resolver."""
    infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    return [info[4][0] for info in infos]


class ValidationResult(BaseModel):
    """Outcome of validating one URL."""

    model_config = ConfigDict(frozen=True)

    url: str
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None
    addresses: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def retryable(self) -> bool:
        """Only a failed DNS lookup may succeed on a later attempt."""
        return self.reason == RejectionReason.UNRESOLVABLE_HOST

    @classmethod
    def accepted(cls, url: str, addresses: Iterable[str] = ()) -> "ValidationResult":
        return cls(url=url, addresses=tuple(addresses))

    @classmethod
    def rejected(cls, url: str, reason: RejectionReason, message: str) -> "ValidationResult":
        return cls(url=url, reason=reason, message=message)


def is_blocked_address(address: IPAddress) -> bool:
    """Check whether an address falls inside a blocked network.

    IPv4-mapped IPv6 addresses (``::ffff:127.0.0.1``) are checked as IPv4.
    """
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return any(
        address.version == network.version and address in network
        for network in BLOCKED_NETWORKS
    )


class UrlValidator:
    """Classifies a candidate URL as fetch-safe or rejects it."""

    def __init__(
        self,
        max_url_length: int = DEFAULT_MAX_URL_LENGTH,
        resolver: Optional[HostResolver] = None,
    ):
        """
        Initialize the validator.

        Args:
            max_url_length: Longest URL accepted, in characters
            resolver: Callable mapping a hostname to its addresses.
                Defaults to the system resolver.
        """
        self.max_url_length = max_url_length
        self.resolver = resolver or system_resolver

    def validate(self, url: str) -> ValidationResult:
        """
        Validate a URL for SSRF safety.

        Args:
            url: URL to validate

        Returns:
            ValidationResult, ``ok`` when the URL may be fetched
        """
        if not url or not url.strip():
            return ValidationResult.rejected(
                url or "", RejectionReason.EMPTY_URL, "Invalid URL: URL is empty"
            )

        if len(url) > self.max_url_length:
            return ValidationResult.rejected(
                url,
                RejectionReason.URL_TOO_LONG,
                f"Invalid URL: too long (max {self.max_url_length} characters)",
            )

        # Check the scheme before parsing; urlsplit is lenient with odd schemes
        scheme_match = _SCHEME_RE.match(url)
        if not scheme_match:
            return ValidationResult.rejected(
                url, RejectionReason.MALFORMED_URL, "Invalid URL: no scheme"
            )

        scheme = scheme_match.group(1).lower()
        if scheme not in ALLOWED_SCHEMES:
            return ValidationResult.rejected(
                url,
                RejectionReason.UNSUPPORTED_SCHEME,
                f"Invalid URL scheme (must be HTTP/HTTPS): {scheme}",
            )

        if not url[len(scheme) + 1:].startswith("//"):
            return ValidationResult.rejected(
                url, RejectionReason.MALFORMED_URL, "Invalid URL: could not parse URL"
            )

        try:
            parsed = urlsplit(url)
            host = parsed.hostname
            _ = parsed.port  # raises ValueError on a bad port
        except ValueError as e:
            return ValidationResult.rejected(
                url, RejectionReason.MALFORMED_URL, f"Invalid URL: {e}"
            )

        if not host:
            return ValidationResult.rejected(
                url, RejectionReason.MALFORMED_URL, "Invalid URL: missing host"
            )

        try:
            addresses = self._resolve(host)
        except (OSError, UnicodeError, ValueError) as e:
            return ValidationResult.rejected(
                url,
                RejectionReason.UNRESOLVABLE_HOST,
                f"DNS lookup failed for {host}: {e}",
            )

        if not addresses:
            return ValidationResult.rejected(
                url,
                RejectionReason.UNRESOLVABLE_HOST,
                f"DNS lookup returned no addresses for {host}",
            )

        for address in addresses:
            if is_blocked_address(address):
                logger.warning("ssrf_target_blocked", url=url, host=host, address=str(address))
                return ValidationResult.rejected(
                    url,
                    RejectionReason.PRIVATE_ADDRESS,
                    f"SSRF blocked: private address {address} for host {host}",
                )

        return ValidationResult.accepted(url, (str(a) for a in addresses))

    async def validate_async(self, url: str) -> ValidationResult:
        """Validate without blocking the event loop on the DNS lookup."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.validate, url)

    def ensure_safe(self, url: str) -> str:
        """
        Validate a URL and raise instead of returning a rejection.

        Args:
            url: URL to validate

        Returns:
            The URL unchanged

        Raises:
            ValidationError: If the URL is rejected
        """
        result = self.validate(url)
        if not result.ok:
            raise ValidationError(result.message or "Invalid URL", reason=result.reason.value)
        return url

    def _resolve(self, host: str) -> List[IPAddress]:
        """Resolve host to addresses; IP literals are returned as-is."""
        literal = _parse_ip(host)
        if literal is not None:
            return [literal]

        addresses = []
        for raw in self.resolver(host):
            address = _parse_ip(raw)
            if address is None:
                raise ValueError(f"resolver returned a non-IP value: {raw!r}")
            addresses.append(address)
        return addresses


def _parse_ip(value: str) -> Optional[IPAddress]:
    # Drop an IPv6 zone id ("fe80::1%eth0")
    try:
        return ipaddress.ip_address(value.split("%", 1)[0])
    except ValueError:
        return None
