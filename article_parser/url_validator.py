"""
URL validation for article-parser.

This module normalizes caller-supplied URLs and rejects the ones the parser
must not touch: unsupported schemes, missing hosts, and (unless explicitly
allowed) loopback or private network addresses.
"""

import ipaddress
import logging
import socket
from typing import Iterable, Optional, Union
from urllib.parse import urlparse, urlunparse

from .exceptions import URLValidationError

logger = logging.getLogger(__name__)

MAX_HOSTNAME_LENGTH = 253


class URLValidator:
    """
    URL validator with normalization and private network protection.

    Hostnames are checked literally first; when ``resolve_hosts`` is set the
    name is also resolved and every returned address is checked.
    """

    def __init__(self, allow_private_networks: bool = False, resolver=None):
        """
        Initialize the URL validator.

        Args:
            allow_private_networks: Skip the localhost/private address checks
            resolver: Callable mapping a hostname to IP strings (defaults to DNS)
        """
        self.allow_private_networks = allow_private_networks
        self.resolver = resolver or _resolve_addresses

    def validate(self, url: str, resolve_hosts: bool = True) -> str:
        """
        Validate and normalize a URL.

        Args:
            url: URL to validate
            resolve_hosts: Whether to resolve the hostname for the private network check

        Returns:
            The normalized URL (fragment kept, host lower-cased)

        Raises:
            URLValidationError: If the URL is malformed or not allowed
        """
        if not url or not isinstance(url, str) or not url.strip():
            raise URLValidationError(str(url), "URL cannot be empty")

        url = url.strip()
        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
        except ValueError as e:
            raise URLValidationError(url, f"failed to parse URL: {e}")

        if not parsed.scheme:
            raise URLValidationError(url, "URL scheme is required")
        if parsed.scheme not in ('http', 'https'):
            raise URLValidationError(url, f"Unsupported URL scheme: {parsed.scheme}")
        if not parsed.netloc or not hostname:
            raise URLValidationError(url, "URL missing domain")
        if any(ch in parsed.netloc for ch in ' \t\r\n'):
            raise URLValidationError(url, "host contains invalid characters")
        if len(hostname) > MAX_HOSTNAME_LENGTH:
            raise URLValidationError(
                url, f"hostname too long ({len(hostname)} chars, max {MAX_HOSTNAME_LENGTH})"
            )

        if not self.allow_private_networks:
            self._check_network(url, hostname, resolve_hosts)

        return urlunparse((
            parsed.scheme,
            parsed.netloc.lower(),
            parsed.path,
            parsed.params,
            parsed.query,
            parsed.fragment,
        ))

    def is_valid(self, url: str, resolve_hosts: bool = False) -> bool:
        """Check a URL without raising."""
        try:
            self.validate(url, resolve_hosts=resolve_hosts)
        except URLValidationError:
            return False
        return True

    def _check_network(self, url: str, hostname: str, resolve_hosts: bool) -> None:
        if is_localhost(hostname):
            raise URLValidationError(url, "localhost access not allowed")

        literal = _parse_ip(hostname)
        if literal is not None:
            if is_private_address(literal):
                raise URLValidationError(url, "private network access not allowed")
            return

        if not resolve_hosts:
            return

        try:
            addresses = list(self.resolver(hostname))
        except OSError as e:
            raise URLValidationError(url, f"DNS resolution failed: {e}")

        if not addresses:
            raise URLValidationError(url, "no IP addresses found")

        for address in addresses:
            ip = _parse_ip(address)
            if ip is not None and is_private_address(ip):
                logger.debug("Host %s resolves to private address %s", hostname, address)
                raise URLValidationError(url, "private network access not allowed")


def is_localhost(hostname: str) -> bool:
    """Check if a hostname refers to the local machine."""
    hostname = hostname.lower().strip('[]')
    return (
        hostname in ('localhost', '127.0.0.1', '::1')
        or hostname.endswith('.localhost')
    )


def is_private_address(ip) -> bool:
    """Check if an address is loopback, link-local, private or unspecified."""
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified


def _parse_ip(value: str) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    try:
        return ipaddress.ip_address(value.strip('[]').split('%', 1)[0])
    except ValueError:
        return None


def _resolve_addresses(hostname: str) -> Iterable[str]:
    infos = socket.getaddrinfo(hostname, None)
    return {info[4][0] for info in infos}
