"""URL normalisation and SSRF guard.

``validate`` is a pure function: it defaults a missing scheme to ``http``,
strips one trailing slash, parses the result and rejects loopback hosts,
whether named or spelled as an address in any notation the resolver accepts.
With ``settings.block_private_addresses`` it also rejects IP literals in
private or reserved ranges.  ``ensure_public_host`` is the
strictest variant and resolves the host name; the service only calls it when
``settings.resolve_hosts`` is enabled.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
import socket

import httpx

from app.core.config import settings
from app.core.exceptions import InvalidUrl, LocalhostBlocked, PrivateAddressBlocked
from app.models.target import TargetUrl

logger = logging.getLogger(__name__)

BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
ALLOWED_SCHEMES = frozenset({"http", "https"})

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")


def _is_non_public(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def _ip_literal(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """The address *host* spells, or ``None`` for a name.

    Besides dotted quads this accepts the shorthand forms the system resolver
    treats as addresses (``2130706433``, ``0x7f000001``, ``127.1``).  An
    IPv4-mapped IPv6 address is reduced to its IPv4 part.
    """
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        try:
            ip = ipaddress.IPv4Address(socket.inet_aton(host))
        except (OSError, ValueError):
            return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def validate(raw: str) -> TargetUrl:
    """Normalise *raw* into a :class:`TargetUrl`.

    Raises:
        InvalidUrl: the string is empty, unparsable, not http(s) or has no host.
        LocalhostBlocked: the host is ``localhost`` or a loopback address.
        PrivateAddressBlocked: the host is a non-public IP literal and
            ``settings.block_private_addresses`` is on.
    """
    candidate = raw.strip()
    if not candidate:
        raise InvalidUrl("Invalid URL: empty string")

    if candidate.endswith("/"):
        candidate = candidate[:-1]

    if not _SCHEME_RE.match(candidate):
        candidate = f"http://{candidate}"

    try:
        parsed = httpx.URL(candidate)
    except httpx.InvalidURL as exc:
        raise InvalidUrl(f"Invalid URL '{raw}': {exc}") from exc

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise InvalidUrl(f"Invalid URL '{raw}': unsupported scheme '{parsed.scheme}'")

    host = parsed.host.lower()
    if not host:
        raise InvalidUrl(f"Invalid URL '{raw}': missing host")

    # "localhost." is the fully-qualified spelling of the same name
    bare_host = host[:-1] if host.endswith(".") else host
    if bare_host in BLOCKED_HOSTS:
        raise LocalhostBlocked("Access to localhost not allowed")

    ip = _ip_literal(bare_host)
    if ip is not None:
        if ip.is_loopback:
            raise LocalhostBlocked("Access to localhost not allowed")
        if settings.block_private_addresses and _is_non_public(ip):
            raise PrivateAddressBlocked(f"Access to {host} not allowed")

    return TargetUrl(url=str(parsed), scheme=parsed.scheme, host=host)


async def ensure_public_host(target: TargetUrl) -> None:
    """Resolve the target host and reject it if any address is non-public.

    Resolution failures are left for the fetch to report.
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(target.host, None, type=socket.SOCK_STREAM)
    except socket.gaierror as exc:
        logger.debug("Could not resolve %s: %s", target.host, exc)
        return

    for _family, _type, _proto, _canon, sockaddr in infos:
        ip = ipaddress.ip_address(sockaddr[0].split("%", 1)[0])
        if _is_non_public(ip):
            logger.warning("Blocked %s: resolves to non-public address %s", target.host, ip)
            raise PrivateAddressBlocked(f"Access to {target.host} not allowed")
