"""Receiver URL validation."""

from __future__ import annotations

import ipaddress
import logging
import socket
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")
BLOCKED_HOSTNAMES = frozenset({"localhost", "0.0.0.0"})


class InvalidReceiverError(ValueError):
    """Raised when a receiver's URL or status cannot be accepted."""


def _is_internal_address(address: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    )


def _resolved_addresses(host: str) -> list[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    try:
        infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    except (socket.gaierror, UnicodeError) as exc:
        logger.debug("Could not resolve receiver host %s: %s", host, exc)
        return []

    addresses = []
    for info in infos:
        raw = str(info[4][0]).split("%", 1)[0]
        try:
            addresses.append(ipaddress.ip_address(raw))
        except ValueError:
            continue
    return addresses


def validate_receiver_url(url: str, *, resolve_hosts: bool = False) -> str:
    """Return ``url`` stripped of surrounding whitespace if it may be used as a receiver.

    Raises :class:`InvalidReceiverError` for non-http(s) URLs and for hosts
    that point at loopback, private, link-local or reserved addresses. With
    ``resolve_hosts`` enabled, hostnames are resolved and checked as well; a
    name that does not resolve is accepted.
    """
    candidate = (url or "").strip()
    try:
        parts = urlsplit(candidate)
        host = parts.hostname
    except ValueError as exc:
        raise InvalidReceiverError(f"Malformed receiver URL: {exc}") from exc

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidReceiverError("Receiver URL must use http or https")
    if not host:
        raise InvalidReceiverError("Receiver URL must include a host")

    host = host.lower().rstrip(".")
    if host in BLOCKED_HOSTNAMES or host.endswith(".localhost"):
        raise InvalidReceiverError(f"Receiver host {host!r} is not allowed")

    try:
        literal = ipaddress.ip_address(host)
    except ValueError:
        literal = None

    if literal is not None:
        if _is_internal_address(literal):
            raise InvalidReceiverError(f"Receiver address {host} is internal or reserved")
        return candidate

    if resolve_hosts:
        for address in _resolved_addresses(host):
            if _is_internal_address(address):
                raise InvalidReceiverError(
                    f"Receiver host {host!r} resolves to internal address {address}"
                )

    return candidate
