"""
Resolve the client address for access control.

Forwarding headers are honoured only in reverse-proxy mode and only when the
transport peer is itself a trusted proxy. Trust is single hop: the left-most
forwarded address is taken as-is, no proxy chain is walked.
"""

import re
from collections.abc import Collection, Mapping


_FORWARDED_FOR = re.compile(r"\bfor=([^;,\s]+)", re.IGNORECASE)


def clean_address_token(token: str) -> str:
    """Strip quotes, IPv6 brackets and a trailing port from a forwarded address."""
    token = token.strip().strip('"').strip()

    if token.startswith("["):
        end = token.find("]")
        if end != -1:
            return token[1:end]
        return token[1:]
    if token.endswith("]"):
        return token[:-1]

    # "203.0.113.7:4711"; a bare IPv6 has more than one colon
    if token.count(":") == 1:
        host, _, port = token.partition(":")
        if port.isdigit():
            return host

    return token


def forwarded_for(header: str) -> str | None:
    """First ``for=`` address of an RFC 7239 ``Forwarded`` header."""
    match = _FORWARDED_FOR.search(header)
    if not match:
        return None
    return clean_address_token(match.group(1)) or None


def x_forwarded_for(header: str) -> str | None:
    """Left-most entry of an ``X-Forwarded-For`` header."""
    first = header.split(",")[0]
    return clean_address_token(first) or None


def resolve_client_ip(
    remote_addr: str | None,
    headers: Mapping[str, str],
    reverse_proxy_mode: bool,
    trusted_proxies: Collection[str],
) -> str:
    """
    Determine the trustworthy client address.

    Args:
        remote_addr: Immediate transport peer (``request.client.host``)
        headers: Request headers, looked up by lower-case name
        reverse_proxy_mode: Whether forwarding headers may be honoured at all
        trusted_proxies: Peers allowed to override the transport address

    Returns:
        Client address, or an empty string when no peer is known
    """
    peer = remote_addr or ""

    if not reverse_proxy_mode:
        return peer

    if peer not in trusted_proxies:
        return peer

    forwarded = headers.get("forwarded")
    if forwarded:
        address = forwarded_for(forwarded)
        if address:
            return address

    x_forwarded = headers.get("x-forwarded-for")
    if x_forwarded:
        address = x_forwarded_for(x_forwarded)
        if address:
            return address

    return peer
