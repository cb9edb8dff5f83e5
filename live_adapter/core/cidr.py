"""Address-in-range checks for IPv4 and IPv6 CIDR rules.

Parsing is strict: IPv4 needs four canonical decimal octets, IPv6 needs plain
hex groups (no embedded dotted quad, no zone id). Every malformed input makes
the check return ``False`` instead of raising.
"""

from ipaddress import IPv4Address, IPv6Address, ip_address


IPAddress = IPv4Address | IPv6Address


def parse_ip(value: str) -> IPAddress | None:
    """Parse a bare IPv4/IPv6 address, returning None when malformed."""
    if not value or "%" in value:
        return None
    if ":" in value and "." in value:
        return None
    try:
        # Rejects leading-zero octets and groups longer than four hex digits
        return ip_address(value)
    except ValueError:
        return None


def parse_prefix(value: str, max_prefix: int) -> int | None:
    if not (value.isascii() and value.isdigit()):
        return None
    prefix = int(value)
    if prefix > max_prefix:
        return None
    return prefix


def prefix_mask(prefix: int, width: int) -> int:
    """Integer mask with the top ``prefix`` of ``width`` bits set."""
    return ((1 << width) - 1) ^ ((1 << (width - prefix)) - 1)


def in_range(ip: str, cidr: str) -> bool:
    """Return True if ``ip`` lies inside ``cidr``. Never raises."""
    if not isinstance(ip, str) or not isinstance(cidr, str) or "/" not in cidr:
        return False

    network_part, _, prefix_part = cidr.partition("/")
    address = parse_ip(ip)
    network = parse_ip(network_part)
    if address is None or network is None:
        return False

    # Family mismatch
    if address.version != network.version:
        return False

    width = address.max_prefixlen
    prefix = parse_prefix(prefix_part, width)
    if prefix is None:
        return False

    mask = prefix_mask(prefix, width)
    return (int(address) & mask) == (int(network) & mask)


def unmap_ipv4(value: str) -> str | None:
    """Dotted IPv4 form of an IPv4-mapped IPv6 address (``::ffff:a.b.c.d``)."""
    if not value.lower().startswith("::ffff:"):
        return None
    candidate = value[len("::ffff:"):]
    address = parse_ip(candidate)
    if address is None or address.version != 4:
        return None
    return candidate
