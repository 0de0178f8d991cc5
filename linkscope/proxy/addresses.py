"""Classification of IP addresses the image proxy must never connect to."""

from __future__ import annotations

import ipaddress

PRIVATE_NETWORKS = (
    ipaddress.ip_network("0.0.0.0/8"),       # "this" network
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("100.64.0.0/10"),   # carrier-grade NAT
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # link-local, cloud metadata
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.0.0.0/24"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("198.18.0.0/15"),
    ipaddress.ip_network("224.0.0.0/4"),     # multicast
    ipaddress.ip_network("240.0.0.0/4"),     # reserved, broadcast
    ipaddress.ip_network("::/128"),          # unspecified
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("ff00::/8"),
)


def parse_ip(value: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Return *value* as an IP address, or ``None`` if it is a hostname."""
    candidate = value.strip("[]")
    # Drop an IPv6 zone id ("fe80::1%eth0").
    candidate = candidate.split("%", 1)[0]
    try:
        return ipaddress.ip_address(candidate)
    except ValueError:
        return None


def is_private_ip(ip: str | ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    """Return ``True`` for loopback, private, link-local and reserved addresses.

    IPv4-mapped IPv6 addresses (``::ffff:127.0.0.1``) are judged by the IPv4
    address they wrap.  Anything that does not parse is treated as private.
    """
    addr = parse_ip(ip) if isinstance(ip, str) else ip
    if addr is None:
        return True
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    return any(addr.version == net.version and addr in net for net in PRIVATE_NETWORKS)
