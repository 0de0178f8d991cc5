"""httpx transport that refuses to connect to private addresses.

The check happens at connect time, inside httpcore's network backend: the
hostname is resolved here, every resolved address is classified, and the
socket is opened to the vetted address itself.  There is no second lookup
the remote DNS could answer differently (rebinding), and redirects are
covered because each hop opens its own connection.  TLS still negotiates
with the original hostname, so SNI and certificate checks are unaffected.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Awaitable, Callable, Iterable

import httpcore
import httpx

from linkscope.errors import PrivateAddressError
from linkscope.proxy.addresses import is_private_ip, parse_ip

logger = logging.getLogger(__name__)

Resolver = Callable[[str, int], Awaitable[list[str]]]


async def resolve_host(host: str, port: int) -> list[str]:
    """Resolve *host* to its IP addresses (deduplicated, resolver order)."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    addresses: list[str] = []
    for _family, _type, _proto, _canon, sockaddr in infos:
        ip = sockaddr[0]
        if ip not in addresses:
            addresses.append(ip)
    return addresses


class GuardedNetworkBackend(httpcore.AsyncNetworkBackend):
    """Network backend that only ever connects to public addresses.

    Args:
        resolver: ``async (host, port) -> [ip, ...]``; defaults to the event
            loop's ``getaddrinfo``.
        backend: Backend used for the actual socket (anyio by default).
    """

    def __init__(
        self,
        resolver: Resolver | None = None,
        backend: httpcore.AsyncNetworkBackend | None = None,
    ) -> None:
        self._resolver = resolver or resolve_host
        self._backend = backend or httpcore.AnyIOBackend()

    async def _vetted_address(self, host: str, port: int, timeout: float | None) -> str:
        literal = parse_ip(host)
        if literal is not None:
            addresses = [str(literal)]
        else:
            try:
                addresses = await asyncio.wait_for(self._resolver(host, port), timeout)
            except asyncio.TimeoutError as exc:
                raise httpcore.ConnectTimeout(f"DNS lookup timed out for {host}") from exc
            except OSError as exc:
                raise httpcore.ConnectError(f"DNS lookup failed for {host}: {exc}") from exc

        if not addresses:
            raise httpcore.ConnectError(f"No addresses found for {host}")

        blocked = [ip for ip in addresses if is_private_ip(ip)]
        if blocked:
            logger.warning("[NetGuard] Blocked %s -> %s", host, ", ".join(blocked))
            raise PrivateAddressError()
        return addresses[0]

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: Iterable | None = None,
    ) -> httpcore.AsyncNetworkStream:
        address = await self._vetted_address(host, port, timeout)
        return await self._backend.connect_tcp(
            address,
            port,
            timeout=timeout,
            local_address=local_address,
            socket_options=socket_options,
        )

    async def connect_unix_socket(
        self,
        path: str,
        timeout: float | None = None,
        socket_options: Iterable | None = None,
    ) -> httpcore.AsyncNetworkStream:
        raise httpcore.ConnectError("Unix sockets are not allowed")

    async def sleep(self, seconds: float) -> None:
        await self._backend.sleep(seconds)


class GuardedTransport(httpx.AsyncHTTPTransport):
    """``httpx.AsyncHTTPTransport`` whose connections go through :class:`GuardedNetworkBackend`."""

    def __init__(self, resolver: Resolver | None = None) -> None:
        super().__init__()
        self._pool = httpcore.AsyncConnectionPool(
            ssl_context=httpx.create_ssl_context(),
            network_backend=GuardedNetworkBackend(resolver=resolver),
        )
