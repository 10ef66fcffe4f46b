"""Find MPD servers on the local network.

MPD announces itself over mDNS as ``_mpd._tcp`` when built with
zeroconf support (``zeroconf_enabled "yes"`` in mpd.conf, the default).

Example:
    server = ServerDiscovery.discover_one(timeout=3.0)
    if server:
        print(server.display_name, server.host, server.port)

MpdClient(discover=True) does the same lookup when no host is given.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Self

from zeroconf import ServiceBrowser, ServiceListener, Zeroconf

from mpdctrl.api.mpd.session import DEFAULT_PORT

logger = logging.getLogger(__name__)

MPD_SERVICE_TYPE = "_mpd._tcp.local."

FoundCallback = Callable[["DiscoveredServer"], None]
RemovedCallback = Callable[[str], None]


@dataclass(frozen=True)
class DiscoveredServer:
    """An MPD server seen on the network.

    Attributes:
        name: Full mDNS service name.
        host: Address to connect to, IPv4 preferred.
        port: MPD port from the service record.
        addresses: Every address the service announced.
        hostname: Host name from the record, without the trailing dot.
    """

    name: str
    host: str
    port: int = DEFAULT_PORT
    addresses: tuple[str, ...] = ()
    hostname: str = ""

    @property
    def display_name(self) -> str:
        """Return the instance name without the service suffix."""
        name = self.name.removesuffix(f".{MPD_SERVICE_TYPE}")
        return name or self.hostname or self.host


def _pick_host(addresses: list[str]) -> str:
    # IPv6 link-local addresses need a scope id to be usable, IPv4 does not
    for address in addresses:
        if ":" not in address:
            return address
    return addresses[0]


class MpdServiceListener(ServiceListener):
    """Keeps the set of announced MPD servers up to date."""

    def __init__(
        self,
        on_found: FoundCallback | None = None,
        on_removed: RemovedCallback | None = None,
    ) -> None:
        self._on_found = on_found
        self._on_removed = on_removed
        self._servers: dict[str, DiscoveredServer] = {}
        self._lock = threading.Lock()

    @property
    def servers(self) -> list[DiscoveredServer]:
        """Return the servers currently announced."""
        with self._lock:
            return list(self._servers.values())

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Resolve a newly announced service."""
        info = zc.get_service_info(type_, name)
        if info is None:
            logger.debug("No service info for %s", name)
            return

        addresses = list(info.parsed_addresses())
        if not addresses:
            logger.debug("Service %s announced no address", name)
            return

        server = DiscoveredServer(
            name=name,
            host=_pick_host(addresses),
            port=info.port or DEFAULT_PORT,
            addresses=tuple(addresses),
            hostname=(info.server or "").rstrip("."),
        )
        with self._lock:
            self._servers[name] = server
        logger.info("Found MPD server %s at %s:%d", server.display_name, server.host, server.port)

        if self._on_found:
            self._on_found(server)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Re-resolve a service whose record changed."""
        self.add_service(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:  # noqa: ARG002
        """Forget a service that went away."""
        with self._lock:
            server = self._servers.pop(name, None)
        if server is None:
            return
        logger.info("MPD server gone: %s", server.display_name)
        if self._on_removed:
            self._on_removed(name)


class ServerDiscovery:
    """Background mDNS browser for MPD servers.

    Use start()/stop(), or the instance as a context manager.
    """

    def __init__(
        self,
        on_found: FoundCallback | None = None,
        on_removed: RemovedCallback | None = None,
    ) -> None:
        self._listener = MpdServiceListener(on_found, on_removed)
        self._zeroconf: Zeroconf | None = None
        self._browser: ServiceBrowser | None = None

    @property
    def running(self) -> bool:
        """Return True while browsing."""
        return self._zeroconf is not None

    @property
    def servers(self) -> list[DiscoveredServer]:
        """Return the servers seen so far."""
        return self._listener.servers

    def start(self) -> None:
        """Start browsing. Does nothing if already running."""
        if self.running:
            return
        self._zeroconf = Zeroconf()
        self._browser = ServiceBrowser(self._zeroconf, MPD_SERVICE_TYPE, self._listener)
        logger.debug("Browsing for %s", MPD_SERVICE_TYPE)

    def stop(self) -> None:
        """Stop browsing. Servers seen so far stay available."""
        if self._browser is not None:
            self._browser.cancel()
            self._browser = None
        if self._zeroconf is not None:
            self._zeroconf.close()
            self._zeroconf = None
            logger.debug("Stopped browsing for %s", MPD_SERVICE_TYPE)

    def __enter__(self) -> Self:
        """Start browsing."""
        self.start()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop browsing."""
        self.stop()

    @classmethod
    def discover_one(cls, timeout: float = 5.0) -> DiscoveredServer | None:
        """Browse until the first server shows up.

        Args:
            timeout: Maximum time to wait in seconds.

        Returns:
            The first server found, or None after timeout.
        """
        found = threading.Event()
        with cls(on_found=lambda _server: found.set()) as discovery:
            found.wait(timeout)
            servers = discovery.servers
        return servers[0] if servers else None

    @classmethod
    def discover_all(cls, timeout: float = 5.0) -> list[DiscoveredServer]:
        """Browse for timeout seconds and return every server seen.

        Args:
            timeout: Time to browse in seconds.
        """
        with cls() as discovery:
            threading.Event().wait(timeout)
            return discovery.servers
