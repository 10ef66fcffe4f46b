"""Application-side helpers around the MPD client.

Classes:
    ConfigManager: QSettings wrapper for connection settings.
    ServerDiscovery: mDNS browser for MPD servers.
"""

from mpdctrl.core.config import ClientSettings, ConfigManager
from mpdctrl.core.discovery import ServerDiscovery

__all__ = ["ClientSettings", "ConfigManager", "ServerDiscovery"]
