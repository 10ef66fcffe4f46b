"""Configuration manager using QSettings for persistent storage."""

import logging
import os
from dataclasses import dataclass

from PySide6.QtCore import QSettings

from mpdctrl.api.mpd.session import DEFAULT_HOST, DEFAULT_PORT, ENV_HOST, ENV_PORT

logger = logging.getLogger(__name__)

# Settings keys
_KEY_MPD_HOST = "mpd/host"
_KEY_MPD_PORT = "mpd/port"
_KEY_MPD_PASSWORD = "mpd/password"

# Behaviour
_KEY_ALLOW_TOGGLE_STATES = "behaviour/allow_toggle_states"
_KEY_OVERWRITE_PLAYLIST = "behaviour/overwrite_playlist"


@dataclass(frozen=True)
class ClientSettings:
    """Resolved settings for building an MpdClient.

    Attributes:
        host: MPD server hostname or IP.
        port: MPD server port.
        password: Password, or empty string for none.
        allow_toggle_states: Let pause/random/repeat toggle without argument.
        overwrite_playlist: Replace existing playlists on save.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: str = ""
    allow_toggle_states: bool = True
    overwrite_playlist: bool = True


class ConfigManager:
    """Wrapper around QSettings for type-safe config access.

    Stored host and port are overridden by the MPD_HOST and MPD_PORT
    environment variables.

    QSettings stores config in platform-specific locations:
    - Windows: HKEY_CURRENT_USER\\Software\\mpdctrl\\mpdctrl
    - macOS: ~/Library/Preferences/com.mpdctrl.mpdctrl.plist
    - Linux: ~/.config/mpdctrl/mpdctrl.conf

    Example:
        config = ConfigManager()
        client = MpdClient.from_settings(config.client_settings())
    """

    def __init__(self, organization: str = "mpdctrl", application: str = "mpdctrl") -> None:
        """Initialize the config manager.

        Args:
            organization: Organization name for QSettings.
            application: Application name for QSettings.
        """
        self._settings = QSettings(organization, application)

    @property
    def settings(self) -> QSettings:
        """Return the underlying QSettings instance."""
        return self._settings

    # -- MPD settings ----------------------------------------------------------

    def get_mpd_host(self) -> str:
        """Return the MPD host.

        Returns:
            $MPD_HOST if set, else the stored host, else "localhost".
        """
        env_host = os.environ.get(ENV_HOST)
        if env_host:
            return env_host
        value = self._settings.value(_KEY_MPD_HOST, DEFAULT_HOST, str)
        return str(value) if value else DEFAULT_HOST

    def set_mpd_host(self, host: str) -> None:
        """Set the MPD host.

        Args:
            host: Hostname or IP.
        """
        self._settings.setValue(_KEY_MPD_HOST, host)

    def get_mpd_port(self) -> int:
        """Return the MPD port.

        Returns:
            $MPD_PORT if set and valid, else the stored port (default 6600).
        """
        env_port = os.environ.get(ENV_PORT)
        if env_port:
            try:
                return max(1, min(65535, int(env_port)))
            except ValueError:
                logger.warning("Ignoring invalid %s=%r", ENV_PORT, env_port)
        value = self._settings.value(_KEY_MPD_PORT, DEFAULT_PORT, int)
        return max(1, min(65535, int(value)))  # type: ignore[arg-type]

    def set_mpd_port(self, port: int) -> None:
        """Set the MPD port.

        Args:
            port: Port number (1-65535).
        """
        self._settings.setValue(_KEY_MPD_PORT, max(1, min(65535, port)))

    def get_mpd_password(self) -> str:
        """Return the MPD password, or empty string for none."""
        value = self._settings.value(_KEY_MPD_PASSWORD, "", str)
        return str(value) if value else ""

    def set_mpd_password(self, password: str) -> None:
        """Set the MPD password (empty string for none)."""
        self._settings.setValue(_KEY_MPD_PASSWORD, password)

    # -- Behaviour settings ----------------------------------------------------

    def get_allow_toggle_states(self) -> bool:
        """Return whether pause/random/repeat toggle when called without argument.

        Returns:
            True by default.
        """
        return bool(self._settings.value(_KEY_ALLOW_TOGGLE_STATES, True, bool))

    def set_allow_toggle_states(self, enabled: bool) -> None:
        """Enable or disable argument-less toggling."""
        self._settings.setValue(_KEY_ALLOW_TOGGLE_STATES, enabled)

    def get_overwrite_playlist(self) -> bool:
        """Return whether save replaces an existing playlist.

        Returns:
            True by default.
        """
        return bool(self._settings.value(_KEY_OVERWRITE_PLAYLIST, True, bool))

    def set_overwrite_playlist(self, enabled: bool) -> None:
        """Enable or disable overwriting playlists on save."""
        self._settings.setValue(_KEY_OVERWRITE_PLAYLIST, enabled)

    def client_settings(self) -> ClientSettings:
        """Return all client settings resolved against the environment."""
        return ClientSettings(
            host=self.get_mpd_host(),
            port=self.get_mpd_port(),
            password=self.get_mpd_password(),
            allow_toggle_states=self.get_allow_toggle_states(),
            overwrite_playlist=self.get_overwrite_playlist(),
        )

    # -- General settings ------------------------------------------------------

    def clear(self) -> None:
        """Clear all settings (useful for testing or reset)."""
        self._settings.clear()

    def sync(self) -> None:
        """Force settings to be written to disk."""
        self._settings.sync()
