"""API clients for the MPD text protocol over TCP."""

from mpdctrl.api.mpd import MpdClient, MpdError, MpdSong

__all__ = ["MpdClient", "MpdError", "MpdSong"]
