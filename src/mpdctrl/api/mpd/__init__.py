"""MPD client module.

This module provides a blocking MPD client: session handling, response
parsing, command lists, index expansion and song formatting.

Example:
    from mpdctrl.api.mpd import MpdClient

    with MpdClient("192.168.1.100") as client:
        status = client.status()
        song = client.currentsong()
        print(client.strf("%a - %t"))
"""

from mpdctrl.api.mpd.batch import CommandBatch
from mpdctrl.api.mpd.client import COMMANDS, MpdClient
from mpdctrl.api.mpd.format import render
from mpdctrl.api.mpd.indexes import expand_indexes
from mpdctrl.api.mpd.protocol import (
    MpdConnectionError,
    MpdError,
    MpdHandshakeError,
    MpdValidationError,
)
from mpdctrl.api.mpd.session import MpdSession
from mpdctrl.api.mpd.transport import LineTransport
from mpdctrl.api.mpd.types import MpdSong

__all__ = [
    "COMMANDS",
    "CommandBatch",
    "LineTransport",
    "MpdClient",
    "MpdConnectionError",
    "MpdError",
    "MpdHandshakeError",
    "MpdSession",
    "MpdSong",
    "MpdValidationError",
    "expand_indexes",
    "render",
]
