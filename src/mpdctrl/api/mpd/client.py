"""Synchronous MPD client.

Method names follow the MPD commands they send (and mpc). The client
connects lazily on the first command and reconnects on its own if the
socket died in between; a password set once is replayed after every
reconnect.

Example:
    client = MpdClient("192.168.1.100")
    client.play()
    song = client.currentsong()
    print(client.strf("%a - %t (%e/%l)"))
    client.delete([0, range(3, 6)])
    client.close()
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Self

from mpdctrl.api.mpd.batch import CommandBatch
from mpdctrl.api.mpd.format import render
from mpdctrl.api.mpd.indexes import expand_indexes, flatten, to_index, unique
from mpdctrl.api.mpd.protocol import (
    ACK_ERROR_EXIST,
    MpdConnectionError,
    MpdError,
    MpdValidationError,
    format_command,
    parse_pairs,
    parse_response,
    parse_song,
    parse_songs,
    split_records,
)
from mpdctrl.api.mpd.session import DEFAULT_HOST, DEFAULT_PORT, ENV_HOST, ENV_PORT, MpdSession
from mpdctrl.api.mpd.types import MpdSong
from mpdctrl.core.discovery import ServerDiscovery

if TYPE_CHECKING:
    from mpdctrl.core.config import ClientSettings

logger = logging.getLogger(__name__)

MIN_VOLUME = 0
MAX_VOLUME = 100

# Seconds to browse mDNS when discover=True
DISCOVERY_TIMEOUT = 3.0

_LSINFO_KINDS = ("file", "directory", "playlist")


def resolve_host(host: str | None = None) -> str:
    """Return host, else $MPD_HOST, else the library default."""
    return host or os.environ.get(ENV_HOST) or DEFAULT_HOST


def resolve_port(port: int | None = None) -> int:
    """Return port, else $MPD_PORT, else the library default."""
    if port is not None:
        return port
    value = os.environ.get(ENV_PORT)
    if not value:
        return DEFAULT_PORT
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", ENV_PORT, value)
        return DEFAULT_PORT


def resolve_address(
    host: str | None = None,
    port: int | None = None,
    discover: bool = False,
    timeout: float = DISCOVERY_TIMEOUT,
) -> tuple[str, int]:
    """Return the (host, port) a client should connect to.

    Explicit arguments win, then $MPD_HOST / $MPD_PORT. With discover set
    and no host from either source, the local network is browsed for an
    MPD server first; the library default is used when none answers.

    Args:
        host: MPD server hostname or IP.
        port: MPD server port.
        discover: Browse mDNS when no host is configured.
        timeout: Seconds to browse.
    """
    if discover and not host and not os.environ.get(ENV_HOST):
        server = ServerDiscovery.discover_one(timeout=timeout)
        if server is not None:
            logger.info("Using discovered MPD server %s", server.display_name)
            return server.host, port if port is not None else server.port
        logger.info("No MPD server announced, falling back to %s", DEFAULT_HOST)
    return resolve_host(host), resolve_port(port)


def _to_flag(mode: bool | int | str) -> bool:
    if isinstance(mode, bool):
        return mode
    if mode in (0, 1, "0", "1"):
        return str(mode) == "1"
    raise MpdValidationError(f"Invalid mode: {mode!r}")


def _to_seconds(seconds: float | int | str) -> str:
    try:
        value = float(seconds)
    except (TypeError, ValueError) as e:
        raise MpdValidationError(f"Invalid time: {seconds!r}") from e
    if value < 0:
        raise MpdValidationError(f"Invalid time: {seconds!r}")
    return str(int(value)) if value.is_integer() else str(value)


def _to_int(value: int | str) -> int:
    # Signed, unlike to_index: setvol clamps and plchanges takes -1
    if isinstance(value, bool):
        raise MpdValidationError(f"Invalid number: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MpdValidationError(f"Invalid number: {value!r}") from e


class MpdClient:
    """MPD client.

    Attributes:
        session: The underlying connection.
        allow_toggle_states: Let pause/random/repeat flip the current state
            when called without an argument.
        overwrite_playlist: Default for save(force=...).
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        password: str | None = None,
        *,
        allow_toggle_states: bool = True,
        overwrite_playlist: bool = True,
        timeout: float | None = None,
        discover: bool = False,
    ) -> None:
        """Initialize MPD client.

        Host and port fall back to $MPD_HOST / $MPD_PORT, then to
        localhost:6600. Nothing is sent until the first command, but
        discover=True may browse the network here for up to
        DISCOVERY_TIMEOUT seconds.

        Args:
            host: MPD server hostname or IP.
            port: MPD server port.
            password: Optional password for authentication.
            allow_toggle_states: Allow argument-less toggle commands.
            overwrite_playlist: Replace existing playlists on save.
            timeout: Socket timeout in seconds, None to block.
            discover: Look for an MPD server via mDNS when no host is given.
        """
        host, port = resolve_address(host, port, discover)
        self.session = MpdSession(host, port, password, timeout)
        self.allow_toggle_states = allow_toggle_states
        self.overwrite_playlist = overwrite_playlist

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> Self:
        """Create a client from stored configuration."""
        return cls(
            settings.host,
            settings.port,
            settings.password or None,
            allow_toggle_states=settings.allow_toggle_states,
            overwrite_playlist=settings.overwrite_playlist,
        )

    def __enter__(self) -> Self:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, *_: object) -> None:
        """Context manager exit."""
        self.close()

    def _command(self, cmd: str, *args: str | int) -> list[str]:
        return self.session.execute(format_command(cmd, *args))

    def batch(self) -> CommandBatch:
        """Return a new command list bound to this client's session."""
        return CommandBatch(self.session)

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    @property
    def host(self) -> str:
        """Return the server host."""
        return self.session.host

    @property
    def port(self) -> int:
        """Return the server port."""
        return self.session.port

    @property
    def mpd_version(self) -> str | None:
        """Return the version reported by the server, None before connecting."""
        return self.session.version

    @property
    def error(self) -> MpdError | None:
        """Return the error of the last command, None if it succeeded."""
        return self.session.last_error

    @property
    def password(self) -> str | None:
        """Return the stored password."""
        return self.session.password

    @password.setter
    def password(self, password: str | None) -> None:
        """Store a password to send on the next (re)connect."""
        self.session.password = password

    def authenticate(self, password: str | None = None) -> None:
        """Send a password now and keep it for later reconnects.

        Args:
            password: New password, or None to resend the stored one.
        """
        if password is not None:
            self.session.password = password
        if self.session.password is None:
            raise MpdValidationError("No password set")
        self._command("password", self.session.password)

    def connect(self) -> None:
        """Connect now instead of on the first command."""
        self.session.ensure_connected()

    def close(self) -> None:
        """Close the connection. Does nothing when already closed."""
        self.session.close()

    def is_connected(self) -> bool:
        """Return True if the server answers a ping."""
        return self.session.is_connected()

    def ping(self) -> None:
        """Ping MPD server to check connection."""
        self._command("ping")

    def kill(self) -> None:
        """Stop the MPD server. It cannot be restarted from here."""
        try:
            self._command("kill")
        except MpdConnectionError as e:
            logger.debug("Connection dropped by kill: %s", e)
        finally:
            self.session.clear_last_error()

    # -------------------------------------------------------------------------
    # Status & Info Commands
    # -------------------------------------------------------------------------

    def status(self) -> dict[str, str]:
        """Get current player status.

        Returns:
            Dictionary with state, volume, repeat, random, song, songid,
            time ("elapsed:total"), playlist, playlistlength, xfade, ...
        """
        return parse_response(self._command("status"))

    def stats(self) -> dict[str, str]:
        """Get database statistics.

        Returns:
            Dictionary with stats (artists, albums, songs, uptime, etc.).
        """
        return parse_response(self._command("stats"))

    def currentsong(self) -> MpdSong | None:
        """Get current song information.

        Returns:
            MpdSong if a song is loaded, None otherwise.
        """
        data = parse_response(self._command("currentsong"))
        if "file" not in data:
            return None
        return parse_song(data)

    def urlhandlers(self) -> list[str]:
        """Return the URL schemes the server can play."""
        return [value for key, value in parse_pairs(self._command("urlhandlers")) if key == "handler"]

    def clearerror(self) -> None:
        """Clear the error reported in status."""
        self.session.clear_last_error()
        self._command("clearerror")

    # -------------------------------------------------------------------------
    # Playback Control
    # -------------------------------------------------------------------------

    def play(self, pos: int | str | None = None) -> MpdSong | None:
        """Start playback, optionally at a playlist position.

        Returns:
            The song now playing.
        """
        if pos is None:
            self._command("play")
        else:
            self._command("play", to_index(pos))
        return self.currentsong()

    def playid(self, song_id: int | str | None = None) -> str | None:
        """Start playback at the song with the given id.

        Returns:
            The id of the song now playing, as reported by status.
        """
        if song_id is None:
            self._command("playid")
        else:
            self._command("playid", to_index(song_id))
        return self.status().get("songid")

    def pause(self, state: bool | int | str | None = None) -> str:
        """Pause or resume playback.

        Args:
            state: True to pause, False to resume, None to toggle.

        Returns:
            The player state afterwards ("play", "pause" or "stop").
        """
        if state is None and not self.allow_toggle_states:
            raise MpdValidationError("pause requires a state when toggling is disabled")
        paused = None if state is None else _to_flag(state)

        current = self.status().get("state", "stop")
        if current == "stop":
            return current
        if paused is None:
            paused = current != "pause"
        self._command("pause", "1" if paused else "0")
        return self.status().get("state", "stop")

    def stop(self) -> str:
        """Stop playback.

        Returns:
            The player state afterwards.
        """
        self._command("stop")
        return self.status().get("state", "stop")

    def next(self) -> MpdSong | None:
        """Skip to next song and return it."""
        self._command("next")
        return self.currentsong()

    def previous(self) -> MpdSong | None:
        """Skip to previous song and return it."""
        self._command("previous")
        return self.currentsong()

    def seek(self, seconds: float, pos: int | str | None = None) -> None:
        """Seek within the song at a playlist position.

        Args:
            seconds: Position in seconds.
            pos: Playlist position, the current song if None.
        """
        time = _to_seconds(seconds)
        if pos is None:
            song = self.currentsong()
            if song is None or song.pos is None:
                raise MpdValidationError("No current song to seek in")
            pos = song.pos
        self._command("seek", to_index(pos), time)

    def seekid(self, seconds: float, song_id: int | str | None = None) -> None:
        """Seek within the song with the given id.

        Args:
            seconds: Position in seconds.
            song_id: Song id, the current song if None.
        """
        time = _to_seconds(seconds)
        if song_id is None:
            song = self.currentsong()
            if song is None or song.id is None:
                raise MpdValidationError("No current song to seek in")
            song_id = song.id
        self._command("seekid", to_index(song_id), time)

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    def setvol(self, volume: int) -> str | None:
        """Set volume, clamped to 0-100.

        Returns:
            The volume reported by status.
        """
        self._command("setvol", max(MIN_VOLUME, min(MAX_VOLUME, _to_int(volume))))
        return self.status().get("volume")

    def crossfade(self, seconds: int) -> str | None:
        """Set crossfade in seconds and return the value reported by status."""
        self._command("crossfade", to_index(seconds))
        return self.status().get("xfade")

    def random(self, mode: bool | int | str | None = None) -> str | None:
        """Set random playback, or flip it when mode is None.

        Random affects playback order, not the playlist itself.

        Returns:
            "1" or "0" as reported by status.
        """
        return self._set_option("random", mode)

    def repeat(self, mode: bool | int | str | None = None) -> str | None:
        """Set repeat mode, or flip it when mode is None.

        Returns:
            "1" or "0" as reported by status.
        """
        return self._set_option("repeat", mode)

    def _set_option(self, option: str, mode: bool | int | str | None) -> str | None:
        if mode is None:
            if not self.allow_toggle_states:
                raise MpdValidationError(f"{option} requires a mode when toggling is disabled")
            enabled = self.status().get(option) != "1"
        else:
            enabled = _to_flag(mode)
        self._command(option, "1" if enabled else "0")
        return self.status().get(option)

    # -------------------------------------------------------------------------
    # Current Playlist
    # -------------------------------------------------------------------------

    def add(self, path: str) -> None:
        """Add a file or directory (relative to the music directory) to the playlist."""
        self._command("add", path)

    def clear(self) -> None:
        """Remove every song from the playlist."""
        self._command("clear")

    def shuffle(self) -> None:
        """Shuffle the playlist itself. See random() for shuffled playback."""
        self._command("shuffle")

    def delete(self, positions: Any) -> None:
        """Delete songs by playlist position.

        Args:
            positions: A position, a range, or nested lists of either,
                e.g. ``[range(1, 4), 45, "99"]``.

        Several positions are turned into song ids first and removed in a
        single command list, so earlier deletes do not shift later ones.
        """
        indexes = expand_indexes(positions)
        if not indexes:
            return
        if len(indexes) == 1:
            self._command("delete", indexes[0])
            return

        song_ids: list[int] = []
        for pos in indexes:
            song = self.song_at(pos)
            if song is None or song.id is None:
                raise MpdValidationError(f"No song at position {pos}")
            song_ids.append(song.id)
        self._delete_ids(song_ids)

    def deleteid(self, song_ids: Any) -> None:
        """Delete songs by id. Accepts the same shapes as delete()."""
        self._delete_ids(expand_indexes(song_ids))

    def _delete_ids(self, song_ids: list[int]) -> None:
        if not song_ids:
            return
        if len(song_ids) == 1:
            self._command("deleteid", song_ids[0])
            return
        with self.batch() as batch:
            for song_id in song_ids:
                batch.add(format_command("deleteid", song_id))

    def crop(self) -> None:
        """Remove every song from the playlist except the current one."""
        song = self.currentsong()
        if song is None or song.pos is None:
            logger.info("Nothing playing, crop skipped")
            return

        length = self.playlistlength()
        # Highest positions first so the remaining positions stay valid
        positions = [*range(length - 1, song.pos, -1), *range(song.pos - 1, -1, -1)]
        if not positions:
            return
        with self.batch() as batch:
            for pos in positions:
                batch.add(format_command("delete", pos))

    def move(self, from_pos: int | str, to_pos: int | str) -> None:
        """Move the song at from_pos to to_pos."""
        self._command("move", to_index(from_pos), to_index(to_pos))

    def moveid(self, song_id: int | str, to_pos: int | str) -> None:
        """Move the song with song_id to to_pos."""
        self._command("moveid", to_index(song_id), to_index(to_pos))

    def swap(self, pos1: int | str, pos2: int | str) -> None:
        """Swap the songs at two playlist positions."""
        self._command("swap", to_index(pos1), to_index(pos2))

    def swapid(self, song_id1: int | str, song_id2: int | str) -> None:
        """Swap two songs by id."""
        self._command("swapid", to_index(song_id1), to_index(song_id2))

    def playlistinfo(self, pos: int | str | None = None) -> list[MpdSong]:
        """Return the songs of the playlist, or only the one at pos."""
        if pos is None:
            return parse_songs(self._command("playlistinfo"))
        return parse_songs(self._command("playlistinfo", to_index(pos)))

    def playlistid(self, song_id: int | str | None = None) -> list[MpdSong]:
        """Return the songs of the playlist, or only the one with song_id."""
        if song_id is None:
            return parse_songs(self._command("playlistid"))
        return parse_songs(self._command("playlistid", to_index(song_id)))

    def song_at(self, pos: int | str) -> MpdSong | None:
        """Return the song at a playlist position."""
        songs = self.playlistinfo(pos)
        return songs[0] if songs else None

    def song_by_id(self, song_id: int | str) -> MpdSong | None:
        """Return the playlist song with the given id."""
        songs = self.playlistid(song_id)
        return songs[0] if songs else None

    def playlistlength(self) -> int:
        """Return the number of songs in the playlist."""
        return int(self.status().get("playlistlength", "0"))

    def plchanges(self, version: int = -1) -> list[MpdSong]:
        """Return songs changed since playlist version (everything for -1)."""
        return parse_songs(self._command("plchanges", _to_int(version)))

    # -------------------------------------------------------------------------
    # Stored Playlists
    # -------------------------------------------------------------------------

    def save(self, name: str, force: bool | None = None) -> None:
        """Save the playlist under name.

        Args:
            name: Playlist name.
            force: Replace an existing playlist of that name. Defaults to
                overwrite_playlist.

        Raises:
            MpdError: If saving fails, or the playlist exists and force is off.
        """
        if force is None:
            force = self.overwrite_playlist
        try:
            self._command("save", name)
        except MpdError as e:
            if e.code != ACK_ERROR_EXIST or not force:
                raise
            logger.info("Playlist %s exists, replacing it", name)
            self.rm(name)
            self._command("save", name)

    def load(self, name: str) -> None:
        """Append a stored playlist to the current playlist."""
        self._command("load", name)

    def rm(self, name: str) -> None:
        """Delete a stored playlist."""
        self._command("rm", name)

    def lsplaylists(self) -> list[str]:
        """Return the names of stored playlists."""
        return [value for key, value in parse_pairs(self._command("listplaylists")) if key == "playlist"]

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------

    def list(self, tag: str = "artist", artist: str | None = None) -> list[str]:
        """Return all values of a tag, e.g. every artist or album.

        Args:
            tag: Tag to list ("artist", "album", ...).
            artist: Only list values from songs by this artist.
        """
        args = [tag] if artist is None else [tag, "artist", artist]
        wanted = tag.lower()
        return [value for key, value in parse_pairs(self._command("list", *args)) if key == wanted]

    def listall(self, path: str = "") -> list[str]:
        """Return every file path below path (the whole database by default)."""
        lines = self._command("listall", path) if path else self._command("listall")
        return [value for key, value in parse_pairs(lines) if key == "file"]

    def listallinfo(self, path: str = "") -> list[MpdSong]:
        """Return every song below path (the whole database by default)."""
        lines = self._command("listallinfo", path) if path else self._command("listallinfo")
        records = split_records(lines, _LSINFO_KINDS)
        return [parse_song(record) for record in records if "file" in record]

    def lsinfo(self, path: str = "") -> list[tuple[str, str]]:
        """List the entries of one directory.

        Returns:
            (kind, name) tuples where kind is "file", "directory" or "playlist".
        """
        lines = self._command("lsinfo", path) if path else self._command("lsinfo")
        return [(key, value) for key, value in parse_pairs(lines) if key in _LSINFO_KINDS]

    def find(self, tag: str, what: str) -> list[MpdSong]:
        """Return songs whose tag matches what exactly."""
        return parse_songs(self._command("find", tag, what))

    def search(self, tag: str, what: str) -> list[MpdSong]:
        """Return songs whose tag contains what, ignoring case."""
        return parse_songs(self._command("search", tag, what))

    def find_add(self, tag: str, what: str) -> list[MpdSong]:
        """Run find() and add every result to the playlist."""
        return self._add_all(self.find(tag, what))

    def search_add(self, tag: str, what: str) -> list[MpdSong]:
        """Run search() and add every result to the playlist."""
        return self._add_all(self.search(tag, what))

    def _add_all(self, songs: list[MpdSong]) -> list[MpdSong]:
        if songs:
            with self.batch() as batch:
                for song in songs:
                    batch.add(format_command("add", song.file))
        return songs

    def update(self, paths: Any = None) -> str | None:
        """Rescan the music directory, or only the given path(s).

        Args:
            paths: A path, nested lists of paths, or None for everything.

        Returns:
            The update job id.
        """
        items = [] if paths is None else [p for p in unique(flatten(paths)) if p]
        if len(items) <= 1:
            lines = self._command("update", *items)
        else:
            batch = self.batch()
            batch.begin()
            for path in items:
                batch.add(format_command("update", path))
            lines = batch.end()
        return parse_response(lines).get("updating_db")

    # -------------------------------------------------------------------------
    # Formatting
    # -------------------------------------------------------------------------

    def strf(self, template: str, song: MpdSong | int | str | None = None) -> str:
        """Render template for a song, like strftime.

        Args:
            template: Format string, see mpdctrl.api.mpd.format.
            song: A song, a playlist song id, or None for the current song.
        """
        if song is None:
            song = self.currentsong()
        return render(template, song, self.status, self.song_by_id)

    # -------------------------------------------------------------------------
    # Named command dispatch
    # -------------------------------------------------------------------------

    def invoke(self, name: str, *args: Any) -> Any:
        """Run one of the operations listed in COMMANDS by name.

        Raises:
            MpdValidationError: If name is not a known operation.
        """
        handler = COMMANDS.get(name)
        if handler is None:
            raise MpdValidationError(f"Unknown command: {name!r}")
        return handler(self, *args)


COMMANDS: dict[str, Callable[..., Any]] = {
    "add": MpdClient.add,
    "authenticate": MpdClient.authenticate,
    "clear": MpdClient.clear,
    "clearerror": MpdClient.clearerror,
    "close": MpdClient.close,
    "connect": MpdClient.connect,
    "crop": MpdClient.crop,
    "crossfade": MpdClient.crossfade,
    "currentsong": MpdClient.currentsong,
    "delete": MpdClient.delete,
    "deleteid": MpdClient.deleteid,
    "find": MpdClient.find,
    "find_add": MpdClient.find_add,
    "is_connected": MpdClient.is_connected,
    "kill": MpdClient.kill,
    "list": MpdClient.list,
    "listall": MpdClient.listall,
    "listallinfo": MpdClient.listallinfo,
    "load": MpdClient.load,
    "lsinfo": MpdClient.lsinfo,
    "lsplaylists": MpdClient.lsplaylists,
    "move": MpdClient.move,
    "moveid": MpdClient.moveid,
    "next": MpdClient.next,
    "pause": MpdClient.pause,
    "ping": MpdClient.ping,
    "play": MpdClient.play,
    "playid": MpdClient.playid,
    "playlistid": MpdClient.playlistid,
    "playlistinfo": MpdClient.playlistinfo,
    "playlistlength": MpdClient.playlistlength,
    "plchanges": MpdClient.plchanges,
    "prev": MpdClient.previous,
    "previous": MpdClient.previous,
    "random": MpdClient.random,
    "repeat": MpdClient.repeat,
    "rm": MpdClient.rm,
    "save": MpdClient.save,
    "search": MpdClient.search,
    "search_add": MpdClient.search_add,
    "seek": MpdClient.seek,
    "seekid": MpdClient.seekid,
    "setvol": MpdClient.setvol,
    "shuffle": MpdClient.shuffle,
    "stats": MpdClient.stats,
    "status": MpdClient.status,
    "stop": MpdClient.stop,
    "strf": MpdClient.strf,
    "swap": MpdClient.swap,
    "swapid": MpdClient.swapid,
    "update": MpdClient.update,
    "urlhandlers": MpdClient.urlhandlers,
}
