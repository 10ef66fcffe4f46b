"""MPD protocol parsing utilities.

MPD uses a simple line-based text protocol:
- Commands are sent as plain text lines
- Responses are key-value pairs: "key: value"
- Responses end with "OK" or "ACK [error@index] {command} message"
- Several commands can be sent as one atomic command list

Reference: https://mpd.readthedocs.io/en/stable/protocol.html
"""

import logging
import re
from collections.abc import Iterable

from mpdctrl.api.mpd.types import MpdSong

logger = logging.getLogger(__name__)

# MPD error codes (ack.h)
ACK_ERROR_NOT_LIST = 1
ACK_ERROR_ARG = 2
ACK_ERROR_PASSWORD = 3
ACK_ERROR_PERMISSION = 4
ACK_ERROR_UNKNOWN = 5
ACK_ERROR_NO_EXIST = 50
ACK_ERROR_PLAYLIST_MAX = 51
ACK_ERROR_SYSTEM = 52
ACK_ERROR_PLAYLIST_LOAD = 53
ACK_ERROR_UPDATE_ALREADY = 54
ACK_ERROR_PLAYER_SYNC = 55
ACK_ERROR_EXIST = 56

COMMAND_LIST_BEGIN = "command_list_begin"
COMMAND_LIST_END = "command_list_end"


class MpdConnectionError(Exception):
    """Failed to connect to, or lost connection with, the MPD server."""


class MpdHandshakeError(MpdConnectionError):
    """Server greeting did not look like "OK <proto> <version>"."""


class MpdValidationError(ValueError):
    """Caller passed an argument the client refuses to send."""


class MpdError(Exception):
    """MPD protocol error reported by an ACK line.

    Attributes:
        code: Numeric error code (see ACK_ERROR_* constants).
        index: Position of the failing command inside a command list (0 otherwise).
        command: Name of the command that failed.
        message: Human readable description from the server.
    """

    def __init__(self, code: int, index: int, command: str, message: str) -> None:
        self.code = code
        self.index = index
        self.command = command
        self.message = message
        super().__init__(f"MPD error {code}@{index} in {command or '?'}: {message}")


# Pattern for ACK responses: ACK [error@command_listNum] {current_command} message_text
ACK_PATTERN = re.compile(r"^ACK \[(\d+)@(\d+)\] \{([^}]*)\} ?(.*)$")

# Greeting: "OK MPD 0.23.5"
GREETING_PATTERN = re.compile(r"^OK (\S+) (\S+)$")

_SONG_INT_FIELDS = ("id", "pos")


def is_ok(line: str) -> bool:
    """Return True if line is a success sentinel."""
    return line.startswith("OK")


def is_ack(line: str) -> bool:
    """Return True if line is an error sentinel."""
    return line.startswith("ACK ")


def parse_ack(line: str) -> MpdError:
    """Decode an ACK line into an MpdError.

    Args:
        line: The raw ACK line.

    Returns:
        MpdError carrying code, command list index, command name and message.
        A line that does not match the ACK shape yields code 0 and the raw
        line as message.
    """
    match = ACK_PATTERN.match(line)
    if match:
        return MpdError(
            int(match.group(1)),
            int(match.group(2)),
            match.group(3),
            match.group(4),
        )
    return MpdError(0, 0, "", line)


def parse_greeting(line: str) -> tuple[str, str]:
    """Parse the connection greeting.

    Returns:
        Tuple of (protocol name, version).

    Raises:
        MpdHandshakeError: If the greeting is malformed.
    """
    match = GREETING_PATTERN.match(line)
    if not match:
        raise MpdHandshakeError(f"Invalid MPD greeting: {line!r}")
    return match.group(1), match.group(2)


def parse_pairs(lines: Iterable[str]) -> list[tuple[str, str]]:
    """Split "key: value" lines into (key, value) tuples.

    Keys are lowercased. Lines without a separator and sentinel lines are
    skipped.

    Raises:
        MpdError: If an ACK line is present.
    """
    pairs: list[tuple[str, str]] = []
    for line in lines:
        if is_ack(line):
            raise parse_ack(line)
        if line == "OK":
            continue
        if ": " in line:
            key, value = line.split(": ", 1)
            pairs.append((key.lower(), value))
    return pairs


def parse_response(lines: Iterable[str]) -> dict[str, str]:
    """Parse MPD response lines into a key-value dict.

    Args:
        lines: Response lines (without the final OK).

    Returns:
        Dictionary of key-value pairs in response order. Later duplicates win.

    Raises:
        MpdError: If response is an ACK error.
    """
    return dict(parse_pairs(lines))


def split_records(
    lines: Iterable[str],
    segment_keys: str | Iterable[str] = "file",
) -> list[dict[str, str]]:
    """Split a multi-record response into one dict per record.

    A new record starts every time one of ``segment_keys`` appears. Pairs
    that come before the first segment key belong to no record and are
    dropped.

    Args:
        lines: Response lines.
        segment_keys: Key (or keys) marking the start of a record.

    Returns:
        List of records, empty when the server returned none.
    """
    keys = {segment_keys} if isinstance(segment_keys, str) else set(segment_keys)
    records: list[dict[str, str]] = []
    current: dict[str, str] | None = None

    for key, value in parse_pairs(lines):
        if key in keys:
            current = {}
            records.append(current)
        if current is None:
            logger.debug("Dropping %r outside of any record", key)
            continue
        current[key] = value

    return records


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_track_number(value: str | None) -> int | None:
    # "3" or "3/12"
    if not value:
        return None
    return _to_int(value.split("/", 1)[0].strip())


def _parse_duration(data: dict[str, str]) -> int | None:
    seconds = _to_int(data.get("time"))
    if seconds is not None:
        return seconds
    if "duration" in data:
        try:
            return int(float(data["duration"]))
        except ValueError:
            return None
    return None


def parse_song(data: dict[str, str]) -> MpdSong:
    """Parse a song record into MpdSong.

    Args:
        data: Key-value dict from parse_response or split_records.

    Returns:
        MpdSong instance. Missing numeric fields are None.
    """
    numbers = {name: _to_int(data.get(name)) for name in _SONG_INT_FIELDS}
    return MpdSong(
        file=data.get("file", ""),
        album=data.get("album", ""),
        artist=data.get("artist", ""),
        title=data.get("title", ""),
        id=numbers["id"],
        pos=numbers["pos"],
        duration=_parse_duration(data),
        track=_parse_track_number(data.get("track")),
        album_artist=data.get("albumartist", ""),
    )


def parse_songs(lines: Iterable[str]) -> list[MpdSong]:
    """Parse a song listing (playlistinfo, find, search, ...) into songs."""
    return [parse_song(record) for record in split_records(lines, "file")]


def escape_arg(arg: str) -> str:
    """Escape an argument for MPD command.

    MPD requires arguments with spaces or special chars to be quoted.
    Inside quotes, backslash and double-quote must be escaped.

    Args:
        arg: The argument to escape.

    Returns:
        Escaped argument, quoted if necessary.

    Raises:
        MpdValidationError: If the argument contains a line break. MPD
            ends a command at the first newline, even inside quotes.
    """
    if "\n" in arg or "\r" in arg:
        raise MpdValidationError(f"Line break in argument: {arg!r}")

    # If no special characters, return as-is
    if arg and not any(c in arg for c in ' "\'\t\\'):
        return arg

    # Escape backslashes and quotes, wrap in quotes
    escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_command(command: str, *args: str | int) -> str:
    """Format an MPD command with arguments.

    Args:
        command: The MPD command name.
        *args: Command arguments. Integers are sent unquoted.

    Returns:
        Formatted command string (without newline).
    """
    if not args:
        return command
    escaped_args = [str(arg) if isinstance(arg, int) else escape_arg(arg) for arg in args]
    return f"{command} {' '.join(escaped_args)}"
