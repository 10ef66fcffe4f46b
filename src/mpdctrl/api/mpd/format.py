"""strftime-like rendering of song information.

Directives:
    %f  file path           %t  title
    %a  artist              %T  duration in seconds
    %A  album               %n  track number
    %i  song id             %e  elapsed time (M:SS, from live status)
    %p  playlist position   %l  total time (M:SS, from live status)

Anything else, including an unknown directive or a trailing "%", is
copied as is.
"""

from collections.abc import Callable, Mapping

from mpdctrl.api.mpd.types import MpdSong

StatusLookup = Callable[[], Mapping[str, str]]
SongLookup = Callable[[int], MpdSong | None]


def _text(value: object) -> str:
    return "" if value is None else str(value)


SONG_DIRECTIVES: dict[str, Callable[[MpdSong], str]] = {
    "f": lambda song: song.file,
    "a": lambda song: song.artist,
    "A": lambda song: song.album,
    "i": lambda song: _text(song.id),
    "p": lambda song: _text(song.pos),
    "t": lambda song: song.title,
    "T": lambda song: _text(song.duration),
    "n": lambda song: _text(song.track),
}


def format_seconds(seconds: float) -> str:
    """Format seconds as M:SS."""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def status_times(status: Mapping[str, str]) -> tuple[float, float]:
    """Return (elapsed, total) seconds from a status mapping.

    Uses the "elapsed:total" ``time`` field, falling back to the separate
    ``elapsed`` and ``duration`` fields of newer servers. Missing values
    are 0.
    """
    elapsed = total = 0.0
    if ":" in status.get("time", ""):
        elapsed_str, total_str = status["time"].split(":", 1)
        elapsed, total = float(elapsed_str), float(total_str)
    if "elapsed" in status:
        elapsed = float(status["elapsed"])
    if "duration" in status:
        total = float(status["duration"])
    return elapsed, total


STATUS_DIRECTIVES: dict[str, Callable[[Mapping[str, str]], str]] = {
    "e": lambda status: format_seconds(status_times(status)[0]),
    "l": lambda status: format_seconds(status_times(status)[1]),
}


def resolve_song(song: MpdSong | int | str | None, song_lookup: SongLookup | None) -> MpdSong | None:
    """Turn a raw song id into a song via ``song_lookup``."""
    if isinstance(song, MpdSong) or song is None:
        return song
    if isinstance(song, str) and song.isdecimal():
        song = int(song)
    if isinstance(song, int) and not isinstance(song, bool) and song_lookup is not None:
        return song_lookup(song)
    raise TypeError(f"Cannot render song from {song!r}")


def render(
    template: str,
    song: MpdSong | int | str | None,
    status_lookup: StatusLookup,
    song_lookup: SongLookup | None = None,
) -> str:
    """Expand the directives of ``template``.

    Args:
        template: Format string, e.g. "%a - %t".
        song: Song to describe, or its playlist id.
        status_lookup: Returns the live status; called at most once and
            only when %e or %l is used.
        song_lookup: Resolves a playlist id to a song.

    Returns:
        The rendered string. Fields of an absent song render empty.
    """
    resolved = resolve_song(song, song_lookup)
    status: Mapping[str, str] | None = None
    out: list[str] = []
    i = 0

    while i < len(template):
        char = template[i]
        if char != "%" or i + 1 >= len(template):
            out.append(char)
            i += 1
            continue

        directive = template[i + 1]
        if directive in SONG_DIRECTIVES:
            out.append(SONG_DIRECTIVES[directive](resolved) if resolved else "")
        elif directive in STATUS_DIRECTIVES:
            if status is None:
                status = status_lookup()
            out.append(STATUS_DIRECTIVES[directive](status))
        else:
            out.append(template[i : i + 2])
        i += 2

    return "".join(out)
