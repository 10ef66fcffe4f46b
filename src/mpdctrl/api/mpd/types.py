"""MPD protocol data types.

Songs are frozen dataclasses. Status and stats stay plain ``dict[str, str]``
because they are regenerated on every query and their keys vary between
server versions.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class MpdSong:
    """A song as described by playlistinfo, currentsong, find, search, ...

    Attributes:
        file: Path to the audio file in MPD's music directory.
        album: Album name from tags.
        artist: Artist name(s) from tags.
        title: Track title from tags.
        id: MPD song ID in the current playlist, or None outside the playlist.
        pos: Position in the current playlist, or None outside the playlist.
        duration: Track duration in whole seconds, or None if unknown.
        track: Track number within the album, or None if untagged.
        album_artist: AlbumArtist tag, used when the song has no artist.
    """

    file: str
    album: str = ""
    artist: str = ""
    title: str = ""
    id: int | None = None
    pos: int | None = None
    duration: int | None = None
    track: int | None = None
    album_artist: str = ""

    @property
    def has_metadata(self) -> bool:
        """Return True if song has title or artist metadata."""
        return bool(self.title or self.artist)

    @property
    def display_title(self) -> str:
        """Return title for display, with filename fallback."""
        if self.title:
            return self.title
        # Extract filename without path and extension
        name = self.file.rsplit("/", 1)[-1]
        if "." in name:
            name = name.rsplit(".", 1)[0]
        return name

    @property
    def display_artist(self) -> str:
        """Return artist for display, falling back to album_artist if empty."""
        return self.artist or self.album_artist

    @property
    def display_name(self) -> str:
        """Return "artist - title" when both are tagged, else the file path."""
        if self.artist and self.title:
            return f"{self.artist} - {self.title}"
        return self.file
