"""Test fixtures for mpdctrl tests."""

from collections.abc import Generator
from unittest.mock import patch

import pytest

from mpdctrl.api.mpd import MpdClient

GREETING = "OK MPD 0.23.5"


class FakeSocket:
    """Socket stand-in connected to a FakeMpdServer."""

    def __init__(self, server: "FakeMpdServer") -> None:
        self._server = server
        self._outgoing = bytearray(f"{server.greeting}\n".encode())
        self.broken = False
        self.closed = False

    def sendall(self, data: bytes) -> None:
        """Deliver a payload to the server and queue its reply."""
        if self.broken or self.closed:
            raise BrokenPipeError("Broken pipe")
        self._outgoing += self._server.handle(data.decode()).encode()

    def recv(self, size: int) -> bytes:
        """Return queued reply bytes, or b"" (EOF) when nothing is left."""
        if self.broken:
            raise ConnectionResetError("Connection reset by peer")
        chunk = bytes(self._outgoing[:size])
        del self._outgoing[:size]
        return chunk

    def close(self) -> None:
        """Mark as closed."""
        self.closed = True


class FakeMpdServer:
    """Scripted MPD server.

    Every command (or whole command list payload) is looked up in
    ``replies``; unknown commands answer "OK". ``ping`` always succeeds,
    ``close`` and ``kill`` never answer.
    """

    def __init__(self, greeting: str = GREETING) -> None:
        self.greeting = greeting
        self.replies: dict[str, list[str]] = {}
        self.received: list[str] = []
        self.sockets: list[FakeSocket] = []
        self.refuse = False

    @property
    def connections(self) -> int:
        """Return how many connections were opened."""
        return len(self.sockets)

    @property
    def commands(self) -> list[str]:
        """Return received commands without liveness pings and close."""
        return [cmd for cmd in self.received if cmd not in ("ping", "close")]

    def reply(self, command: str, *responses: str) -> None:
        """Queue responses for a command. The last one repeats."""
        self.replies.setdefault(command, []).extend(responses)

    def handle(self, payload: str) -> str:
        """Return the raw reply to one sent payload."""
        command = payload.rstrip("\n")
        self.received.append(command)
        if command == "ping":
            return "OK\n"
        if command in ("close", "kill"):
            return ""
        queue = self.replies.get(command)
        if not queue:
            return "OK\n"
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        return response if response.endswith("\n") else f"{response}\n"

    def connect(self, address: tuple[str, int], timeout: float | None = None) -> FakeSocket:
        """Stand-in for socket.create_connection."""
        if self.refuse:
            raise ConnectionRefusedError(111, "Connection refused")
        sock = FakeSocket(self)
        self.sockets.append(sock)
        return sock

    def break_connections(self) -> None:
        """Make every open socket fail on the next I/O."""
        for sock in self.sockets:
            sock.broken = True


@pytest.fixture
def mpd_server() -> Generator[FakeMpdServer, None, None]:
    """Fixture providing a fake MPD server reachable at any address."""
    server = FakeMpdServer()
    with patch("mpdctrl.api.mpd.transport.socket.create_connection", side_effect=server.connect):
        yield server


@pytest.fixture
def client(mpd_server: FakeMpdServer) -> Generator[MpdClient, None, None]:
    """Fixture providing an MpdClient talking to the fake server."""
    mpd_client = MpdClient("localhost", 6600)
    yield mpd_client
    mpd_client.close()


SONG_A = "file: music/a.mp3\nArtist: Artist A\nTitle: Song A\nAlbum: Album A\nTime: 185\nPos: 0\nId: 10\n"
SONG_B = "file: music/b.ogg\nArtist: Artist B\nTitle: Song B\nTrack: 3/12\nPos: 1\nId: 11\n"
