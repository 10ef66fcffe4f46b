"""Line-oriented TCP transport for the MPD protocol."""

import logging
import socket
from typing import Self

from mpdctrl.api.mpd.protocol import MpdConnectionError, is_ack, is_ok

logger = logging.getLogger(__name__)

RECV_SIZE = 4096
ENCODING = "utf-8"


class LineTransport:
    """Owns one socket and speaks newline-terminated text over it.

    Blocking, with no timeout unless one is given to ``open``. Every
    OS-level failure surfaces as MpdConnectionError.
    """

    def __init__(self, sock: socket.socket) -> None:
        """Wrap an already connected socket.

        Args:
            sock: Connected stream socket.
        """
        self._sock: socket.socket | None = sock
        self._buffer = b""

    @classmethod
    def open(cls, host: str, port: int, timeout: float | None = None) -> Self:
        """Open a TCP connection to host:port.

        Raises:
            MpdConnectionError: If the connection cannot be established.
        """
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except TimeoutError as e:
            raise MpdConnectionError(f"Connection to {host}:{port} timed out") from e
        except OSError as e:
            raise MpdConnectionError(f"Failed to connect to {host}:{port}: {e}") from e
        return cls(sock)

    @property
    def closed(self) -> bool:
        """Return True once the socket has been closed."""
        return self._sock is None

    def send_line(self, line: str) -> None:
        """Send one line (or a newline-joined payload) terminated by a newline."""
        if self._sock is None:
            raise MpdConnectionError("Not connected")
        try:
            self._sock.sendall(f"{line}\n".encode(ENCODING))
        except OSError as e:
            raise MpdConnectionError(f"Send failed: {e}") from e

    def read_line(self) -> str:
        """Read a single line, without the trailing newline.

        Raises:
            MpdConnectionError: On EOF or socket error.
        """
        if self._sock is None:
            raise MpdConnectionError("Not connected")
        while b"\n" not in self._buffer:
            try:
                chunk = self._sock.recv(RECV_SIZE)
            except OSError as e:
                raise MpdConnectionError(f"Receive failed: {e}") from e
            if not chunk:
                raise MpdConnectionError("Connection closed by server")
            self._buffer += chunk

        line, self._buffer = self._buffer.split(b"\n", 1)
        return line.decode(ENCODING, errors="replace")

    def read_response(self) -> list[str]:
        """Read response lines until OK or ACK.

        Returns:
            List of response lines (including final OK/ACK).
        """
        lines: list[str] = []
        while True:
            line = self.read_line()
            lines.append(line)
            if is_ok(line) or is_ack(line):
                return lines

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._sock is None:
            return
        try:
            self._sock.close()
        except OSError as e:
            logger.debug("Expected error closing MPD socket: %s", e)
        finally:
            self._sock = None
            self._buffer = b""
