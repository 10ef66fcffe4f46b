"""MPD session: connection lifecycle and single-command execution.

A session owns at most one LineTransport. It connects lazily, checks the
connection with ``ping`` before each command and reconnects when the old
socket has died, replaying the password if one was set.

State machine:
    Disconnected -> Connecting -> Authenticating (password set) -> Ready

An I/O failure drops the session back to Disconnected. ACK errors are
raised to the caller while the connection stays usable.
"""

import logging
from typing import Self

from mpdctrl.api.mpd.protocol import (
    MpdConnectionError,
    MpdError,
    format_command,
    is_ack,
    is_ok,
    parse_ack,
    parse_greeting,
)
from mpdctrl.api.mpd.transport import LineTransport

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6600

# Environment variables that override the defaults
ENV_HOST = "MPD_HOST"
ENV_PORT = "MPD_PORT"

# Newest protocol version this client has been exercised against
TESTED_PROTOCOL_VERSION = "0.24.0"


def _version_tuple(version: str) -> tuple[int, ...]:
    parts: list[int] = []
    for part in version.split("."):
        if not part.isdigit():
            break
        parts.append(int(part))
    return tuple(parts)


class MpdSession:
    """One logical connection to an MPD server.

    Attributes:
        host: MPD server hostname or IP.
        port: MPD server port.
        password: Password replayed on every (re)connect, or None.
        timeout: Socket timeout in seconds, None to block indefinitely.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        password: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.password = password
        self.timeout = timeout

        self._transport: LineTransport | None = None
        self._protocol: str | None = None
        self._version: str | None = None
        self._last_error: MpdError | None = None

    @property
    def version(self) -> str | None:
        """Return the protocol version negotiated in the last handshake."""
        return self._version

    @property
    def last_error(self) -> MpdError | None:
        """Return the error from the most recent command, None after a success."""
        return self._last_error

    def clear_last_error(self) -> None:
        """Forget the recorded error."""
        self._last_error = None

    def __enter__(self) -> Self:
        """Context manager entry."""
        self.ensure_connected()
        return self

    def __exit__(self, *_: object) -> None:
        """Context manager exit."""
        self.close()

    # -------------------------------------------------------------------------
    # Connection management
    # -------------------------------------------------------------------------

    def is_connected(self) -> bool:
        """Check the connection with ``ping``.

        Never raises: any I/O failure or error reply counts as "not
        connected" and discards the socket.
        """
        if self._transport is None or self._transport.closed:
            return False
        try:
            self._transport.send_line("ping")
            line = self._transport.read_line()
        except MpdConnectionError as e:
            logger.debug("MPD liveness check failed: %s", e)
            self._drop()
            return False
        if is_ok(line):
            return True
        logger.debug("MPD liveness check got %r", line)
        self._drop()
        return False

    def ensure_connected(self) -> None:
        """Open a connection unless a live one exists.

        Raises:
            MpdConnectionError: If the server cannot be reached.
            MpdHandshakeError: If the greeting is malformed.
            MpdError: If the stored password is rejected.
        """
        if self.is_connected():
            return

        transport = LineTransport.open(self.host, self.port, self.timeout)
        try:
            self._protocol, self._version = parse_greeting(transport.read_line())
        except MpdConnectionError:
            transport.close()
            raise

        self._transport = transport
        logger.info("Connected to %s %s at %s:%d", self._protocol, self._version, self.host, self.port)

        if _version_tuple(self._version) > _version_tuple(TESTED_PROTOCOL_VERSION):
            logger.warning(
                "MPD server version %s is newer than %s, expect the unexpected",
                self._version,
                TESTED_PROTOCOL_VERSION,
            )

        if self.password is not None:
            logger.debug("Replaying password after connect")
            self._roundtrip(format_command("password", self.password))

    def close(self) -> None:
        """Send ``close`` and drop the socket. Safe to call when closed."""
        if self._transport is None:
            return
        try:
            self._transport.send_line("close")
        except MpdConnectionError as e:
            logger.debug("Expected error during MPD close: %s", e)
        finally:
            self._drop()
            logger.info("Disconnected from MPD")

    def _drop(self) -> None:
        if self._transport is not None:
            self._transport.close()
        self._transport = None

    # -------------------------------------------------------------------------
    # Command execution
    # -------------------------------------------------------------------------

    def execute(self, command: str) -> list[str]:
        """Send a command and read its response.

        Args:
            command: Formatted command line, or a newline-joined command list.

        Returns:
            List of response lines (without OK).

        Raises:
            MpdConnectionError: If the connection fails.
            MpdError: If the server answers with ACK.
        """
        self.ensure_connected()
        return self._roundtrip(command)

    def _roundtrip(self, command: str) -> list[str]:
        if self._transport is None:
            raise MpdConnectionError("Not connected")

        logger.debug("MPD command: %s", command)
        try:
            self._transport.send_line(command)
            lines = self._transport.read_response()
        except MpdConnectionError:
            self._drop()
            raise

        sentinel = lines.pop()
        if is_ack(sentinel):
            error = parse_ack(sentinel)
            self._last_error = error
            logger.debug("MPD error: %s", error)
            raise error

        self._last_error = None
        return lines
