"""Command lists: several commands applied as one atomic round trip.

MPD runs every command of a list in order and answers once. If one fails,
the ACK carries its index in the list and the remaining commands are
skipped. Index-shifting operations such as deleting several playlist
entries must go through one list, otherwise every delete moves the
positions the next one refers to.

Example:
    with client.batch() as batch:
        batch.add("deleteid 12")
        batch.add("deleteid 7")
"""

import logging
from typing import Self

from mpdctrl.api.mpd.protocol import COMMAND_LIST_BEGIN, COMMAND_LIST_END
from mpdctrl.api.mpd.session import MpdSession

logger = logging.getLogger(__name__)


class CommandBatch:
    """Accumulates command lines and runs them as one command list."""

    def __init__(self, session: MpdSession) -> None:
        self._session = session
        self._commands: list[str] | None = None

    @property
    def active(self) -> bool:
        """Return True between begin() and end()."""
        return self._commands is not None

    @property
    def commands(self) -> list[str]:
        """Return a copy of the pending commands."""
        return list(self._commands or [])

    def begin(self) -> None:
        """Open a fresh, empty batch, discarding anything pending."""
        if self._commands:
            logger.debug("Discarding %d pending batched commands", len(self._commands))
        self._commands = []

    def add(self, command: str) -> None:
        """Append one formatted command line.

        Raises:
            RuntimeError: If begin() was not called.
        """
        if self._commands is None:
            raise RuntimeError("add() called outside of begin()/end()")
        self._commands.append(command)

    def payload(self) -> str:
        """Return the framed command list as sent on the wire."""
        return "\n".join([COMMAND_LIST_BEGIN, *self.commands, COMMAND_LIST_END])

    def end(self) -> list[str]:
        """Send the batch as one command list.

        Returns:
            Combined response lines (without OK). An empty batch sends
            nothing and returns an empty list.

        Raises:
            MpdError: If any command in the list fails.
        """
        if not self._commands:
            self._commands = None
            return []
        payload = self.payload()
        try:
            return self._session.execute(payload)
        finally:
            self._commands = None

    def abort(self) -> None:
        """Drop pending commands without sending them."""
        self._commands = None

    def __enter__(self) -> Self:
        """Begin a batch."""
        self.begin()
        return self

    def __exit__(self, exc_type: type[BaseException] | None, *_: object) -> None:
        """Send the batch on clean exit, discard it if the block raised."""
        if exc_type is not None:
            self.abort()
            return
        self.end()
