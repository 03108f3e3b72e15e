"""The request object handed to caller code while HTTP is mocked."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from loopmock.errors import InvalidArgumentError
from loopmock.runtime.client import ClientRequest, IncomingResponse, RequestOptions, to_bytes

logger = logging.getLogger(__name__)

WriteEntry = tuple[Any, str | None]


class MockClientRequest(ClientRequest):
    """A ClientRequest that never opens a connection.

    Writes are captured in ``mock_writes`` as ``(chunk, encoding)`` pairs;
    ``end()`` appends a ``None`` sentinel. Every capture is announced with a
    ``mock_write`` event so the route handler can wait for the end of the
    body.

    Extra events:
        mock_write(chunk, encoding): a chunk (or the None sentinel) was captured
        mock_response(response): the response is being delivered
        mock_response_done(response): the scripted pipeline has finished
    """

    def __init__(
        self,
        options: RequestOptions,
        callback: Callable[[IncomingResponse], Any] | None = None,
    ) -> None:
        super().__init__(options, callback)
        self.mock_writes: list[WriteEntry | None] = []
        self.response_delivered = False
        self.response_deferred = False

    @property
    def write_ended(self) -> bool:
        return bool(self.mock_writes) and self.mock_writes[-1] is None

    @property
    def body(self) -> bytes:
        """The request body captured so far."""
        return b"".join(to_bytes(chunk, encoding) for chunk, encoding in self._entries())

    def _entries(self) -> list[WriteEntry]:
        return [entry for entry in self.mock_writes if entry is not None]

    def write(self, chunk: Any, encoding: str | None = None) -> bool:
        if chunk is None:
            raise InvalidArgumentError("write() chunk must not be None; call end() instead")
        if self.destroyed or self.finished:
            return False
        self.mock_writes.append((chunk, encoding))
        self.emit("mock_write", chunk, encoding)
        return True

    def end(self, chunk: Any = None, encoding: str | None = None) -> MockClientRequest:
        if self.finished or self.destroyed:
            return self
        if chunk is not None:
            self.write(chunk, encoding)
        self.finished = True
        self.mock_writes.append(None)
        self.emit("mock_write", None, None)
        return self

    def defer_response(self) -> None:
        """Stop the pipeline from delivering the response after the before phase."""
        self.response_deferred = True

    def deliver_response(self, response: IncomingResponse) -> bool:
        """Hand ``response`` to the caller's callback; only the first call counts."""
        if self.response_delivered:
            return False
        if self.destroyed:
            logger.debug("not delivering response to aborted request %s", self.url)
            return False
        self.response_delivered = True
        self.emit("mock_response", response)
        self.emit("response", response)
        return True

    def _discard(self) -> None:
        self.mock_writes.clear()
