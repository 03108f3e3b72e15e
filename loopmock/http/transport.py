"""httpx adapter for route tables."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import httpx

from loopmock.http.proxy import MockClientRequest
from loopmock.runtime.client import IncomingResponse, RequestOptions

logger = logging.getLogger(__name__)


class RouteTransport(httpx.AsyncBaseTransport):
    """Feed ``httpx`` requests through a route handler.

    The httpx response is built once the scripted body has ended, so the
    whole body is available when the client sees the response. Errors
    emitted on the mock request are raised from the client call. Phase
    transitions go through the installed timers; with a virtual clock
    installed something has to keep advancing it.
    """

    def __init__(self, handler: Callable[[MockClientRequest, IncomingResponse], None]) -> None:
        self._handler = handler

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        body = await request.aread()
        options = RequestOptions.build(
            str(request.url),
            method=request.method,
            headers=dict(request.headers.items()),
        )
        mock_request = MockClientRequest(options)
        mock_response = IncomingResponse()
        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def on_end() -> None:
            if not done.done():
                done.set_result(None)

        def on_error(error: BaseException) -> None:
            if not done.done():
                done.set_exception(error)

        mock_response.on("end", on_end)
        mock_request.on("error", on_error)

        if body:
            mock_request.write(body)
        mock_request.end()
        self._handler(mock_request, mock_response)

        await done
        logger.debug("transport answered %s %s with %s", request.method, request.url, mock_response.status_code)
        return httpx.Response(
            status_code=mock_response.status_code or 200,
            headers=mock_response.headers,
            content=mock_response.content,
            request=request,
        )
