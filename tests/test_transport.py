"""Tests for driving route tables from httpx and from real timers."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from loopmock.errors import NoRouteMatchedError, ScriptedThrowError
from loopmock.http import RouteTable
from loopmock.runtime import http as runtime_http
from loopmock.runtime.client import IncomingResponse


class TestRouteTransport:
    @pytest.mark.asyncio
    async def test_serves_route(self) -> None:
        routes = RouteTable()
        routes.when("GET:http://api.local/ping").write_head(200, {"Content-Type": "text/plain"}).end("pong")

        async with httpx.AsyncClient(transport=routes.async_transport()) as client:
            response = await client.get("http://api.local/ping")

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/plain"
        assert response.text == "pong"

    @pytest.mark.asyncio
    async def test_request_body_and_json(self) -> None:
        routes = RouteTable()
        routes.when("POST:/api/users").send(201, {"created": True})

        async with httpx.AsyncClient(transport=routes.async_transport()) as client:
            response = await client.post("http://api.local/api/users", json={"name": "Ada"})

        assert response.status_code == 201
        assert response.json() == {"created": True}
        record = routes.get_last_call("POST:/api/users")
        assert record is not None
        assert json.loads(record.body) == {"name": "Ada"}
        assert record.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_delay_uses_real_timers(self) -> None:
        routes = RouteTable()
        routes.when("/slow").delay(5).send(200, "late")

        async with httpx.AsyncClient(transport=routes.async_transport()) as client:
            response = await client.get("http://api.local/slow")

        assert response.text == "late"

    @pytest.mark.asyncio
    async def test_unmatched_request_raises(self) -> None:
        routes = RouteTable()

        async with httpx.AsyncClient(transport=routes.async_transport()) as client:
            with pytest.raises(NoRouteMatchedError):
                await client.get("http://api.local/missing")

    @pytest.mark.asyncio
    async def test_scripted_throw_raises(self) -> None:
        routes = RouteTable()
        routes.when("/broken").throw("connection refused")

        async with httpx.AsyncClient(transport=routes.async_transport()) as client:
            with pytest.raises(ScriptedThrowError, match="connection refused"):
                await client.get("http://api.local/broken")


class TestInterceptedRuntimeOnLoop:
    @pytest.mark.asyncio
    async def test_response_through_real_timers(self, http_mock: RouteTable) -> None:
        http_mock.when("/later").delay(5).send(200, "done")
        loop = asyncio.get_running_loop()
        delivered: asyncio.Future[IncomingResponse] = loop.create_future()

        runtime_http.get("http://localhost/later", delivered.set_result)
        response = await asyncio.wait_for(delivered, 1)
        body = await asyncio.wait_for(response.aread(), 1)

        assert body == b"done"
        assert response.status_code == 200
        assert response.ended

    @pytest.mark.asyncio
    async def test_data_events_on_loop(self, http_mock: RouteTable) -> None:
        http_mock.when("/chunks").write("one,").delay(2).end("two")
        loop = asyncio.get_running_loop()
        finished: asyncio.Future[None] = loop.create_future()
        chunks: list[str] = []

        def on_response(res: IncomingResponse) -> None:
            res.set_encoding("utf-8")
            res.on("data", chunks.append)
            res.on("end", lambda: finished.set_result(None))

        runtime_http.get("http://localhost/chunks", on_response)
        await asyncio.wait_for(finished, 1)

        assert chunks == ["one,", "two"]
