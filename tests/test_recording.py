"""Tests for spies, stubs, expectations and verification."""

from __future__ import annotations

import re
import types
from typing import Any

import pytest

from loopmock.config import configure
from loopmock.errors import InvalidArgumentError
from loopmock.http import RouteTable
from loopmock.recording import (
    MockRegistry,
    MockVerifier,
    Spy,
    VerificationError,
    call_callback,
    in_order,
    on_consecutive_calls,
    raise_error,
    return_argument,
    return_self,
    return_value,
    spy,
    stub,
    verify_call_count,
    verify_called,
    verify_called_with,
    verify_not_called,
)
from loopmock.runtime import http as runtime_http
from loopmock.timers import VirtualClock


class Greeter:
    def __init__(self, name: str) -> None:
        self.name = name

    def greet(self, other: str) -> str:
        return f"{self.name} greets {other}"

    def fetch(self, key: str, callback: Any) -> None:
        callback(None, key)


class TestSpy:
    def test_records_calls_and_passes_through(self) -> None:
        wrapped = Spy(lambda a, b=0: a + b)

        assert wrapped(1, b=2) == 3
        assert wrapped.invoke(5) == 5

        assert wrapped.call_count == 2
        assert wrapped.called
        assert not wrapped.called_once
        assert wrapped.get_call(0).args == (1,)
        assert wrapped.get_call(0).kwargs == {"b": 2}
        assert wrapped.get_call(0).returned == 3
        assert wrapped.last_args == (5,)
        assert wrapped.last_return == 5
        assert wrapped.called_with(1, b=2)
        assert not wrapped.called_with(1)

    def test_spy_without_inner_returns_none(self) -> None:
        empty = Spy()
        assert empty("anything") is None
        assert empty.called_once

    def test_scripted_returns_and_once_precedence(self) -> None:
        scripted = Spy(lambda: "real").returns("always").returns_once("first").returns_once("second")

        assert [scripted(), scripted(), scripted()] == ["first", "second", "always"]

        scripted.passthrough()
        assert scripted() == "real"

    def test_raises_records_error(self) -> None:
        error = ValueError("nope")
        failing = Spy().raises(error)

        with pytest.raises(ValueError):
            failing(1)

        assert failing.last_error is error
        assert failing.get_call(0).error is error
        assert failing.call_count == 1

    def test_raises_once_then_recovers(self) -> None:
        flaky = Spy(lambda: "ok").raises_once(TimeoutError("slow"))
        with pytest.raises(TimeoutError):
            flaky()
        assert flaky() == "ok"
        assert flaky.last_error is None

    def test_yields_calls_last_callable(self) -> None:
        results: list[tuple[Any, Any]] = []
        loader = Spy().yields(None, "data")

        loader("key", lambda err, value: results.append((err, value)))

        assert results == [(None, "data")]
        assert loader.get_call(0).callbacks == [(None, "data")]

    def test_yields_callable_keyword(self) -> None:
        results: list[str] = []
        loader = Spy().yields_once("kw")
        loader("key", done=results.append)
        assert results == ["kw"]

    def test_yields_without_callable_fails(self) -> None:
        with pytest.raises(InvalidArgumentError):
            Spy().yields(1)("no callback here")

    def test_save_limit_bounds_records(self) -> None:
        limited = Spy(save_limit=2)
        for i in range(5):
            limited(i)

        assert limited.call_count == 5
        assert [call.args for call in limited.calls] == [(0,), (1,)]
        assert limited.last_args == (4,)

    def test_default_save_limit_from_settings(self) -> None:
        configure(record_limit=3)
        assert Spy().save_limit == 3

    def test_reset(self) -> None:
        counted = Spy()
        counted(1)
        counted.reset()
        assert counted.call_count == 0
        assert counted.calls == []
        assert counted.last_args is None


class TestStub:
    def test_stub_instance_method_and_restore(self) -> None:
        greeter = Greeter("ann")
        fake = stub(greeter, "greet").returns("hi")

        assert greeter.greet("bob") == "hi"
        assert fake.called_with("bob")

        fake.restore()
        fake.restore()
        assert greeter.greet("bob") == "ann greets bob"
        assert "greet" not in vars(greeter)

    def test_stub_with_replacement(self) -> None:
        config = types.SimpleNamespace(load=lambda: {"real": True})
        replaced = stub(config, "load", lambda: {"fake": True})

        assert config.load() == {"fake": True}
        replaced.restore()
        assert config.load() == {"real": True}

    def test_stub_on_class_binds_instance(self) -> None:
        with stub(Greeter, "greet", lambda self, other: f"{self.name} waves at {other}") as fake:
            assert Greeter("cy").greet("dee") == "cy waves at dee"
            assert fake.call_count == 1

        assert Greeter("cy").greet("dee") == "cy greets dee"

    def test_stub_of_missing_attribute_is_removed(self) -> None:
        target = types.SimpleNamespace()
        added = stub(target, "ping")
        assert target.ping() is None

        added.restore()
        assert not hasattr(target, "ping")

    def test_stub_requires_attribute_name(self) -> None:
        with pytest.raises(InvalidArgumentError):
            stub(Greeter("x"), "")

    def test_spy_on_attribute_passes_through(self) -> None:
        greeter = Greeter("eve")
        watched = spy(greeter, "greet")

        assert greeter.greet("fay") == "eve greets fay"
        assert watched.called_with("fay")
        watched.restore()

    def test_spy_requires_callable(self) -> None:
        with pytest.raises(InvalidArgumentError):
            spy(42)


class TestVerification:
    def test_spy_verification_helpers(self) -> None:
        tracked = Spy()
        verify_not_called(tracked)

        tracked("a", flag=True)
        tracked("b")

        verify_called(tracked)
        verify_call_count(tracked, times=2)
        verify_call_count(tracked, at_least=1, at_most=2)
        verify_called_with(tracked, "a", flag=True)

        with pytest.raises(VerificationError) as exc_info:
            verify_call_count(tracked, times=3)
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2

        with pytest.raises(VerificationError, match="last call had"):
            verify_called_with(tracked, "c")

        with pytest.raises(VerificationError):
            verify_not_called(tracked)

    def test_route_verification(self, http_mock: RouteTable, virtual_clock: VirtualClock) -> None:
        http_mock.when("POST:/api/users").send(201)
        http_mock.when(re.compile(r"/api/items/\d+")).send(200)

        runtime_http.request("http://localhost/api/users", method="POST", headers={"X-Token": "t"}).end()
        virtual_clock.advance(5)

        verify_called(http_mock, "POST:/api/users")
        verify_call_count(http_mock, "POST:/api/users", times=1)
        verify_not_called(http_mock, r"//api/items/\d+/")
        MockVerifier(http_mock).route("POST:/api/users").with_header("x-token", "t")

        with pytest.raises(VerificationError, match="No route specified"):
            verify_called(http_mock)

        with pytest.raises(VerificationError, match="Expected header"):
            MockVerifier(http_mock).route("POST:/api/users").with_header("X-Token", "other")

    def test_in_order(self) -> None:
        connect = Spy(name="connect")
        query = Spy(name="query")

        connect()
        query()
        in_order().add(connect).add(query).verify()

        with pytest.raises(VerificationError, match="query"):
            in_order().add(query).add(connect).add(query).add(query).verify()


class Database:
    def query(self, sql: str) -> list[Any]:
        return ["real", sql]

    def close(self) -> str:
        return "closed"


class TestExpectations:
    def test_times_and_will_return(self) -> None:
        db = Database()
        registry = MockRegistry()
        registry.expects(db, "query").times("twice").with_args("select 1").will_return([1])

        assert db.query("select 1") == [1]
        assert db.query("select 1") is None

        registry.verify()
        registry.restore()
        assert db.query("x") == ["real", "x"]

    def test_call_count_mismatch(self) -> None:
        db = Database()
        registry = MockRegistry()
        registry.expects(db, "close", "once")

        with pytest.raises(VerificationError, match="called 0 times, expected 1"):
            registry.verify()
        registry.restore()

    def test_wrong_arguments_fail_at_call(self) -> None:
        db = Database()
        registry = MockRegistry()
        registry.expects(db, "query").with_args("a").with_args("b")

        db.query("a")
        db.query("b")
        db.query("b")
        with pytest.raises(VerificationError, match="wrong arguments"):
            db.query("c")
        registry.restore()

    def test_consecutive_values_and_behaviours(self) -> None:
        db = Database()
        registry = MockRegistry()
        registry.expects(db, "query").on_consecutive_calls(1, 2).will(return_argument(0)).will(return_self())

        assert db.query("q") == 1
        assert db.query("q") == 2
        assert db.query("arg") == "arg"
        assert db.query("q") is db
        registry.restore()

    def test_consecutive_group_and_callbacks(self) -> None:
        db = Database()
        fired: list[str] = []
        registry = MockRegistry()
        (
            registry.method(db, "query")
            .will(on_consecutive_calls("a", "b"))
            .will(call_callback(fired.append, "cb"))
            .will(raise_error(KeyError("gone")))
            .will(return_value("last"))
        )

        assert [db.query("1"), db.query("2")] == ["a", "b"]
        db.query("3")
        assert fired == ["cb"]
        with pytest.raises(KeyError):
            db.query("4")
        assert db.query("5") == "last"
        registry.restore()

    def test_real_method_runs_without_script(self) -> None:
        db = Database()
        registry = MockRegistry()
        expectation = registry.expects(db, "query", 1)

        assert db.query("live") == ["real", "live"]
        assert expectation.call_count == 1
        registry.verify()
        registry.restore()

    def test_class_level_expectation_binds_instance(self) -> None:
        registry = MockRegistry()
        registry.expects(Database, "close", "twice")

        assert Database().close() == "closed"
        assert Database().close() == "closed"
        registry.verify()
        registry.restore()

        assert "close" in vars(Database)
        assert Database().close() == "closed"

    def test_never(self) -> None:
        db = Database()
        with pytest.raises(VerificationError):
            with MockRegistry() as registry:
                registry.expects(db, "close", "never")
                db.close()
        assert db.close() == "closed"

    def test_unknown_count(self) -> None:
        with pytest.raises(InvalidArgumentError):
            MockRegistry().expects(Database(), "close", "sometimes")

    def test_registry_fixture(self, mock_registry: MockRegistry) -> None:
        db = Database()
        mock_registry.expects(db, "close", "once").will_return("mocked")
        assert db.close() == "mocked"
