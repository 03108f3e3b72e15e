"""Import-time module substitution.

While a ModuleMocker is installed it sits in front of ``builtins.__import__``:
an ``import`` (or ``from ... import``) of a mocked name yields the
replacement instead of the real module. ``require`` gives the same answer
for code that imports by string.

Example:
    >>> mock_module("payments.gateway", FakeGateway())
    >>> from payments.gateway import charge   # FakeGateway().charge
    >>> unmock_module()
"""

from __future__ import annotations

import builtins
import importlib
import importlib.util
import logging
import sys
import types
from collections.abc import Callable, Mapping
from typing import Any

from loopmock.errors import InvalidArgumentError, ModuleMockError

logger = logging.getLogger(__name__)


class ModuleStub:
    """A mock whose value is produced per import by ``factory(name)``."""

    def __init__(self, factory: Callable[[str], Any]) -> None:
        self.factory = factory


def resolve_name(name: str, package: str | None = None) -> str:
    """Canonical module id for ``name``: relative names resolve against ``package``."""
    if name.startswith(".") and package:
        try:
            return importlib.util.resolve_name(name, package)
        except (ImportError, ValueError):
            return name
    return name


class ModuleMocker:
    """Installation context for module mocks.

    Dotted names take effect for ``from a.b import x`` and
    ``require("a.b")``; a bare ``import a.b`` still binds the real
    top-level package.
    """

    def __init__(self) -> None:
        self.mocks: dict[str, Any] = {}
        self.installed = False
        self._original_import: Callable[..., Any] | None = None

    def add(self, name: str, replacement: Any, package: str | None = None) -> None:
        if not name:
            raise ModuleMockError("module name required")
        resolved = resolve_name(name, package)
        self.mocks[resolved] = replacement
        logger.debug("mocking module %s", resolved)
        self.install()

    def remove(self, name: str, package: str | None = None) -> None:
        self.mocks.pop(resolve_name(name, package), None)

    def is_mocked(self, name: str, package: str | None = None) -> bool:
        return resolve_name(name, package) in self.mocks

    def lookup(self, name: str) -> Any:
        replacement = self.mocks[name]
        if isinstance(replacement, ModuleStub):
            return replacement.factory(name)
        return replacement

    def install(self) -> ModuleMocker:
        if self.installed:
            return self
        self._original_import = builtins.__import__
        builtins.__import__ = self._import
        self.installed = True
        return self

    def uninstall(self) -> ModuleMocker:
        """Remove the import hook and forget every mock."""
        if self.installed:
            builtins.__import__ = self._original_import
            self._original_import = None
            self.installed = False
        self.mocks.clear()
        return self

    def _import(
        self,
        name: str,
        globals: Mapping[str, Any] | None = None,
        locals: Mapping[str, Any] | None = None,
        fromlist: Any = (),
        level: int = 0,
    ) -> Any:
        resolved = name
        if level > 0:
            package = globals.get("__package__") if globals else None
            resolved = resolve_name("." * level + name, package)
        if resolved in self.mocks and (fromlist or "." not in resolved):
            return self.lookup(resolved)
        return self._original_import(name, globals, locals, fromlist, level)

    def require(self, name: str, package: str | None = None) -> Any:
        resolved = resolve_name(name, package)
        if resolved in self.mocks:
            return self.lookup(resolved)
        return importlib.import_module(name, package)


_mocker = ModuleMocker()


def mock_module(name: str, replacement: Any, package: str | None = None) -> None:
    """Make imports of ``name`` yield ``replacement``."""
    _mocker.add(name, replacement, package)


def mock_module_stub(name: str, factory: Callable[[str], Any] | None, package: str | None = None) -> None:
    """Make each import of ``name`` yield ``factory(name)``."""
    if factory is None or not callable(factory):
        raise InvalidArgumentError("factory required", module=name)
    _mocker.add(name, ModuleStub(factory), package)


def unmock_module(name: str | None = None, package: str | None = None) -> None:
    """Drop the mock for ``name``, or without a name remove the hook and all mocks."""
    if name:
        _mocker.remove(name, package)
    else:
        _mocker.uninstall()


def require(name: str, package: str | None = None) -> Any:
    """Import ``name`` by string, honouring active mocks."""
    return _mocker.require(name, package)


def unload(name: str, package: str | None = None) -> bool:
    """Forget a loaded module as if it had never been imported.

    The module is dropped from ``sys.modules`` and unlinked from every
    loaded package that holds it as an attribute, so the next import loads
    it afresh. Returns False if it was not loaded.
    """
    resolved = resolve_name(name, package)
    module = sys.modules.pop(resolved, None)
    if module is None:
        return False

    visited: set[int] = set()
    stack = [m for m in list(sys.modules.values()) if _is_package(m)]
    while stack:
        holder = stack.pop()
        if id(holder) in visited:
            continue
        visited.add(id(holder))
        for attr, value in list(vars(holder).items()):
            if value is module:
                delattr(holder, attr)
            elif _is_package(value) and id(value) not in visited:
                stack.append(value)

    logger.debug("unloaded module %s", resolved)
    return True


def _is_package(value: Any) -> bool:
    return isinstance(value, types.ModuleType) and hasattr(value, "__path__")


def module_mocker() -> ModuleMocker:
    return _mocker
