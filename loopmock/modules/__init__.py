"""Module mocking: substitute imports and unload cached modules."""

from loopmock.modules.mocker import (
    ModuleMocker,
    ModuleStub,
    mock_module,
    mock_module_stub,
    module_mocker,
    require,
    resolve_name,
    unload,
    unmock_module,
)

__all__ = [
    "ModuleMocker",
    "ModuleStub",
    "mock_module",
    "mock_module_stub",
    "module_mocker",
    "require",
    "resolve_name",
    "unload",
    "unmock_module",
]
