from __future__ import annotations

import pytest

from modal_engine.commands import (
    DEFAULT_COMMANDS,
    CommandRef,
    CommandRegistry,
    load_default_commands,
)


def make_command(command_id: str) -> CommandRef:
    return CommandRef(id=command_id, handler=lambda engine, args: None)


def test_register_and_lookup() -> None:
    registry = CommandRegistry()
    command = registry.register(make_command("test.one"))

    assert registry.get("test.one") is command
    assert "test.one" in registry
    assert registry.ids() == ("test.one",)


def test_duplicate_registration_requires_replace() -> None:
    registry = CommandRegistry()
    registry.register(make_command("test.one"))

    with pytest.raises(ValueError):
        registry.register(make_command("test.one"))

    replacement = make_command("test.one")
    registry.register(replacement, replace=True)
    assert registry.get("test.one") is replacement


def test_unregister() -> None:
    registry = CommandRegistry()
    registry.register(make_command("test.one"))

    assert registry.unregister("test.one") is not None
    assert registry.get("test.one") is None
    assert registry.unregister("test.one") is None


def test_command_ref_validation() -> None:
    with pytest.raises(ValueError):
        make_command("")
    with pytest.raises(TypeError):
        CommandRef(id="x", handler="not callable")  # type: ignore[arg-type]


def test_default_commands_cover_the_modal_namespace() -> None:
    registry = load_default_commands(CommandRegistry())

    assert set(registry.ids()) == {command.id for command in DEFAULT_COMMANDS}
    assert {
        "modal.search",
        "modal.acceptSearch",
        "modal.cancelSearch",
        "modal.deleteCharFromSearch",
        "modal.nextMatch",
        "modal.previousMatch",
        "modal.toggle",
        "modal.enterNormal",
        "modal.enterInsert",
        "modal.toggleSelection",
        "modal.cancelSelection",
        "modal.defineBookmark",
        "modal.goToBookmark",
    } <= set(registry.ids())


def test_default_commands_can_be_filtered() -> None:
    registry = load_default_commands(
        CommandRegistry(),
        include=["modal.search", "modal.toggle"],
        exclude=["modal.toggle"],
    )

    assert registry.ids() == ("modal.search",)
