"""Tests unitaires: taskbridge.registry.registry (résolution et invocation)."""

from __future__ import annotations

import os

import pytest

from taskbridge.core.exceptions import CommandNotFoundError, InvalidInvocationError
from taskbridge.registry import Argument, Command, CommandRegistry, Option


def _recorder(calls):
    def handler(arguments, options):
        calls.append((arguments, options))
        print("ran")
        return 0

    return handler


def _make_command(calls, **overrides):
    fields = dict(
        name="build",
        handler=_recorder(calls),
        arguments=(
            Argument("target", required=True),
            Argument("extra", kind="array"),
        ),
        options=(
            Option("force", shortcut="f"),
            Option("jobs", kind="string", required=True, default="1", shortcut="j"),
            Option("define", kind="array", required=True),
        ),
        aliases=("b",),
    )
    fields.update(overrides)
    return Command(**fields)


@pytest.mark.unit
def test_find_command_by_name_then_alias():
    calls = []
    build = _make_command(calls)
    registry = CommandRegistry([build, Command(name="b", handler=_recorder(calls))])

    assert registry.find_command("build") is build
    # Le nom exact gagne sur l'alias
    assert registry.find_command("b").name == "b"


@pytest.mark.unit
def test_duplicate_names_resolve_to_first_registered(caplog):
    first = Command(name="dup", handler=lambda a, o: 0, description="first")
    second = Command(name="dup", handler=lambda a, o: 0, description="second")
    registry = CommandRegistry([first, second])

    assert registry.find_command("dup") is first
    assert len(registry.list_commands()) == 2
    assert "dup" in caplog.text


@pytest.mark.unit
def test_find_command_unknown_raises():
    with pytest.raises(CommandNotFoundError) as exc_info:
        CommandRegistry().find_command("nope")
    assert exc_info.value.name == "nope"
    assert exc_info.value.message == 'Command "nope" is not defined.'


@pytest.mark.unit
def test_invoke_applies_defaults_and_captures_output():
    calls = []
    registry = CommandRegistry()
    command = registry.add(_make_command(calls))

    output, status = registry.invoke(command, {"target": "app"}, {})

    assert (output, status) == ("ran\n", 0)
    assert calls == [
        (
            {"target": "app", "extra": []},
            {"force": False, "jobs": "1", "define": []},
        )
    ]


@pytest.mark.unit
def test_invoke_normalizes_flags_shortcuts_and_arrays():
    calls = []
    registry = CommandRegistry()
    command = registry.add(_make_command(calls))

    registry.invoke(command, {"target": "app", "extra": "one"}, {"f": None, "j": "4", "define": "A=1"})

    assert calls[-1] == (
        {"target": "app", "extra": ["one"]},
        {"force": True, "jobs": "4", "define": ["A=1"]},
    )


@pytest.mark.unit
@pytest.mark.parametrize(
    ("arguments", "options", "message"),
    [
        ({}, {}, 'Not enough arguments (missing: "target").'),
        ({"target": "x", "bogus": 1}, {}, 'The "bogus" argument does not exist.'),
        ({"target": "x"}, {"nope": None}, 'The "--nope" option does not exist.'),
        ({"target": "x"}, {"force": "yes"}, 'The "--force" option does not accept a value.'),
        ({"target": "x"}, {"define": None}, 'The "--define" option requires a value.'),
    ],
)
def test_invoke_rejects_invalid_payload(arguments, options, message):
    calls = []
    registry = CommandRegistry()
    command = registry.add(_make_command(calls))

    with pytest.raises(InvalidInvocationError) as exc_info:
        registry.invoke(command, arguments, options)
    assert exc_info.value.message == message
    assert calls == []


@pytest.mark.unit
def test_optional_value_option_given_as_flag_uses_default():
    calls = []
    registry = CommandRegistry()
    command = registry.add(
        _make_command(calls, options=(Option("jobs", kind="string", default="2"),))
    )

    registry.invoke(command, {"target": "x"}, {"jobs": None})
    assert calls[-1][1] == {"jobs": "2"}


@pytest.mark.unit
@pytest.mark.parametrize(
    ("result", "expected_output", "expected_status"),
    [
        (None, "", 0),
        (True, "", 0),
        (5, "", 5),
        (SystemExit(2), "", 2),
        (SystemExit(None), "", 0),
        (SystemExit("fatal"), "fatal\n", 1),
    ],
)
def test_exit_status_normalization(result, expected_output, expected_status):
    def handler(arguments, options):
        if isinstance(result, SystemExit):
            raise result
        return result

    registry = CommandRegistry()
    command = registry.add(Command(name="status", handler=handler))
    assert registry.invoke(command) == (expected_output, expected_status)


@pytest.mark.unit
def test_handler_exceptions_propagate():
    def handler(arguments, options):
        raise ValueError("bad")

    registry = CommandRegistry()
    command = registry.add(Command(name="bad", handler=handler))
    with pytest.raises(ValueError, match="bad"):
        registry.invoke(command)


@pytest.mark.unit
def test_invoke_without_capture_writes_to_stdout(capsys):
    calls = []
    registry = CommandRegistry()
    command = registry.add(_make_command(calls))

    output, status = registry.invoke(command, {"target": "x"}, {}, capture=False)

    assert (output, status) == ("", 0)
    assert capsys.readouterr().out == "ran\n"


@pytest.mark.unit
def test_invoke_captures_file_descriptor_output(capfd):
    def handler(arguments, options):
        print("py")
        os.write(1, b"raw\n")
        return 0

    registry = CommandRegistry()
    command = registry.add(Command(name="mixed", handler=handler))

    assert registry.invoke(command) == ("py\nraw\n", 0)
    assert capfd.readouterr().out == ""
