"""Tests for command classification, dispatch and the CLI host."""

import logging
import sys

import pytest

from calcbot import config
from calcbot.app import run_cli_mode
from calcbot.command import UNRECOGNIZED_COMMAND, CommandKind, classify, execute
from calcbot.evaluator import Evaluator


@pytest.fixture
def evaluator():
    return Evaluator()


@pytest.mark.parametrize(
    "command, kind",
    [
        ("hello", CommandKind.KEYWORD),
        ("HeLp", CommandKind.KEYWORD),
        ("author", CommandKind.KEYWORD),
        ("x = 1", CommandKind.EQUATION),
        ("x = 1 + 2", CommandKind.EQUATION),
        ("1 + 2", CommandKind.EXPRESSION),
        ("-a", CommandKind.EXPRESSION),
        ("a", CommandKind.VARIABLE),
        ("Z", CommandKind.VARIABLE),
        ("fakecommand", CommandKind.UNRECOGNIZED),
        ("42", CommandKind.UNRECOGNIZED),
    ],
)
def test_classify(command, kind):
    assert classify(command) is kind


def test_keywords(evaluator):
    assert execute("hello", "bill", evaluator) == "world"
    assert execute("  Hello ", "bill", evaluator) == "world"
    assert execute("author", "bill", evaluator) == config.AUTHOR
    assert "Commands" in execute("help", "bill", evaluator)


def test_unknown_command(evaluator):
    assert execute("fakecommand", "bill", evaluator) == UNRECOGNIZED_COMMAND
    assert execute("fakecommand", "bill", evaluator).startswith("Error")


def test_assign_and_use_variables(evaluator):
    assert execute("a = 5", "bill", evaluator) == "a = 5"
    assert execute("a", "bill", evaluator) == "5"
    assert execute("a * 2", "bill", evaluator) == "10"
    assert execute("a", "matt", evaluator) == "Error: Variable is not defined"


def test_errors_become_messages(evaluator):
    assert execute("1 / 0", "bill", evaluator) == "Error: Cannot divide by zero"
    assert execute("abc + 1", "bill", evaluator) == "Error: Invalid variable name"
    assert execute("4 * (7 - 5", "bill", evaluator) == "Error: Mismatched parentheses"
    # No error class names such as "SyntaxError:" in front of the message
    assert execute("1 1 + 2", "bill", evaluator) == "Error: Missing operator"
    assert execute("a = x", "bill", evaluator) == "Error: Value is not a number"


def test_errors_are_logged(evaluator, caplog):
    with caplog.at_level(logging.WARNING, logger="calcbot.command"):
        execute("1 / 0", "bill", evaluator)
    assert "Cannot divide by zero" in caplog.text


def test_errors_are_not_logged_when_disabled(evaluator, caplog):
    with caplog.at_level(logging.WARNING, logger="calcbot.command"):
        execute("1 / 0", "bill", evaluator, log_errors=False)
        execute("fakecommand", "bill", evaluator, log_errors=False)
    assert caplog.records == []


def fake_input(lines):
    remaining = iter(lines)

    def read(prompt=""):
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError

    return read


def test_cli_session(evaluator, capsys):
    lines = ["hello", "", "a = 2", "a * 3", "vars", "1 +", "exit", "never read"]

    run_cli_mode(["--no-history", "--account", "tester"], evaluator, input_func=fake_input(lines))

    output = capsys.readouterr().out.splitlines()
    assert "world" in output
    assert "a = 2" in output
    assert "6" in output
    assert "Current variables:" in output
    assert "Error: Invalid operator placement" in output
    assert "never read" not in output
    # Leaving the CLI drops the account's variables
    assert evaluator.store.variables("tester") == {}


def test_cli_without_readline(evaluator, capsys, monkeypatch):
    monkeypatch.setitem(sys.modules, "readline", None)

    run_cli_mode(["--no-history"], evaluator, input_func=fake_input(["1 + 1"]))

    output = capsys.readouterr().out
    assert "readline is not available" in output
    assert "pyreadline3" not in output
    assert "2" in output.splitlines()


def test_cli_ends_on_eof(evaluator, capsys):
    run_cli_mode(["--no-history"], evaluator, input_func=fake_input(["vars"]))

    output = capsys.readouterr().out
    assert "No variables defined." in output
    assert "Goodbye!" in output
