import enum
import logging
import re

from calcbot import config
from calcbot.errors import CalcError
from calcbot.evaluator import Evaluator, format_number

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "\nCommands:\n"
    "hello\n    Output \"world\"\n"
    "author\n    Output author name\n"
    "help\n    Output this help message\n"
    "\nThis bot can also perform basic mathematical calculations "
    "(exponents are not supported). Variables may be assigned using "
    "the format:\nx = 1\nVariable names may consist of a single "
    "letter and are case sensitive. Variables may also be used in "
    "calculations. For example:\na = 1\nb = 2\n2 * (a+b)\n-> 6"
)

UNRECOGNIZED_COMMAND = "Error: Unrecognized command"

OPERATOR_PATTERN = re.compile(r"[+\-*/]")
VARIABLE_PATTERN = re.compile(r"[a-zA-Z]")


class CommandKind(enum.Enum):
    KEYWORD = enum.auto()
    EQUATION = enum.auto()
    EXPRESSION = enum.auto()
    VARIABLE = enum.auto()
    UNRECOGNIZED = enum.auto()


def keyword_reply(keyword: str) -> str:
    return {
        "hello": "world",
        "author": config.AUTHOR,
        "help": HELP_TEXT,
    }[keyword.lower()]


def classify(command: str) -> CommandKind:
    """Decides how a stripped command is handled. Keywords are case insensitive."""
    if command.lower() in ("hello", "author", "help"):
        return CommandKind.KEYWORD
    if "=" in command:
        return CommandKind.EQUATION
    if OPERATOR_PATTERN.search(command):
        return CommandKind.EXPRESSION
    if VARIABLE_PATTERN.fullmatch(command):
        return CommandKind.VARIABLE
    return CommandKind.UNRECOGNIZED


def execute(command: str, account: str, evaluator: Evaluator, log_errors: bool = True) -> str:
    """Executes a command and returns the text to show to the user.

    Errors never escape: they are returned as ``"Error: <message>"`` so the
    host keeps running.
    """
    command = command.strip()
    kind = classify(command)

    try:
        if kind is CommandKind.KEYWORD:
            return keyword_reply(command)
        elif kind is CommandKind.EQUATION:
            return evaluator.evaluate_equation(command, account)
        elif kind is CommandKind.EXPRESSION:
            return evaluator.evaluate_expression(command, account)
        elif kind is CommandKind.VARIABLE:
            return format_number(evaluator.get_variable(command, account))
    except CalcError as e:
        if log_errors:
            logger.warning(f"Account {account}: command '{command}' failed: {e}")
        return f"Error: {e}"

    if log_errors:
        logger.warning(f"Account {account}: unrecognized command '{command}'")
    return UNRECOGNIZED_COMMAND
