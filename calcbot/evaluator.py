"""String-rewriting evaluator for arithmetic expressions and equations.

Expressions are never tokenized. Each step finds a single operation with a
regular expression, computes it and substitutes the result back into the
string until only a number is left. Parenthesized groups are reduced first,
innermost (last opened) first, then ``*`` and ``/`` from left to right, then
``+`` and ``-`` from left to right.
"""

import logging
import math
import re
from decimal import Decimal
from typing import Optional

from calcbot.errors import CalcError, ErrorKind
from calcbot.variables import VariableStore

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT = "default"

# Precedence classes, highest first
ORDER_OF_OPERATIONS = ("*/", "+-")

# --- Number Patterns ---
# Numbers may be written as 1, 1.0, 0.1 or .1
# A minus sign belongs to a number when there is no space between them and
# it is preceded by another operator or by nothing at all. That preceding
# operator is captured with the first operand and get_result() puts it back
# in front of the result.
FIRST_OPERAND = r"((?:(?:^|[*/+\-] *)-)?(?:\d+(?:\.\d+)?)|(?:\.\d+))"
SECOND_OPERAND = r"(-?(?:\d+(?:\.\d+)?)|(?:\.\d+))"

# The prefix group must be lazy, otherwise it takes the number's own minus sign
OPERAND_PREFIX_PATTERN = re.compile(r"([*/+\-] *)??(-?(?:\d+(?:\.\d+)?)|(?:\.\d+))", re.ASCII)
NEGATIVE_NUMBER_PATTERN = re.compile(r"(?:^|[*/+\-] *)-(?:(?:\d+(?:\.\d+)?)|(?:\.\d+))", re.ASCII)
DOUBLE_NEGATIVE_PATTERN = re.compile(r"^(- *-)((?:\d+(?:\.\d+)?)|(?:\.\d+))\Z", re.ASCII)

# --- Validation Rules ---
# Checked in order; the first matching rule decides the error.
RAW_EXPRESSION_RULES = [
    # A negative number alone is not an expression, but negating a variable
    # is, so this runs before variable substitution
    (re.compile(r"^-(?:(?:\d+(?:\.\d+)?)|(?:\.\d+))\Z", re.ASCII), ErrorKind.MISSING_OPERATOR),
    # Variables are a single letter with no letter, digit or dot touching it
    (re.compile(r"[a-zA-Z\d.]+[a-zA-Z]|[a-zA-Z][a-zA-Z\d.]+", re.ASCII), ErrorKind.INVALID_VARIABLE_NAME),
]

EXPRESSION_RULES = [
    # Only ()0123456789.+-*/ and space, no exponents
    (re.compile(r"[^()\d.+\-*/ ]|\A\Z", re.ASCII), ErrorKind.INVALID_CHARACTER),
    # "1." has no digit after the dot, "1.1.1" has two dots
    (re.compile(r"\.(?:[().+\-*/ ]|\Z)|\.\d+\.", re.ASCII), ErrorKind.INVALID_NUMBER_FORMAT),
    # Numbers and parentheses with nothing between them
    (re.compile(r"(?:(?:\)|\d)[. ]*\()|(?:\)[. ]*\d)|(?:\d +(?:\.|\d))", re.ASCII), ErrorKind.MISSING_OPERATOR),
    # Operators next to each other, except a minus sign before a number (5 - -1)
    (re.compile(r"(?:[*/+\-] *[*/+])|(?:[*/+\-] *-(?!\.?\d))", re.ASCII), ErrorKind.INVALID_OPERATOR_PLACEMENT),
    # Operator first (except minus) or last, overall or inside parentheses
    (re.compile(r"(?:(?:^|\() *[*/+])|(?:[*/+\-] *(?:\)|\Z))", re.ASCII), ErrorKind.INVALID_OPERATOR_PLACEMENT),
]

# --- Equation Patterns ---
EXPRESSION_OPERATOR_PATTERN = re.compile(r"[+\-*/]")
NEGATIVE_VALUE_PATTERN = re.compile(r"-(?:(?:\d+(?:\.\d+)*)|(?:\.\d+))", re.ASCII)
# A right side written as a plain number, with ASCII digits only
DIRECT_VALUE_PATTERN = re.compile(r"-?(?:(?:\d+(?:\.\d+)*)|(?:\.\d+))", re.ASCII)


def format_number(value: float) -> str:
    """Renders a result the way it is substituted back into an expression.

    Values from 1e-7 up to 1e21 are written without an exponent, e.g.
    ``0.00001`` rather than ``1e-05``, using the shortest digits that
    round-trip. Anything else falls back to ``repr``.
    """
    if not math.isfinite(value):
        return repr(value)
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    if 1e-7 <= abs(value) < 1e21:
        return format(Decimal(repr(value)), "f")
    return repr(value)


def _to_number(text: str) -> Optional[float]:
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def calc(operand1: str, operator: str, operand2: str) -> float:
    """Calculates a single operation on two operands given as text.

    Raises:
        CalcError: NOT_A_NUMBER for an operand that cannot be parsed,
            DIVIDE_BY_ZERO for division by zero.
    """
    op1 = _to_number(operand1)
    if op1 is None:
        raise CalcError(ErrorKind.NOT_A_NUMBER, operand1)
    op2 = _to_number(operand2)
    if op2 is None:
        raise CalcError(ErrorKind.NOT_A_NUMBER, operand2)

    if operator == "+":
        return op1 + op2
    elif operator == "-":
        return op1 - op2
    elif operator == "*":
        return op1 * op2
    elif operator == "/":
        if op2 == 0:
            raise CalcError(ErrorKind.DIVIDE_BY_ZERO)
        return op1 / op2
    raise ValueError(f"Unknown operator: {operator!r}")


def get_result(single_expression: str, operand1: str, operator: str, operand2: str) -> str:
    """Computes one matched operation and returns the text to substitute for it.

    ``operand1`` may carry operators that precede a negative number, e.g.
    ``"+ -3"`` in ``"+ -3 * 2"``. They are kept in front of the result so
    they are not lost: the example yields ``"+ -6"``.
    """
    match = OPERAND_PREFIX_PATTERN.search(operand1)
    if match is None:
        raise CalcError(ErrorKind.NOT_A_NUMBER, operand1)

    prefix = match.group(1) or ""
    return prefix + format_number(calc(match.group(2), operator, operand2))


def do_operation(expression: str, operators: str) -> str:
    """Performs every operation of one precedence class, leftmost first.

    ``operators`` is one or more of ``*/+-`` evaluated together, e.g. ``"*/"``.
    Remaining minus signs that belong to negative numbers are left alone.
    """
    escaped = "".join("\\" + op for op in operators)
    operation_pattern = re.compile(FIRST_OPERAND + r" *([" + escaped + r"]) *" + SECOND_OPERAND, re.ASCII)
    operator_pattern = re.compile(r"[" + escaped + r"]")

    while True:
        previous = expression
        expression = operation_pattern.sub(
            lambda m: get_result(m.group(0), m.group(1), m.group(2), m.group(3)),
            expression,
            count=1,
        )

        remaining = operator_pattern.findall(expression)
        negatives = []
        if remaining and "-" in operators:
            # Negating a negative makes a positive
            expression = DOUBLE_NEGATIVE_PATTERN.sub(r"\2", expression)
            negatives = NEGATIVE_NUMBER_PATTERN.findall(expression)

        if not remaining or len(negatives) == len(remaining):
            return expression
        if expression == previous:
            # Operators are left but none of them can be applied
            raise CalcError(ErrorKind.NOT_A_NUMBER, expression)


def evaluate_simple_expression(expression: str) -> str:
    """Evaluates an expression without parentheses, following operator precedence."""
    for operators in ORDER_OF_OPERATIONS:
        expression = do_operation(expression, operators)
    return expression


def evaluate_parens(expression: str) -> str:
    """Replaces every parenthesized group with its value, innermost first.

    The last opening parenthesis and the first closing one after it always
    enclose a group without nested parentheses.
    """
    while True:
        start = expression.rfind("(")
        if start == -1:
            if ")" in expression:
                raise CalcError(ErrorKind.MISMATCHED_PARENTHESES)
            return expression

        end = expression.find(")", start)
        if end == -1:
            raise CalcError(ErrorKind.MISMATCHED_PARENTHESES)

        value = evaluate_simple_expression(expression[start + 1 : end])
        expression = expression[:start] + value + expression[end + 1 :]


def _check_rules(expression: str, rules) -> None:
    for pattern, kind in rules:
        if pattern.search(expression):
            raise CalcError(kind)


def validate_raw_expression(expression: str) -> None:
    _check_rules(expression, RAW_EXPRESSION_RULES)


def validate_expression(expression: str) -> None:
    _check_rules(expression, EXPRESSION_RULES)


class Evaluator:
    """Evaluates expressions and equations against per-account variables."""

    def __init__(self, store: Optional[VariableStore] = None):
        self.store = store if store is not None else VariableStore()

    def substitute_variables(self, expression: str, account: str) -> str:
        # Plain replacement of every occurrence of the letter, not token aware
        substituted = expression
        for name, value in self.store.variables(account).items():
            substituted = substituted.replace(name, format_number(value))
        return substituted

    def evaluate_expression(self, expression: str, account: str = DEFAULT_ACCOUNT) -> str:
        """Calculates the value of an expression such as ``"4 * (a - 5)"``.

        Raises:
            CalcError: for any syntax or calculation error.
        """
        validate_raw_expression(expression)

        substituted = self.substitute_variables(expression, account)
        logger.debug(f"Account {account}: evaluating '{substituted}' (Original: '{expression}')")

        validate_expression(substituted)

        simple_expression = evaluate_parens(substituted)
        return evaluate_simple_expression(simple_expression) or ""

    def evaluate_equation(self, equation: str, account: str = DEFAULT_ACCOUNT) -> str:
        """Assigns the value of the right side to the variable on the left.

        Returns the simplified equation, e.g. ``"a = -16"`` for
        ``"a = 14 - 5 * 6"``.
        """
        parts = equation.split("=")
        if len(parts) < 2:
            raise CalcError(ErrorKind.INVALID_CHARACTER)

        name = parts[0].strip()
        value_text = parts[1].strip()

        # The right side is an expression if it contains an operator, but a
        # minus sign may also just start a negative number
        if EXPRESSION_OPERATOR_PATTERN.search(value_text) and not NEGATIVE_VALUE_PATTERN.fullmatch(value_text):
            value_text = self.evaluate_expression(value_text, account)
        elif not DIRECT_VALUE_PATTERN.fullmatch(value_text):
            # Not a number; the store refuses NaN
            value_text = "nan"

        try:
            value = float(value_text)
        except ValueError:
            value = math.nan

        self.store.set(account, name, value)
        return f"{name} = {format_number(value)}"

    def get_variable(self, name: str, account: str = DEFAULT_ACCOUNT) -> float:
        return self.store.get(account, name)

    def set_variable(self, name: str, value: float, account: str = DEFAULT_ACCOUNT) -> None:
        self.store.set(account, name, value)

    def delete_variables(self, account: str) -> bool:
        return self.store.delete_all(account)
