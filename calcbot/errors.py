import enum
from dataclasses import dataclass
from typing import Optional


class ErrorKind(enum.Enum):
    INVALID_VARIABLE_NAME = "Invalid variable name"
    INVALID_VALUE = "Value is not a number"
    UNDEFINED_VARIABLE = "Variable is not defined"
    INVALID_CHARACTER = "Invalid character"
    INVALID_NUMBER_FORMAT = "Invalid number format"
    MISSING_OPERATOR = "Missing operator"
    INVALID_OPERATOR_PLACEMENT = "Invalid operator placement"
    MISMATCHED_PARENTHESES = "Mismatched parentheses"
    NOT_A_NUMBER = "{operand} is not a number"
    DIVIDE_BY_ZERO = "Cannot divide by zero"


@dataclass
class CalcError(Exception):
    """Any failure raised by the evaluator core.

    ``operand`` is only set for NOT_A_NUMBER and holds the offending text.
    """

    kind: ErrorKind
    operand: Optional[str] = None

    def __str__(self) -> str:
        return self.kind.value.format(operand=self.operand)
