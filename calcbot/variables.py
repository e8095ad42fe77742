import logging
import math
import re
from typing import Dict, List

from calcbot.errors import CalcError, ErrorKind

logger = logging.getLogger(__name__)

# Variable names are a single letter and case sensitive, so 'a' and 'A' differ
VAR_NAME_PATTERN = re.compile(r"[a-zA-Z]")


class VariableStore:
    """Per-account variables, e.g. ``{"bill": {"x": 1.0}, "matt": {"a": 5.0}}``.

    Not thread safe: the host that owns the store must serialize access.
    """

    def __init__(self):
        self._variables: Dict[str, Dict[str, float]] = {}

    def set(self, account: str, name: str, value: float) -> None:
        if not isinstance(name, str) or not VAR_NAME_PATTERN.fullmatch(name):
            raise CalcError(ErrorKind.INVALID_VARIABLE_NAME)
        if (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or not math.isfinite(value)
        ):
            raise CalcError(ErrorKind.INVALID_VALUE)

        self._variables.setdefault(account, {})[name] = float(value)
        logger.debug(f"Account {account}: set {name} = {value}")

    def get(self, account: str, name: str) -> float:
        try:
            return self._variables[account][name]
        except KeyError:
            raise CalcError(ErrorKind.UNDEFINED_VARIABLE) from None

    def delete_all(self, account: str) -> bool:
        """Removes every variable of ``account``. Returns True if there were any."""
        logger.info(f"Deleting variables for account: {account}")
        return self._variables.pop(account, None) is not None

    def variables(self, account: str) -> Dict[str, float]:
        return dict(self._variables.get(account, {}))

    def accounts(self) -> List[str]:
        return list(self._variables)
