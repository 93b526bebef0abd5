import operator
from dataclasses import dataclass

from litereader.errors import QuerySyntaxError

from typing import Any, Callable, Dict

OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class ValueFilter:
    """
    A single `column <operator> literal` condition from a WHERE clause.

    NULL never matches, and values of a different kind than the literal
    (text against a number) never match either.
    """

    column: str
    operator: str
    threshold: Any

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise QuerySyntaxError(f"Operator '{self.operator}' is not yet supported")

    def __call__(self, row: Dict[str, Any]) -> bool:
        if self.column not in row:
            raise QuerySyntaxError(
                f"Expected column '{self.column}' in row but only found {list(row.keys())}"
            )

        value = row[self.column]
        if value is None or not _comparable(value, self.threshold):
            return False

        return OPERATORS[self.operator](value, self.threshold)


def _comparable(value: Any, threshold: Any) -> bool:
    if isinstance(value, bool) or isinstance(threshold, bool):
        return False
    numbers = (int, float)
    if isinstance(value, numbers) and isinstance(threshold, numbers):
        return True
    return type(value) is type(threshold)
