"""
Operator, LogicalGroup and Condition types for the query engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Operator(Enum):
    """Field-level comparison operators."""

    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    NOT = "$not"
    EXISTS = "$exists"
    REGEXP = "$regexp"
    LIKE = "$like"
    UNKNOWN = "?"  # Any unrecognized operator, never matches

    @classmethod
    def from_name(cls, name: str) -> "Operator":
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN


class LogicalGroup(Enum):
    """Row-level combinators governing how condition results combine."""

    AND = "$and"
    OR = "$or"
    NOR = "$nor"

    @classmethod
    def is_logical(cls, key: Any) -> bool:
        return key in _LOGICAL_KEYS


_LOGICAL_KEYS = frozenset(group.value for group in LogicalGroup)


@dataclass
class Condition:
    """
    A single operator test against one field.

    Attributes:
        operator: The operator to apply.
        comparand: The value the field is compared with.
        group: Logical group this condition belongs to.
        name: Operator name as written in the query (kept for UNKNOWN).
    """

    operator: Operator
    comparand: Any
    group: LogicalGroup = LogicalGroup.AND
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.operator.value


# Field path -> conditions in the order they appeared in the query
NormalizedQuery = dict[str, list[Condition]]
