"""
QueryEngine - filter a collection of rows with a declarative expression.

Expressions use a small subset of the MongoDB query language:

    {"teams": {"$gt": 30}, "active": True}
    {"$and": [{"teams": {"$gt": 30}}, {"teams": {"$lt": 32}}]}
    {"$or": [{"name": {"$like": "nba"}}, {"$and": [...]}], "$nor": [...]}

This is a linear scan; there are no indexes.
"""

import logging
import operator as _op
import re
from collections.abc import Callable, Iterable
from datetime import date, datetime
from typing import Any

from kstor.engine import accessor
from kstor.engine.accessor import MISSING
from kstor.models.exceptions import MalformedQueryError
from kstor.models.path import Path
from kstor.models.query import Condition, LogicalGroup, NormalizedQuery, Operator

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


# ----------------------------------------------------------------------
# Normalization
# ----------------------------------------------------------------------


def _is_operator_object(expression: Any) -> bool:
    return (
        isinstance(expression, dict)
        and len(expression) > 0
        and all(isinstance(k, str) and k.startswith("$") for k in expression)
    )


def _add_conditions(
    normalized: NormalizedQuery, field: str, expression: Any, group: LogicalGroup
) -> None:
    """Explode `{op: comparand, ...}` into one Condition per operator."""
    if not _is_operator_object(expression):
        expression = {Operator.EQ.value: expression}

    conditions = normalized.setdefault(field, [])
    for name, comparand in expression.items():
        condition = Condition(Operator.from_name(name), comparand, group, name)
        if condition.operator is Operator.UNKNOWN:
            logging.warning(
                f"Unknown query operator {condition.name!r} on {field!r} never matches"
            )
        conditions.append(condition)


def _merge(normalized: NormalizedQuery, nested: NormalizedQuery) -> None:
    for field, conditions in nested.items():
        normalized.setdefault(field, []).extend(conditions)


def normalize(query: Any) -> NormalizedQuery:
    """
    Flatten a query expression into per-field condition lists.

    Plain field keys at the top level are implicit `$and` members. Inside a
    logical array, an element holding a logical key is normalized
    recursively and merged; any other element is a `{field: expression}`
    mapping.

    Args:
        query: The query expression.

    Returns:
        Mapping of field path to its conditions, in query order.

    Raises:
        MalformedQueryError: If the query is not a dict, a logical key does
            not hold a list, or a logical array element is not a dict.
    """
    if not isinstance(query, dict):
        raise MalformedQueryError.unexpected_type("dict", query)

    normalized: NormalizedQuery = {}
    for key, expression in query.items():
        if not LogicalGroup.is_logical(key):
            _add_conditions(normalized, key, expression, LogicalGroup.AND)
            continue

        group = LogicalGroup(key)
        if not isinstance(expression, list):
            raise MalformedQueryError.unexpected_type(f"list for {key}", expression)

        for sub in expression:
            if not isinstance(sub, dict):
                raise MalformedQueryError.unexpected_type(f"dict inside {key}", sub)

            if any(LogicalGroup.is_logical(k) for k in sub):
                _merge(normalized, normalize(sub))
            else:
                for field, field_expression in sub.items():
                    _add_conditions(normalized, field, field_expression, group)

    return normalized


# ----------------------------------------------------------------------
# Operator evaluation
# ----------------------------------------------------------------------


def _epoch_ms(value: Any) -> Any:
    """Dates compare as milliseconds since the epoch."""
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day).timestamp() * 1000)
    return value


def _strict_equal(a: Any, b: Any) -> bool:
    # True == 1 in Python; a stored flag must not match a count
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def evaluate(comparand: Any, value: Any) -> bool:
        try:
            return bool(compare(value, comparand))
        except TypeError:
            # e.g. None > 30, "a" < 1
            return False

    return evaluate


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def _compile(pattern: str, comparand: Any) -> re.Pattern:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as err:
        raise MalformedQueryError(f"invalid pattern {comparand!r}: {err}", comparand) from err


def _search(pattern: re.Pattern, value: Any) -> bool:
    if value is None:
        return False
    return pattern.search(_as_text(value)) is not None


def _contains_any(comparand: Any, value: Any) -> bool:
    candidates: Iterable[Any] = comparand if isinstance(comparand, _SEQUENCE_TYPES) else [comparand]
    if isinstance(value, str):
        items: Iterable[Any] = list(value)
    elif isinstance(value, _SEQUENCE_TYPES):
        items = value
    else:
        items = [value]

    candidates = [_epoch_ms(c) for c in candidates]
    return any(_strict_equal(_epoch_ms(item), c) for item in items for c in candidates)


def _evaluate_eq(comparand: Any, value: Any) -> bool:
    return _strict_equal(value, comparand)


def _evaluate_ne(comparand: Any, value: Any) -> bool:
    return not _strict_equal(value, comparand)


def _evaluate_in(comparand: Any, value: Any) -> bool:
    return _contains_any(comparand, value)


def _evaluate_nin(comparand: Any, value: Any) -> bool:
    return not _contains_any(comparand, value)


def _evaluate_not(comparand: Any, value: Any) -> bool:
    if isinstance(comparand, re.Pattern):
        return not _search(comparand, value)
    return not _strict_equal(value, comparand)


def _evaluate_regexp(comparand: Any, value: Any) -> bool:
    if not isinstance(comparand, re.Pattern):
        comparand = _compile(_as_text(comparand), comparand)
    return _search(comparand, value)


def _evaluate_like(comparand: Any, value: Any) -> bool:
    if not isinstance(comparand, re.Pattern):
        comparand = _compile(".*" + _as_text(comparand) + ".*", comparand)
    return _search(comparand, value)


def _evaluate_exists(comparand: Any, value: Any) -> bool:
    # Sees MISSING for an absent field; None is a present null
    if comparand is False:
        return value is MISSING
    return value is not MISSING


def _evaluate_unknown(comparand: Any, value: Any) -> bool:
    return False


_DATE_AWARE = frozenset(
    {Operator.EQ, Operator.NE, Operator.GT, Operator.GTE, Operator.LT, Operator.LTE, Operator.NOT}
)

_EVALUATORS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: _evaluate_eq,
    Operator.NE: _evaluate_ne,
    Operator.GT: _ordered(_op.gt),
    Operator.GTE: _ordered(_op.ge),
    Operator.LT: _ordered(_op.lt),
    Operator.LTE: _ordered(_op.le),
    Operator.IN: _evaluate_in,
    Operator.NIN: _evaluate_nin,
    Operator.NOT: _evaluate_not,
    Operator.EXISTS: _evaluate_exists,
    Operator.REGEXP: _evaluate_regexp,
    Operator.LIKE: _evaluate_like,
    Operator.UNKNOWN: _evaluate_unknown,
}


def evaluate_operator(operator: Operator | str, comparand: Any, value: Any) -> bool:
    """
    Test a single field value against one operator.

    Args:
        operator: Operator, or its `$name`. Unknown names never match.
        comparand: The value from the query.
        value: The row's field value; MISSING when the field is absent.

    Returns:
        True if the value satisfies the operator.
    """
    if not isinstance(operator, Operator):
        operator = Operator.from_name(operator)

    if value is MISSING and operator is not Operator.EXISTS:
        value = None

    if operator in _DATE_AWARE:
        value = _epoch_ms(value)
        comparand = _epoch_ms(comparand)

    return _EVALUATORS[operator](comparand, value)


# ----------------------------------------------------------------------
# Row matching
# ----------------------------------------------------------------------


def _is_empty(row: Any) -> bool:
    if row is None or row is MISSING:
        return True
    if isinstance(row, (dict, list, tuple, str)):
        return len(row) == 0
    return False


def matches_row(row: Any, normalized: NormalizedQuery) -> bool:
    """
    Decide whether `row` satisfies a normalized query.

    A row is included when all `$and` conditions hold or any `$or`
    condition holds, and no `$nor` condition holds. With no `$and`
    conditions the `$and` side holds only if there are no `$or`
    conditions either, so `{}` matches everything and an `$or`-only
    query needs one of its alternatives to match.

    Empty or absent rows never match.
    """
    if _is_empty(row):
        return False

    has_and = has_or = False
    and_ok = True
    or_ok = False
    nor_hit = False

    for field, conditions in normalized.items():
        path = Path.parse(field)
        value: Any = MISSING
        resolved = False

        for condition in conditions:
            group = condition.group
            if group is LogicalGroup.AND:
                has_and = True
                if not and_ok:
                    continue
            elif group is LogicalGroup.OR:
                has_or = True
                if or_ok:
                    continue
            elif nor_hit:
                continue

            if not resolved:
                value = accessor.get(row, path, MISSING)
                resolved = True

            matched = evaluate_operator(condition.operator, condition.comparand, value)
            if group is LogicalGroup.AND:
                and_ok = matched
            elif group is LogicalGroup.OR:
                or_ok = matched
            else:
                nor_hit = matched

    if not has_and:
        and_ok = not has_or

    return (and_ok or or_ok) and not nor_hit


def query(
    collection: Any,
    query: Any = None,
    skip: int | None = None,
    take: int | None = None,
) -> dict[Any, Any]:
    """
    Filter the rows of `collection`.

    Args:
        collection: Dict of rows (or a list, keyed by index).
        query: Query expression; None returns every row.
        skip: Number of leading rows to pass over before matching.
        take: Stop after this many rows have been collected.

    Returns:
        The kept rows keyed as in `collection`, in source order.

    Raises:
        MalformedQueryError: If `query` is not a valid expression.
    """
    result: dict[Any, Any] = {}

    if isinstance(collection, dict):
        rows: Iterable[tuple[Any, Any]] = collection.items()
    elif isinstance(collection, list):
        rows = enumerate(collection)
    else:
        return result

    normalized = normalize(query) if query is not None else None

    if take is not None and take <= 0:
        return result

    skipped = 0
    for key, row in rows:
        if skip is not None and skipped < skip:
            skipped += 1
            continue

        if normalized is None or matches_row(row, normalized):
            result[key] = row
            if take is not None and len(result) >= take:
                break

    return result
