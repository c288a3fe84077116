"""Filter compiler: lowers a Filter tree into a SQLAlchemy boolean expression
over Task, then runs it as a task scan.

Leaf          -> task.id IN (ids of the typed table for the immediate's type
                 WHERE name = field AND value <cmp> immediate)
LeafPrimitive -> task.<column> <cmp> immediate
Operator      -> AND / OR / NOT of the lowered children
None          -> true
"""

import re
import logging
from typing import List

from sqlalchemy import and_, or_, not_, true, false, select
from sqlalchemy.orm import Session

from abn.core.errors import InvalidArity, InvalidComparator, InvalidPattern, InvalidType
from abn.models.task import Task
from abn.models.task_property import VALUE_TABLES
from abn.schemas.filter import (
    Comparator,
    Filter,
    FilterOp,
    Leaf,
    LeafPrimitive,
    NoneFilter,
    Operator,
    PrimitiveField,
)

logger = logging.getLogger(__name__)

ORDERING = {Comparator.LT, Comparator.LEQ, Comparator.GT, Comparator.GEQ, Comparator.EQ, Comparator.NEQ}

# comparateurs admis par type déclaré
ALLOWED_COMPARATORS = {
    "number": ORDERING,
    "date": ORDERING,
    "boolean": {Comparator.EQ, Comparator.NEQ},
    "string": set(Comparator),
}

# colonne de Task + type attendu pour l'immédiat
PRIMITIVE_COLUMNS = {
    PrimitiveField.TITLE: (Task.title, "string"),
    PrimitiveField.COMPLETED: (Task.completed, "boolean"),
    PrimitiveField.LASTEDITED: (Task.last_edited, "date"),
}

# constructions hors POSIX ERE: lookaround, groupes nommés / non capturants, flags, backrefs
# jeton précédé d'un nombre pair de backslashs: non échappé
_UNSUPPORTED_REGEX = re.compile(r"(?<!\\)(?:\\\\)*(?P<token>\(\?|\\[1-9bBAZdDwWsS])")


def check_regex(pattern: str) -> None:
    """Reject patterns outside the POSIX ERE subset every backend understands."""
    try:
        re.compile(pattern)
    except re.error as e:
        raise InvalidPattern(pattern, str(e))
    match = _UNSUPPORTED_REGEX.search(pattern)
    if match:
        raise InvalidPattern(pattern, f"{match.group('token')!r} is not POSIX ERE")


def _compare(column, comparator: Comparator, value, type_name: str):
    if comparator not in ALLOWED_COMPARATORS[type_name]:
        raise InvalidComparator(type_name, comparator.value)

    if comparator == Comparator.LT:
        return column < value
    if comparator == Comparator.LEQ:
        return column <= value
    if comparator == Comparator.GT:
        return column > value
    if comparator == Comparator.GEQ:
        return column >= value
    if comparator == Comparator.EQ:
        return column == value
    if comparator == Comparator.NEQ:
        return column != value
    if comparator == Comparator.CONTAINS:
        return column.contains(value, autoescape=True)
    if comparator == Comparator.NOTCONTAINS:
        return not_(column.contains(value, autoescape=True))
    if comparator == Comparator.LIKE:
        return column.like(value)
    # REGEX
    check_regex(value)
    return column.regexp_match(value)


def _compile_leaf(leaf: Leaf):
    type_name = leaf.immediate.prop_type
    table = VALUE_TABLES[type_name]
    predicate = _compare(table.value, leaf.comparator, leaf.immediate.value, type_name)
    # une prop déclarée avec un autre type est dans une autre table: aucune ligne ne matche
    matching_ids = select(table.task_id).where(table.name == leaf.field, predicate)
    return Task.id.in_(matching_ids)


def _compile_primitive(leaf: LeafPrimitive):
    column, expected = PRIMITIVE_COLUMNS[leaf.field]
    got = leaf.immediate.prop_type
    if got != expected:
        raise InvalidType(leaf.field.value, got, expected)
    return _compare(column, leaf.comparator, leaf.immediate.value, expected)


def compile_filter(filter: Filter):
    """Lower a filter tree. Raises before any query runs if the tree is invalid."""
    if isinstance(filter, NoneFilter):
        return true()

    if isinstance(filter, Leaf):
        return _compile_leaf(filter)

    if isinstance(filter, LeafPrimitive):
        return _compile_primitive(filter)

    if isinstance(filter, Operator):
        children = [compile_filter(child) for child in filter.childs]
        if filter.op == FilterOp.AND:
            return and_(true(), *children)
        if filter.op == FilterOp.OR:
            return or_(false(), *children)
        if len(children) != 1:
            raise InvalidArity(filter.op.value, len(children))
        return not_(children[0])

    raise TypeError(f"not a filter: {filter!r}")


def evaluate_filter(db: Session, filter: Filter) -> List[int]:
    """Ids of the tasks matching the filter, in primary key order."""
    predicate = compile_filter(filter)
    rows = db.execute(select(Task.id).where(predicate).order_by(Task.id)).all()
    return [row[0] for row in rows]
