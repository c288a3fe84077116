"""Wire schema shared by server and client: typed values and filter trees.

Both are tagged unions discriminated by a ``type`` field::

    {"type": "Number", "value": 2.0}
    {"type": "Leaf", "field": "k", "comparator": "GT", "immediate": {...}}
    {"type": "LeafPrimitive", "field": "TITLE", "comparator": "EQ", "immediate": {...}}
    {"type": "Operator", "op": "AND", "childs": [...]}
    {"type": "None"}
"""

from enum import Enum
from datetime import datetime
from typing import Annotated, ClassVar, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


# Valeurs typées

class DateValue(BaseModel):
    prop_type: ClassVar[str] = "date"
    type: Literal["Date"] = "Date"
    value: datetime

    @field_validator("value")
    @classmethod
    def to_local_time(cls, value: datetime) -> datetime:
        # les dates sont en heure locale naïve
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value


class StringValue(BaseModel):
    prop_type: ClassVar[str] = "string"
    type: Literal["String"] = "String"
    value: str


class NumberValue(BaseModel):
    prop_type: ClassVar[str] = "number"
    type: Literal["Number"] = "Number"
    value: float


class BooleanValue(BaseModel):
    prop_type: ClassVar[str] = "boolean"
    type: Literal["Boolean"] = "Boolean"
    value: bool


TaskPropVariant = Annotated[
    Union[DateValue, StringValue, NumberValue, BooleanValue],
    Field(discriminator="type"),
]

_VALUE_CLASSES = {
    "date": DateValue,
    "string": StringValue,
    "number": NumberValue,
    "boolean": BooleanValue,
}


def make_value(prop_type: str, value) -> TaskPropVariant:
    """Build the wire value for a declared type ("string", "number", ...)."""
    return _VALUE_CLASSES[prop_type](value=value)


class TaskProp(BaseModel):
    name: str
    value: TaskPropVariant


# Filtres

class Comparator(str, Enum):
    LT = "LT"
    LEQ = "LEQ"
    GT = "GT"
    GEQ = "GEQ"
    EQ = "EQ"
    NEQ = "NEQ"
    CONTAINS = "CONTAINS"
    NOTCONTAINS = "NOTCONTAINS"
    LIKE = "LIKE"
    REGEX = "REGEX"


class FilterOp(str, Enum):
    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class PrimitiveField(str, Enum):
    TITLE = "TITLE"
    COMPLETED = "COMPLETED"
    LASTEDITED = "LASTEDITED"


class Leaf(BaseModel):
    """Comparison against a user declared property."""
    type: Literal["Leaf"] = "Leaf"
    field: str
    comparator: Comparator
    immediate: TaskPropVariant


class LeafPrimitive(BaseModel):
    """Comparison against one of the task's own columns."""
    type: Literal["LeafPrimitive"] = "LeafPrimitive"
    field: PrimitiveField
    comparator: Comparator
    immediate: TaskPropVariant


class Operator(BaseModel):
    type: Literal["Operator"] = "Operator"
    op: FilterOp
    childs: List["Filter"] = []


class NoneFilter(BaseModel):
    """Accepts every task."""
    type: Literal["None"] = "None"


Filter = Annotated[
    Union[Leaf, LeafPrimitive, Operator, NoneFilter],
    Field(discriminator="type"),
]

Operator.model_rebuild()

filter_adapter = TypeAdapter(Filter)


def serialize_filter(filter: Filter) -> dict:
    return filter_adapter.dump_python(filter, mode="json")


def deserialize_filter(data) -> Filter:
    return filter_adapter.validate_python(data)
