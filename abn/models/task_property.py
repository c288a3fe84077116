"""Property registry + one value table per primitive type.

A registry row (task_property) holds the declared type; the value is in
exactly one of the four typed tables, keyed by the same (task_id, name).
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, ForeignKey, ForeignKeyConstraint
from sqlalchemy.orm import relationship
from abn.core.database import Base

STRING = "string"
NUMBER = "number"
DATE = "date"
BOOLEAN = "boolean"

PROPERTY_TYPES = (STRING, NUMBER, DATE, BOOLEAN)


def _registry_fk():
    return ForeignKeyConstraint(
        ["task_id", "name"],
        ["task_property.task_id", "task_property.name"],
        ondelete="CASCADE",
    )


class TaskStringProperty(Base):
    __tablename__ = "task_string_property"
    __table_args__ = (_registry_fk(),)

    task_id = Column(Integer, primary_key=True)
    name = Column(String, primary_key=True)
    value = Column(String, nullable=False)


class TaskNumProperty(Base):
    __tablename__ = "task_num_property"
    __table_args__ = (_registry_fk(),)

    task_id = Column(Integer, primary_key=True)
    name = Column(String, primary_key=True)
    # fixed-point en base, float sur le fil
    value = Column(Numeric(precision=30, scale=10, asdecimal=False), nullable=False)


class TaskDateProperty(Base):
    __tablename__ = "task_date_property"
    __table_args__ = (_registry_fk(),)

    task_id = Column(Integer, primary_key=True)
    name = Column(String, primary_key=True)
    value = Column(DateTime, nullable=False)


class TaskBoolProperty(Base):
    __tablename__ = "task_bool_property"
    __table_args__ = (_registry_fk(),)

    task_id = Column(Integer, primary_key=True)
    name = Column(String, primary_key=True)
    value = Column(Boolean, nullable=False)


# declared type -> table holding the value
VALUE_TABLES = {
    STRING: TaskStringProperty,
    NUMBER: TaskNumProperty,
    DATE: TaskDateProperty,
    BOOLEAN: TaskBoolProperty,
}


class TaskProperty(Base):
    __tablename__ = "task_property"

    task_id = Column(Integer, ForeignKey("task.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String, primary_key=True)
    type = Column(String, nullable=False)

    string_value = relationship(TaskStringProperty, uselist=False, cascade="all, delete-orphan")
    num_value = relationship(TaskNumProperty, uselist=False, cascade="all, delete-orphan")
    date_value = relationship(TaskDateProperty, uselist=False, cascade="all, delete-orphan")
    bool_value = relationship(TaskBoolProperty, uselist=False, cascade="all, delete-orphan")

    _VALUE_ATTRS = {
        STRING: "string_value",
        NUMBER: "num_value",
        DATE: "date_value",
        BOOLEAN: "bool_value",
    }

    @property
    def value_row(self):
        """The typed row matching the declared type (None if missing)."""
        return getattr(self, self._VALUE_ATTRS[self.type])

    def set_value(self, value):
        row = self.value_row
        if row is None:
            row = VALUE_TABLES[self.type](task_id=self.task_id, name=self.name, value=value)
            setattr(self, self._VALUE_ATTRS[self.type], row)
        else:
            row.value = value
