"""Property reads (writes go through task_service.update_task)"""

from typing import List, Optional

from sqlalchemy.orm import Session

from abn.models.task_property import TaskProperty
from abn.schemas.filter import TaskPropVariant, make_value
from abn.schemas.property import (
    PropertiesRequest,
    PropertiesResponse,
    PropertyRequest,
    PropertyResponse,
    PropertyValue,
    PropertyValues,
)
from abn.services.task_service import get_task_or_404


def get_property(db: Session, task_id: int, name: str) -> Optional[TaskPropVariant]:
    """Typed value of one property, None if the task doesn't have it."""
    registry = db.get(TaskProperty, (task_id, name))
    if registry is None:
        return None
    row = registry.value_row
    if row is None:
        # registre sans valeur: ne devrait pas arriver (cf. invariant registre/tables typées)
        return None
    return make_value(registry.type, row.value)


def get_task_properties(db: Session, req: PropertyRequest) -> PropertyResponse:
    get_task_or_404(db, req.task_id)
    res = [PropertyValue(name=name, value=get_property(db, req.task_id, name)) for name in req.properties]
    return PropertyResponse(res=res, req_id=req.req_id)


def get_tasks_properties(db: Session, req: PropertiesRequest) -> PropertiesResponse:
    for task_id in req.task_ids:
        get_task_or_404(db, task_id)

    res: List[PropertyValues] = []
    for name in req.properties:
        values = [get_property(db, task_id, name) for task_id in req.task_ids]
        res.append(PropertyValues(name=name, values=values))
    return PropertiesResponse(res=res, req_id=req.req_id)
