from pydantic import BaseModel
from typing import List, Optional

from abn.schemas.filter import TaskPropVariant
from abn.schemas.task import ReqID


class PropertyRequest(BaseModel):
    task_id: int
    properties: List[str]
    req_id: ReqID = 0


class PropertyValue(BaseModel):
    name: str
    value: Optional[TaskPropVariant] = None


class PropertyResponse(BaseModel):
    res: List[PropertyValue]
    req_id: ReqID = 0


class PropertiesRequest(BaseModel):
    task_ids: List[int]
    properties: List[str]
    req_id: ReqID = 0


class PropertyValues(BaseModel):
    """One property name, its value for each requested task (None if absent)."""
    name: str
    values: List[Optional[TaskPropVariant]]


class PropertiesResponse(BaseModel):
    res: List[PropertyValues]
    req_id: ReqID = 0
