"""Pydantic schemas for task request/response validation."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Annotated, Optional, List

from abn.schemas.filter import TaskProp

# u64 côté client
ReqID = Annotated[int, Field(ge=0, le=2**64 - 1)]


class ReadTaskShortRequest(BaseModel):
    task_id: int
    req_id: ReqID = 0


class ReadTaskShortResponse(BaseModel):
    task_id: int
    name: str
    completed: bool
    props: List[str] = []
    deps: List[int] = []
    scripts: List[int] = []
    last_edited: datetime
    req_id: ReqID = 0


class ReadTaskOk(BaseModel):
    Ok: ReadTaskShortResponse


class ReadTaskErr(BaseModel):
    Err: str


class CreateTaskRequest(BaseModel):
    name: str
    completed: bool = False
    req_id: ReqID = 0


class CreateTaskResponse(BaseModel):
    task_id: int
    req_id: ReqID = 0


class UpdateTaskRequest(BaseModel):
    """Everything a single PUT /task can change. Lists are applied in order."""

    task_id: int
    name: Optional[str] = None
    checked: Optional[bool] = None
    props_to_add: List[TaskProp] = []
    props_to_remove: List[str] = []
    deps_to_add: List[int] = []
    deps_to_remove: List[int] = []
    scripts_to_add: List[int] = []
    scripts_to_remove: List[int] = []
    req_id: ReqID = 0

    def is_empty(self) -> bool:
        return (
            self.name is None
            and self.checked is None
            and not self.props_to_add
            and not self.props_to_remove
            and not self.deps_to_add
            and not self.deps_to_remove
            and not self.scripts_to_add
            and not self.scripts_to_remove
        )


class UpdateTaskResponse(BaseModel):
    # -1 quand l'entrée d'un batch a échoué
    task_id: int
    req_id: ReqID = 0
    error: Optional[str] = None


class DeleteTaskRequest(BaseModel):
    task_id: int
    req_id: ReqID = 0
