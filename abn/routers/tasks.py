from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Union

from abn.core.database import get_db
from abn.schemas.task import (
    CreateTaskRequest,
    CreateTaskResponse,
    DeleteTaskRequest,
    ReadTaskErr,
    ReadTaskOk,
    ReadTaskShortRequest,
    ReadTaskShortResponse,
    UpdateTaskRequest,
    UpdateTaskResponse,
)
from abn.services import task_service

router = APIRouter(tags=["tasks"])

# Toutes les routes prennent un corps JSON (même GET/DELETE) et renvoient le req_id reçu


@router.get("/task", response_model=ReadTaskShortResponse)
def get_task(req: ReadTaskShortRequest, db: Session = Depends(get_db)):
    return task_service.read_task(db, req)


@router.get("/tasks", response_model=List[Union[ReadTaskOk, ReadTaskErr]])
def get_tasks(reqs: List[ReadTaskShortRequest], db: Session = Depends(get_db)):
    return task_service.read_tasks(db, reqs)


@router.post("/task", response_model=CreateTaskResponse)
def create_task(req: CreateTaskRequest, db: Session = Depends(get_db)):
    return task_service.create_task(db, req)


@router.post("/tasks", response_model=List[CreateTaskResponse])
def create_tasks(reqs: List[CreateTaskRequest], db: Session = Depends(get_db)):
    return task_service.create_tasks(db, reqs)


@router.put("/task", response_model=UpdateTaskResponse)
def update_task(req: UpdateTaskRequest, db: Session = Depends(get_db)):
    """
    Update one task: name/checked, then props, deps and scripts, in one transaction.

    EXEMPLE:
    PUT /task
    {"task_id": 1, "props_to_add": [{"name": "dog", "value": {"type": "Number", "value": 3}}], "req_id": 4}
    -> {"task_id": 1, "req_id": 4}
    """
    return task_service.update_task(db, req)


@router.put("/tasks", response_model=List[UpdateTaskResponse])
def update_tasks(reqs: List[UpdateTaskRequest], db: Session = Depends(get_db)):
    # une entrée en échec => task_id = -1 (+ error), le reste continue
    return task_service.update_tasks(db, reqs)


@router.delete("/task", response_model=int)
def delete_task(req: DeleteTaskRequest, db: Session = Depends(get_db)):
    return task_service.delete_task(db, req)


@router.delete("/tasks", response_model=List[int])
def delete_tasks(reqs: List[DeleteTaskRequest], db: Session = Depends(get_db)):
    return task_service.delete_tasks(db, reqs)
