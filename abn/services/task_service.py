"""Task service

Every write goes through one session transaction: the changes are staged on the
session, committed at the end, rolled back on the first error.
"""

import logging
from typing import List, Union

from sqlalchemy.orm import Session

from abn.core.database import transaction
from abn.core.errors import DepMissing, NotFound, PropMissing, ServiceError, WrongType
from abn.models.dependency import Dependency
from abn.models.script import TaskScript
from abn.models.task import Task
from abn.models.task_property import TaskProperty
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

logger = logging.getLogger(__name__)


def get_task_or_404(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise NotFound("task", task_id)
    return task


def read_task(db: Session, req: ReadTaskShortRequest) -> ReadTaskShortResponse:
    task = get_task_or_404(db, req.task_id)
    return ReadTaskShortResponse(
        task_id=task.id,
        name=task.title,
        completed=task.completed,
        props=[prop.name for prop in task.properties],
        deps=[dep.depends_on_id for dep in task.dependencies],
        scripts=[link.script_id for link in task.scripts],
        last_edited=task.last_edited,
        req_id=req.req_id,
    )


def read_tasks(db: Session, reqs: List[ReadTaskShortRequest]) -> List[Union[ReadTaskOk, ReadTaskErr]]:
    # le batch réussit même si certaines entrées échouent
    results = []
    for req in reqs:
        try:
            results.append(ReadTaskOk(Ok=read_task(db, req)))
        except ServiceError as e:
            results.append(ReadTaskErr(Err=e.message))
    return results


def _stage_create(db: Session, req: CreateTaskRequest) -> Task:
    task = Task(title=req.name, completed=req.completed)
    task.touch()
    db.add(task)
    return task


def create_task(db: Session, req: CreateTaskRequest) -> CreateTaskResponse:
    with transaction(db):
        task = _stage_create(db, req)
    logger.info(f"created task {task.id}")
    return CreateTaskResponse(task_id=task.id, req_id=req.req_id)


def create_tasks(db: Session, reqs: List[CreateTaskRequest]) -> List[CreateTaskResponse]:
    # tout ou rien
    with transaction(db):
        tasks = [_stage_create(db, req) for req in reqs]
    logger.info(f"created {len(tasks)} tasks")
    return [CreateTaskResponse(task_id=task.id, req_id=req.req_id) for task, req in zip(tasks, reqs)]


def _add_property(db: Session, task: Task, prop) -> None:
    declared = prop.value.prop_type
    registry = db.get(TaskProperty, (task.id, prop.name))

    if registry is not None and registry.type != declared:
        raise WrongType(prop.name, registry.type)

    if registry is None:
        registry = TaskProperty(task_id=task.id, name=prop.name, type=declared)
        task.properties.append(registry)
    registry.set_value(prop.value.value)


def _remove_property(db: Session, task: Task, name: str) -> None:
    registry = db.get(TaskProperty, (task.id, name))
    if registry is None:
        raise PropMissing(name)
    # la ligne typée part avec (cascade)
    task.properties.remove(registry)


def _add_dependency(db: Session, task: Task, dep_id: int) -> None:
    if db.get(Task, dep_id) is None:
        raise DepMissing(task.id, dep_id)
    if db.get(Dependency, (task.id, dep_id)) is None:
        task.dependencies.append(Dependency(task_id=task.id, depends_on_id=dep_id))


def _remove_dependency(db: Session, task: Task, dep_id: int) -> None:
    edge = db.get(Dependency, (task.id, dep_id))
    if edge is None:
        raise DepMissing(task.id, dep_id, removing=True)
    task.dependencies.remove(edge)


def _stage_update(db: Session, req: UpdateTaskRequest) -> Task:
    """
    Apply an update request to the session without committing.

    ORDER:
    1. load the task (NotFound)
    2. name / checked
    3. props_to_add (WrongType if the registered type differs)
    4. props_to_remove (PropMissing)
    5. deps_to_add (DepMissing if the target doesn't exist)
    6. deps_to_remove (DepMissing if the edge doesn't exist)
    7. scripts_to_add / scripts_to_remove (existence not checked)
    """
    task = get_task_or_404(db, req.task_id)

    if req.name is not None:
        task.title = req.name
    if req.checked is not None:
        task.completed = req.checked

    for prop in req.props_to_add:
        _add_property(db, task, prop)
        # flush pour que la prop suivante du même nom voie celle-ci
        db.flush()

    for name in req.props_to_remove:
        _remove_property(db, task, name)
        db.flush()

    for dep_id in req.deps_to_add:
        _add_dependency(db, task, dep_id)
        db.flush()

    for dep_id in req.deps_to_remove:
        _remove_dependency(db, task, dep_id)
        db.flush()

    linked = {link.script_id for link in task.scripts}
    for script_id in req.scripts_to_add:
        if script_id not in linked:
            task.scripts.append(TaskScript(task_id=task.id, script_id=script_id))
            linked.add(script_id)
    for script_id in req.scripts_to_remove:
        for link in [link for link in task.scripts if link.script_id == script_id]:
            task.scripts.remove(link)
        linked.discard(script_id)

    # diff vide => last_edited inchangé
    if not req.is_empty():
        task.touch()

    return task


def update_task(db: Session, req: UpdateTaskRequest) -> UpdateTaskResponse:
    with transaction(db):
        task = _stage_update(db, req)
        task_id = task.id
    logger.info(f"updated task {task_id}")
    return UpdateTaskResponse(task_id=task_id, req_id=req.req_id)


def update_tasks(db: Session, reqs: List[UpdateTaskRequest]) -> List[UpdateTaskResponse]:
    """Best effort: each entry is its own transaction, failures come back as task_id -1."""
    results = []
    for req in reqs:
        try:
            results.append(update_task(db, req))
        except ServiceError as e:
            logger.warning(f"batch update of task {req.task_id} failed: {e.message}")
            results.append(UpdateTaskResponse(task_id=-1, req_id=req.req_id, error=e.message))
    return results


def _stage_delete(db: Session, req: DeleteTaskRequest) -> None:
    task = get_task_or_404(db, req.task_id)
    # props, deps (dans les deux sens) et liens scripts partent en cascade
    db.delete(task)
    db.flush()


def delete_task(db: Session, req: DeleteTaskRequest) -> int:
    with transaction(db):
        _stage_delete(db, req)
    logger.info(f"deleted task {req.task_id}")
    return req.req_id


def delete_tasks(db: Session, reqs: List[DeleteTaskRequest]) -> List[int]:
    # fail-fast: la première erreur annule tout le batch
    with transaction(db):
        for req in reqs:
            _stage_delete(db, req)
    logger.info(f"deleted {len(reqs)} tasks")
    return [req.req_id for req in reqs]
