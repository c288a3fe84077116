"""
Client-side working copy of the server store.

The UI reads from State synchronously and mutates it through the
task_*/prop_*/view_*/script_* methods. Each mutation is applied locally
right away (optimistic entry), then shipped as one RPC tagged with a fresh
req_id. The response is matched back through the pending table: success
applies the server's values, failure rolls the local change back and emits
ServerStatus("error", ...).

Tasks created locally have no server id until their create RPC resolves.
Mutations issued on such a task are queued and sent once the id is known
(dropped if the create fails).
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from abn.client.api import ApiClient
from abn.client.errors import ApiError, NoTaskError, NoViewError, NotSyncedError, PropertyTypeError
from abn.client.events import (
    PropsUpdate,
    ScriptUpdate,
    ServerStatus,
    StateEvent,
    TasksUpdate,
    ViewsUpdate,
)
from abn.client.store import Key, PropStore, SlotMap
from abn.schemas.filter import Filter, NoneFilter, TaskProp, TaskPropVariant
from abn.schemas.property import PropertiesRequest
from abn.schemas.script import CreateScriptRequest, ReadScriptRequest
from abn.schemas.task import (
    CreateTaskRequest,
    DeleteTaskRequest,
    ReadTaskOk,
    ReadTaskShortRequest,
    ReadTaskShortResponse,
    UpdateTaskRequest,
)
from abn.schemas.view import CreateViewRequest, UpdateViewRequest, ViewData, ViewTasksRequest

logger = logging.getLogger(__name__)

# unique pour toute la durée du process
_req_ids = itertools.count(1)


def next_req_id() -> int:
    return next(_req_ids)


@dataclass
class Task:
    name: str
    completed: bool = False
    last_edited: datetime = field(default_factory=datetime.now)
    task_id: Optional[int] = None
    deps: List[int] = field(default_factory=list)
    scripts: List[int] = field(default_factory=list)
    pending_deletion: bool = False

    @property
    def synced(self) -> bool:
        return self.task_id is not None


@dataclass
class View:
    name: str
    props: List[str] = field(default_factory=list)
    filter: Filter = field(default_factory=NoneFilter)
    view_id: Optional[int] = None
    # ids serveur, dans l'ordre renvoyé par /view/tasks
    tasks: List[int] = field(default_factory=list)


@dataclass
class _Pending:
    kind: str
    on_success: Callable[[Any], None]
    rollback: Callable[[], None]


def _merge(current: List[int], add: List[int], remove: List[int]) -> List[int]:
    merged = list(current)
    for item in add:
        if item not in merged:
            merged.append(item)
    return [item for item in merged if item not in remove]


class State:
    def __init__(self, api: ApiClient):
        self.api = api
        self.tasks: SlotMap[Task] = SlotMap()
        self.views: SlotMap[View] = SlotMap()
        self.props = PropStore()
        self.scripts: Dict[int, str] = {}
        self._key_by_id: Dict[int, Key] = {}
        self._pending: Dict[int, _Pending] = {}
        self._deferred: Dict[Key, List[Callable[[], None]]] = {}
        self._inflight: Set[asyncio.Task] = set()
        self._subscribers: List["asyncio.Queue[StateEvent]"] = []

    # Abonnements

    def subscribe(self) -> "asyncio.Queue[StateEvent]":
        queue: "asyncio.Queue[StateEvent]" = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def _emit(self, event: StateEvent) -> None:
        for queue in self._subscribers:
            queue.put_nowait(event)

    # Lectures

    def task_get(self, key: Key) -> Task:
        task = self.tasks.get(key)
        if task is None:
            raise NoTaskError(key)
        return task

    def task_keys(self) -> List[Key]:
        return self.tasks.keys()

    def task_key_for(self, task_id: int) -> Optional[Key]:
        key = self._key_by_id.get(task_id)
        if key is None or key not in self.tasks:
            return None
        return key

    def view_get(self, key: Key) -> View:
        view = self.views.get(key)
        if view is None:
            raise NoViewError(key)
        return view

    def view_keys(self) -> List[Key]:
        return self.views.keys()

    def view_get_default(self) -> Optional[Key]:
        """The synced view with the lowest id, or None when there is none."""
        synced = [(view.view_id, key) for key, view in self.views.items() if view.view_id is not None]
        if not synced:
            return None
        return min(synced)[1]

    def view_tasks(self, key: Key) -> List[Key]:
        view = self.view_get(key)
        keys = [self.task_key_for(task_id) for task_id in view.tasks]
        return [key for key in keys if key is not None]

    def prop_get(self, key: Key, name: str) -> Optional[TaskPropVariant]:
        self.task_get(key)
        return self.props.get(key, name)

    def prop_names(self) -> List[str]:
        return self.props.names()

    def script_get(self, script_id: int) -> Optional[str]:
        return self.scripts.get(script_id)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # Réconciliation

    def _issue(self, kind: str, call, on_success, rollback) -> int:
        req_id = next_req_id()
        self._pending[req_id] = _Pending(kind, on_success, rollback)
        task = asyncio.get_running_loop().create_task(self._run(req_id, call(req_id)))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return req_id

    async def _run(self, req_id: int, coro) -> None:
        try:
            response = await coro
        except ApiError as e:
            self.reject(req_id, e)
            return
        self.resolve(self._echoed_req_id(req_id, response), response)

    @staticmethod
    def _echoed_req_id(req_id: int, response: Any) -> int:
        if isinstance(response, int):
            return response
        return getattr(response, "req_id", req_id)

    def resolve(self, req_id: int, response: Any) -> bool:
        """Apply a successful response. False if nothing was waiting on req_id."""
        entry = self._pending.pop(req_id, None)
        if entry is None:
            logger.warning(f"dropping response for unknown req_id {req_id}")
            return False
        entry.on_success(response)
        return True

    def reject(self, req_id: int, error: Exception) -> bool:
        entry = self._pending.pop(req_id, None)
        if entry is None:
            logger.warning(f"dropping failure for unknown req_id {req_id}: {error}")
            return False
        logger.warning(f"{entry.kind} (req_id {req_id}) failed, rolling back: {error}")
        entry.rollback()
        message = error.message if isinstance(error, ApiError) else str(error)
        self._emit(ServerStatus("error", message))
        return True

    async def wait_idle(self) -> None:
        while self._inflight:
            await asyncio.wait(set(self._inflight))

    def abandon(self) -> None:
        """Cancel in-flight RPCs; whatever they return is dropped."""
        for task in list(self._inflight):
            task.cancel()
        self._inflight.clear()
        if self._pending or self._deferred:
            logger.info(f"abandoning {len(self._pending)} pending request(s)")
        self._pending.clear()
        self._deferred.clear()

    def _when_synced(self, key: Key, send: Callable[[], None]) -> None:
        task = self.tasks.get(key)
        if task is None:
            return
        if task.synced:
            send()
        else:
            self._deferred.setdefault(key, []).append(send)

    def _flush_deferred(self, key: Key) -> None:
        for send in self._deferred.pop(key, []):
            send()

    def _server_id(self, key: Key) -> int:
        task = self.task_get(key)
        if task.task_id is None:
            raise NotSyncedError(f"task {key} has no server id yet")
        return task.task_id

    def _forget_task(self, key: Key) -> None:
        task = self.tasks.remove(key)
        self.props.drop_task(key)
        self._deferred.pop(key, None)
        if task.task_id is not None and self._key_by_id.get(task.task_id) == key:
            del self._key_by_id[task.task_id]

    def _absorb(self, key: Key, other: Key) -> None:
        """Fold a duplicate entry for the same server row into key, then drop it."""
        for name, value in self.props.for_task(other).items():
            if self.props.get(key, name) is None:
                self.props.set(key, name, value)
        self._forget_task(other)

    def _apply_row(self, key: Key, row: ReadTaskShortResponse) -> None:
        task = self.tasks.get(key)
        task.name = row.name
        task.completed = row.completed
        task.last_edited = row.last_edited
        task.deps = list(row.deps)
        task.scripts = list(row.scripts)

    def _upsert_task(self, row: ReadTaskShortResponse) -> Key:
        key = self.task_key_for(row.task_id)
        if key is None:
            key = self.tasks.insert(Task(name=row.name, task_id=row.task_id))
            self._key_by_id[row.task_id] = key
        self._apply_row(key, row)
        return key

    def _fetch_task(self, key: Key) -> None:
        """Re-read a task row so the cache carries the server's last_edited."""
        task = self.tasks.get(key)
        if task is None or not task.synced:
            return
        task_id = task.task_id

        def on_success(row: ReadTaskShortResponse):
            current = self.tasks.get(key)
            if current is None or current.task_id != row.task_id:
                return
            self._apply_row(key, row)
            self._emit(TasksUpdate())

        self._issue(
            "task_get",
            lambda req_id: self.api.read_task(ReadTaskShortRequest(task_id=task_id, req_id=req_id)),
            on_success,
            lambda: None,
        )

    def _update(self, kind: str, key: Key, rollback: Callable[[], None], **changes) -> None:
        def send():
            task = self.tasks.get(key)
            if task is None:
                return
            task_id = task.task_id
            self._issue(
                kind,
                lambda req_id: self.api.update_task(UpdateTaskRequest(task_id=task_id, req_id=req_id, **changes)),
                lambda response: self._fetch_task(key),
                rollback,
            )

        self._when_synced(key, send)

    # Mutations: tâches

    def task_def(self, name: str, completed: bool = False) -> Key:
        key = self.tasks.insert(Task(name=name, completed=completed))
        self._emit(TasksUpdate())

        def on_success(response):
            task = self.tasks.get(key)
            if task is None:
                return
            other = self.task_key_for(response.task_id)
            if other is not None and other != key:
                # une synchro a déjà ramené la ligne: on garde l'entrée optimiste
                self._absorb(key, other)
            task.task_id = response.task_id
            self._key_by_id[response.task_id] = key
            self._emit(TasksUpdate())
            if key in self._deferred:
                # les mises à jour différées relisent la ligne elles-mêmes
                self._flush_deferred(key)
            else:
                self._fetch_task(key)

        def rollback():
            if key in self.tasks:
                self._forget_task(key)
            self._deferred.pop(key, None)
            self._emit(TasksUpdate())

        self._issue(
            "task_def",
            lambda req_id: self.api.create_task(CreateTaskRequest(name=name, completed=completed, req_id=req_id)),
            on_success,
            rollback,
        )
        return key

    def task_mod(
        self,
        key: Key,
        name: Optional[str] = None,
        completed: Optional[bool] = None,
        deps_add: Sequence[Key] = (),
        deps_remove: Sequence[Key] = (),
        scripts_add: Sequence[int] = (),
        scripts_remove: Sequence[int] = (),
    ) -> None:
        task = self.task_get(key)
        deps_to_add = [self._server_id(dep) for dep in deps_add]
        deps_to_remove = [self._server_id(dep) for dep in deps_remove]
        before = replace(task, deps=list(task.deps), scripts=list(task.scripts))

        if name is not None:
            task.name = name
        if completed is not None:
            task.completed = completed
        task.deps = _merge(task.deps, deps_to_add, deps_to_remove)
        task.scripts = _merge(task.scripts, list(scripts_add), list(scripts_remove))
        self._emit(TasksUpdate())

        def rollback():
            current = self.tasks.get(key)
            if current is None:
                return
            current.name = before.name
            current.completed = before.completed
            current.deps = before.deps
            current.scripts = before.scripts
            self._emit(TasksUpdate())

        self._update(
            "task_mod",
            key,
            rollback,
            name=name,
            checked=completed,
            deps_to_add=deps_to_add,
            deps_to_remove=deps_to_remove,
            scripts_to_add=list(scripts_add),
            scripts_to_remove=list(scripts_remove),
        )

    def task_rm(self, key: Key) -> None:
        task = self.task_get(key)
        task.pending_deletion = True
        self._emit(TasksUpdate())

        def on_success(response):
            if key in self.tasks:
                self._forget_task(key)
            self._emit(TasksUpdate())

        def rollback():
            current = self.tasks.get(key)
            if current is not None:
                current.pending_deletion = False
            self._emit(TasksUpdate())

        def send():
            task_id = self.tasks.get(key).task_id
            self._issue(
                "task_rm",
                lambda req_id: self.api.delete_task(DeleteTaskRequest(task_id=task_id, req_id=req_id)),
                on_success,
                rollback,
            )

        self._when_synced(key, send)

    # Mutations: propriétés

    def prop_def(self, key: Key, name: str, value: TaskPropVariant) -> None:
        self.task_get(key)
        registered = self.props.type_of(name)
        if registered is not None and registered != value.prop_type:
            raise PropertyTypeError(name, registered, value.prop_type)

        previous = self.props.get(key, name)
        self.props.set(key, name, value)
        self._emit(PropsUpdate())

        def rollback():
            if key in self.tasks:
                if previous is None:
                    self.props.remove(key, name)
                else:
                    self.props.set(key, name, previous)
            self._emit(PropsUpdate())

        self._update("prop_def", key, rollback, props_to_add=[TaskProp(name=name, value=value)])

    def prop_rm(self, key: Key, name: str) -> None:
        self.task_get(key)
        previous = self.props.remove(key, name)
        self._emit(PropsUpdate())

        def rollback():
            if previous is not None and key in self.tasks:
                self.props.set(key, name, previous)
            self._emit(PropsUpdate())

        self._update("prop_rm", key, rollback, props_to_remove=[name])

    # Mutations: vues

    def view_def(self, name: str, props: Sequence[str] = (), filter: Optional[Filter] = None) -> Key:
        filter = filter if filter is not None else NoneFilter()
        key = self.views.insert(View(name=name, props=list(props), filter=filter))
        self._emit(ViewsUpdate())

        def on_success(response):
            view = self.views.get(key)
            if view is None:
                return
            view.view_id = response.view_id
            self._emit(ViewsUpdate())
            self._spawn(self.view_refresh(key))

        def rollback():
            if key in self.views:
                self.views.remove(key)
            self._emit(ViewsUpdate())

        self._issue(
            "view_def",
            lambda req_id: self.api.create_view(
                CreateViewRequest(name=name, props=list(props), filter=filter, req_id=req_id)
            ),
            on_success,
            rollback,
        )
        return key

    def view_mod(
        self,
        key: Key,
        name: Optional[str] = None,
        props: Optional[List[str]] = None,
        filter: Optional[Filter] = None,
    ) -> None:
        view = self.view_get(key)
        if view.view_id is None:
            raise NotSyncedError(f"view {key} has no server id yet")
        before = replace(view, props=list(view.props))

        if name is not None:
            view.name = name
        if props is not None:
            view.props = list(props)
        if filter is not None:
            view.filter = filter
        self._emit(ViewsUpdate())
        data = ViewData(view_id=view.view_id, name=view.name, props=view.props, filter=view.filter)

        def rollback():
            current = self.views.get(key)
            if current is not None:
                current.name = before.name
                current.props = before.props
                current.filter = before.filter
            self._emit(ViewsUpdate())

        self._issue(
            "view_mod",
            lambda req_id: self.api.update_view(UpdateViewRequest(view=data, req_id=req_id)),
            lambda response: self._spawn(self.view_refresh(key)),
            rollback,
        )

    def view_rm(self, key: Key) -> None:
        view = self.view_get(key)
        if view.view_id is None:
            raise NotSyncedError(f"view {key} has no server id yet")
        view_id = view.view_id

        def on_success(response):
            if key in self.views:
                self.views.remove(key)
            self._emit(ViewsUpdate())

        # DELETE /view n'a pas de req_id en retour: résolu sur celui émis
        self._issue("view_rm", lambda req_id: self.api.delete_view(view_id), on_success, lambda: None)

    # Mutations: scripts

    def script_def(self, content: str) -> int:
        """Upload a script blob. Returns the req_id; ScriptUpdate(id) fires once stored."""

        def on_success(response):
            self.scripts[response.script_id] = content
            self._emit(ScriptUpdate(response.script_id))

        return self._issue(
            "script_def",
            lambda req_id: self.api.create_script(CreateScriptRequest(content=content, req_id=req_id)),
            on_success,
            lambda: None,
        )

    # Synchronisation

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _apply_views(self, views: List[ViewData]) -> None:
        by_id = {view.view_id: key for key, view in self.views.items() if view.view_id is not None}
        seen = set()
        for data in views:
            seen.add(data.view_id)
            key = by_id.get(data.view_id)
            if key is None:
                self.views.insert(View(name=data.name, props=list(data.props), filter=data.filter, view_id=data.view_id))
            else:
                view = self.views.get(key)
                view.name = data.name
                view.props = list(data.props)
                view.filter = data.filter
        for view_id, key in by_id.items():
            if view_id not in seen:
                self.views.remove(key)

    async def _load_rows(self, task_ids: List[int]) -> Set[str]:
        """Upsert the given task rows. Returns the property names they carry."""
        names: Set[str] = set()
        if not task_ids:
            return names
        rows = await self.api.read_tasks(
            [ReadTaskShortRequest(task_id=task_id, req_id=next_req_id()) for task_id in task_ids]
        )
        for entry in rows:
            if isinstance(entry, ReadTaskOk):
                self._upsert_task(entry.Ok)
                names.update(entry.Ok.props)
            else:
                logger.warning(f"task read failed during sync: {entry.Err}")
        return names

    async def _load_props(self, task_ids: List[int], names: List[str]) -> None:
        if not task_ids or not names:
            return
        response = await self.api.read_properties(
            PropertiesRequest(task_ids=task_ids, properties=names, req_id=next_req_id())
        )
        keys = [self.task_key_for(task_id) for task_id in task_ids]
        for column in response.res:
            for key, value in zip(keys, column.values):
                if key is None:
                    continue
                if value is None:
                    self.props.remove(key, column.name)
                else:
                    self.props.set(key, column.name, value)

    async def refresh(self) -> bool:
        """
        Pull views, every task row and the properties they carry from the
        server. Tasks the server no longer has are dropped from the cache.
        Returns False (and emits ServerStatus("error")) if the server could
        not be reached.
        """
        try:
            views = await self.api.read_views(next_req_id())
            self._apply_views(views.views)
            for key, view in list(self.views.items()):
                if key not in self.views or view.view_id is None:
                    continue
                listed = await self.api.view_tasks(ViewTasksRequest(view_id=view.view_id, req_id=next_req_id()))
                # la vue a pu être supprimée pendant l'attente
                if key in self.views:
                    view.tasks = listed.tasks

            every = await self.api.filter_tasks(NoneFilter(), next_req_id())
            task_ids = every.tasks
            names = await self._load_rows(task_ids)

            live = set(task_ids)
            for key, task in list(self.tasks.items()):
                if task.synced and task.task_id not in live:
                    self._forget_task(key)

            for key, view in self.views.items():
                names.update(view.props)
            await self._load_props(task_ids, sorted(names))
        except ApiError as e:
            logger.warning(f"refresh failed: {e}")
            self._emit(ServerStatus("error", e.message))
            return False

        self._emit(TasksUpdate())
        self._emit(PropsUpdate())
        self._emit(ViewsUpdate())
        self._emit(ServerStatus("ok", "synced"))
        return True

    async def view_refresh(self, key: Key) -> bool:
        """Re-evaluate one view and load the rows and projected properties it lists."""
        view = self.views.get(key)
        if view is None or view.view_id is None:
            return False
        try:
            listed = await self.api.view_tasks(ViewTasksRequest(view_id=view.view_id, req_id=next_req_id()))
            if key not in self.views:
                return False
            view.tasks = listed.tasks
            await self._load_rows([task_id for task_id in listed.tasks if self.task_key_for(task_id) is None])
            await self._load_props(listed.tasks, list(view.props))
        except ApiError as e:
            logger.warning(f"view refresh failed: {e}")
            self._emit(ServerStatus("error", e.message))
            return False
        self._emit(ViewsUpdate())
        self._emit(TasksUpdate())
        self._emit(PropsUpdate())
        return True

    async def script_load(self, script_id: int) -> Optional[str]:
        try:
            response = await self.api.read_script(ReadScriptRequest(script_id=script_id, req_id=next_req_id()))
        except ApiError as e:
            logger.warning(f"script {script_id} load failed: {e}")
            self._emit(ServerStatus("error", e.message))
            return None
        self.scripts[response.script_id] = response.content
        self._emit(ScriptUpdate(response.script_id))
        return response.content
