"""
HTTP client for the abn server: one coroutine per endpoint.

Every endpoint takes a JSON body, GET and DELETE included, so calls go
through ``AsyncClient.request``. Any failure (non-2xx, transport error,
timeout) comes back as ApiError.
"""

import logging
from typing import Any, List, Optional, Union

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from abn.client.errors import ApiError
from abn.schemas.filter import Filter, serialize_filter
from abn.schemas.property import (
    PropertiesRequest,
    PropertiesResponse,
    PropertyRequest,
    PropertyResponse,
)
from abn.schemas.script import (
    CreateScriptRequest,
    CreateScriptResponse,
    ReadScriptRequest,
    ReadScriptResponse,
)
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
from abn.schemas.view import (
    CreateViewRequest,
    CreateViewResponse,
    FilterResponse,
    UpdateViewRequest,
    ViewsResponse,
    ViewTasksRequest,
)

logger = logging.getLogger(__name__)

_read_batch_adapter = TypeAdapter(List[Union[ReadTaskOk, ReadTaskErr]])
_create_batch_adapter = TypeAdapter(List[CreateTaskResponse])
_update_batch_adapter = TypeAdapter(List[UpdateTaskResponse])
_req_ids_adapter = TypeAdapter(List[int])


def _body(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, list):
        return [_body(item) for item in payload]
    return payload


def _parse(parser, data: Any):
    try:
        return parser(data)
    except ValidationError as e:
        raise ApiError(f"unexpected response shape: {e}") from e


class ApiClient:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8080",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def _call(self, method: str, path: str, payload: Any = None) -> Any:
        try:
            response = await self._client.request(method, path, json=_body(payload))
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out")
            raise ApiError(f"request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} transport error: {e}")
            raise ApiError(str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            message = detail if isinstance(detail, str) else str(detail)
            raise ApiError(message, status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"malformed response body: {e}", status=response.status_code) from e

    # Tâches

    async def read_task(self, req: ReadTaskShortRequest) -> ReadTaskShortResponse:
        data = await self._call("GET", "/task", req)
        return _parse(ReadTaskShortResponse.model_validate, data)

    async def read_tasks(self, reqs: List[ReadTaskShortRequest]) -> List[Union[ReadTaskOk, ReadTaskErr]]:
        data = await self._call("GET", "/tasks", reqs)
        return _parse(_read_batch_adapter.validate_python, data)

    async def create_task(self, req: CreateTaskRequest) -> CreateTaskResponse:
        data = await self._call("POST", "/task", req)
        return _parse(CreateTaskResponse.model_validate, data)

    async def create_tasks(self, reqs: List[CreateTaskRequest]) -> List[CreateTaskResponse]:
        data = await self._call("POST", "/tasks", reqs)
        return _parse(_create_batch_adapter.validate_python, data)

    async def update_task(self, req: UpdateTaskRequest) -> UpdateTaskResponse:
        data = await self._call("PUT", "/task", req)
        return _parse(UpdateTaskResponse.model_validate, data)

    async def update_tasks(self, reqs: List[UpdateTaskRequest]) -> List[UpdateTaskResponse]:
        data = await self._call("PUT", "/tasks", reqs)
        return _parse(_update_batch_adapter.validate_python, data)

    async def delete_task(self, req: DeleteTaskRequest) -> int:
        return int(await self._call("DELETE", "/task", req))

    async def delete_tasks(self, reqs: List[DeleteTaskRequest]) -> List[int]:
        data = await self._call("DELETE", "/tasks", reqs)
        return _parse(_req_ids_adapter.validate_python, data)

    # Propriétés

    async def read_property(self, req: PropertyRequest) -> PropertyResponse:
        data = await self._call("GET", "/prop", req)
        return _parse(PropertyResponse.model_validate, data)

    async def read_properties(self, req: PropertiesRequest) -> PropertiesResponse:
        data = await self._call("GET", "/props", req)
        return _parse(PropertiesResponse.model_validate, data)

    # Vues et filtres

    async def filter_tasks(self, filter: Filter, req_id: int = 0) -> FilterResponse:
        data = await self._call("GET", "/filter", {"filter": serialize_filter(filter), "req_id": req_id})
        return _parse(FilterResponse.model_validate, data)

    async def read_views(self, req_id: int = 0) -> ViewsResponse:
        data = await self._call("GET", "/views", req_id)
        return _parse(ViewsResponse.model_validate, data)

    async def create_view(self, req: CreateViewRequest) -> CreateViewResponse:
        data = await self._call("POST", "/view", req)
        return _parse(CreateViewResponse.model_validate, data)

    async def update_view(self, req: UpdateViewRequest) -> int:
        return int(await self._call("PUT", "/view", req))

    async def delete_view(self, view_id: int) -> None:
        await self._call("DELETE", "/view", view_id)

    async def view_tasks(self, req: ViewTasksRequest) -> FilterResponse:
        data = await self._call("GET", "/view/tasks", req)
        return _parse(FilterResponse.model_validate, data)

    # Scripts

    async def create_script(self, req: CreateScriptRequest) -> CreateScriptResponse:
        data = await self._call("POST", "/script", req)
        return _parse(CreateScriptResponse.model_validate, data)

    async def read_script(self, req: ReadScriptRequest) -> ReadScriptResponse:
        data = await self._call("GET", "/script", req)
        return _parse(ReadScriptResponse.model_validate, data)
