from pydantic import BaseModel
from typing import List

from abn.schemas.filter import Filter, NoneFilter
from abn.schemas.task import ReqID


class ViewData(BaseModel):
    view_id: int
    name: str
    props: List[str] = []
    filter: Filter = NoneFilter()


class ViewsResponse(BaseModel):
    views: List[ViewData]
    req_id: ReqID = 0


class CreateViewRequest(BaseModel):
    name: str
    props: List[str] = []
    filter: Filter = NoneFilter()
    req_id: ReqID = 0


class CreateViewResponse(BaseModel):
    view_id: int
    req_id: ReqID = 0


class UpdateViewRequest(BaseModel):
    view: ViewData
    req_id: ReqID = 0


class FilterRequest(BaseModel):
    filter: Filter
    req_id: ReqID = 0


class ViewTasksRequest(BaseModel):
    view_id: int
    req_id: ReqID = 0


class FilterResponse(BaseModel):
    tasks: List[int]
    req_id: ReqID = 0
