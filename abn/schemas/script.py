from pydantic import BaseModel

from abn.schemas.task import ReqID


class CreateScriptRequest(BaseModel):
    content: str
    req_id: ReqID = 0


class CreateScriptResponse(BaseModel):
    script_id: int
    req_id: ReqID = 0


class ReadScriptRequest(BaseModel):
    script_id: int
    req_id: ReqID = 0


class ReadScriptResponse(BaseModel):
    script_id: int
    content: str
    req_id: ReqID = 0
