from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from abn.core.database import get_db
from abn.schemas.script import CreateScriptRequest, CreateScriptResponse, ReadScriptRequest, ReadScriptResponse
from abn.services import script_service

router = APIRouter(tags=["scripts"])


@router.post("/script", response_model=CreateScriptResponse)
def create_script(req: CreateScriptRequest, db: Session = Depends(get_db)):
    script_id = script_service.create_script(db, req.content)
    return CreateScriptResponse(script_id=script_id, req_id=req.req_id)


@router.get("/script", response_model=ReadScriptResponse)
def get_script(req: ReadScriptRequest, db: Session = Depends(get_db)):
    script = script_service.read_script(db, req.script_id)
    return ReadScriptResponse(script_id=script.id, content=script.content, req_id=req.req_id)
