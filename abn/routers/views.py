from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from abn.core.database import get_db
from abn.schemas.view import (
    CreateViewRequest,
    CreateViewResponse,
    FilterRequest,
    FilterResponse,
    UpdateViewRequest,
    ViewsResponse,
    ViewTasksRequest,
)
from abn.services import view_service
from abn.services.filter_service import evaluate_filter

router = APIRouter(tags=["views"])


@router.get("/filter", response_model=FilterResponse)
def filter_tasks(req: FilterRequest, db: Session = Depends(get_db)):
    """Ids of the tasks matching a filter (no duplicates, primary key order)."""
    return FilterResponse(tasks=evaluate_filter(db, req.filter), req_id=req.req_id)


@router.get("/views", response_model=ViewsResponse)
def get_views(req_id: int = Body(0, ge=0, le=2**64 - 1), db: Session = Depends(get_db)):
    # le corps est juste le req_id
    return ViewsResponse(views=view_service.list_views(db), req_id=req_id)


@router.post("/view", response_model=CreateViewResponse)
def create_view(req: CreateViewRequest, db: Session = Depends(get_db)):
    view_id = view_service.create_view(db, req)
    return CreateViewResponse(view_id=view_id, req_id=req.req_id)


@router.put("/view", response_model=int)
def update_view(req: UpdateViewRequest, db: Session = Depends(get_db)):
    view_service.update_view(db, req.view)
    return req.req_id


@router.delete("/view")
def delete_view(view_id: int = Body(...), db: Session = Depends(get_db)):
    view_service.delete_view(db, view_id)
    return None


@router.get("/view/tasks", response_model=FilterResponse)
def get_view_tasks(req: ViewTasksRequest, db: Session = Depends(get_db)):
    return FilterResponse(tasks=view_service.evaluate_view(db, req.view_id), req_id=req.req_id)
