from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from abn.core.database import get_db
from abn.schemas.property import PropertiesRequest, PropertiesResponse, PropertyRequest, PropertyResponse
from abn.services import property_service

router = APIRouter(tags=["props"])


@router.get("/prop", response_model=PropertyResponse)
def get_prop(req: PropertyRequest, db: Session = Depends(get_db)):
    """Values of some properties of one task (value null when the task doesn't have it)."""
    return property_service.get_task_properties(db, req)


@router.get("/props", response_model=PropertiesResponse)
def get_props(req: PropertiesRequest, db: Session = Depends(get_db)):
    """For each property name, its value in each of the tasks, in task_ids order."""
    return property_service.get_tasks_properties(db, req)
