from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from abn.core.database import get_db

router = APIRouter(tags=["health"])


@router.get("/z")
def healthz(db: Session = Depends(get_db)):
    # API up + base joignable
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return {"status": "degraded", "database": "unreachable"}
    return {"status": "ok", "database": "ok"}
