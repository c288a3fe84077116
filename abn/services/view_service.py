"""View service: stored filters + projected property names"""

import logging
from typing import List

from sqlalchemy.orm import Session

from abn.core.database import transaction
from abn.core.errors import NotFound
from abn.models.view import View
from abn.schemas.filter import deserialize_filter, serialize_filter
from abn.schemas.view import CreateViewRequest, ViewData
from abn.services.filter_service import evaluate_filter

logger = logging.getLogger(__name__)


def _to_view_data(view: View) -> ViewData:
    return ViewData(
        view_id=view.id,
        name=view.name,
        props=list(view.properties or []),
        filter=deserialize_filter(view.filter),
    )


def get_view_or_404(db: Session, view_id: int) -> View:
    view = db.get(View, view_id)
    if view is None:
        raise NotFound("view", view_id)
    return view


def list_views(db: Session) -> List[ViewData]:
    views = db.query(View).order_by(View.id).all()
    return [_to_view_data(view) for view in views]


def create_view(db: Session, req: CreateViewRequest) -> int:
    with transaction(db):
        view = View(name=req.name, properties=list(req.props), filter=serialize_filter(req.filter))
        db.add(view)
        db.flush()
        view_id = view.id
    logger.info(f"created view {view_id}")
    return view_id


def update_view(db: Session, data: ViewData) -> None:
    # name, props et filtre remplacés ensemble
    with transaction(db):
        view = get_view_or_404(db, data.view_id)
        view.name = data.name
        view.properties = list(data.props)
        view.filter = serialize_filter(data.filter)
    logger.info(f"updated view {data.view_id}")


def delete_view(db: Session, view_id: int) -> None:
    with transaction(db):
        db.delete(get_view_or_404(db, view_id))
    logger.info(f"deleted view {view_id}")


def evaluate_view(db: Session, view_id: int) -> List[int]:
    """Task ids selected by the view's stored filter."""
    view = get_view_or_404(db, view_id)
    return evaluate_filter(db, deserialize_filter(view.filter))
