from sqlalchemy.orm import Session

from abn.core.database import transaction
from abn.core.errors import NotFound
from abn.models.script import Script


def create_script(db: Session, content: str) -> int:
    with transaction(db):
        script = Script(content=content)
        db.add(script)
        db.flush()
        script_id = script.id
    return script_id


def read_script(db: Session, script_id: int) -> Script:
    script = db.get(Script, script_id)
    if script is None:
        raise NotFound("script", script_id)
    return script
