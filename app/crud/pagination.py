# app/crud/pagination.py
from typing import List, Optional, Tuple
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session


def fetch_keyset_page(db: Session, query, model, limit: int, before_id: Optional[int] = None) -> Tuple[List, Optional[int]]:
    """
    Newest `limit` rows of `query` strictly older than the row `before_id`,
    returned in ascending (created_at, id) order.

    The second element is the id of the oldest returned row when older rows
    remain, otherwise None.
    """
    if before_id is not None:
        cursor = db.query(model.created_at).filter(model.id == before_id).first()
        if cursor is None:
            return [], None
        query = query.where(
            or_(
                model.created_at < cursor.created_at,
                and_(model.created_at == cursor.created_at, model.id < before_id),
            )
        )

    rows = db.execute(
        query.order_by(model.created_at.desc(), model.id.desc()).limit(limit + 1)
    ).all()

    next_cursor = None
    if len(rows) > limit:
        rows = rows[:limit]
        next_cursor = rows[-1].id
    rows.reverse()
    return rows, next_cursor
