from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..models import ShopSession


def offline_session_id(shop: str) -> str:
    return f"offline_{shop}"


def store_session(
    db: Session,
    *,
    shop: str,
    access_token: str,
    session_id: str | None = None,
    state: str = "",
    is_online: bool = False,
    scope: str | None = None,
    expires: datetime | None = None,
    user_id: int | None = None,
) -> ShopSession:
    """Insert or update a session. Offline sessions default to ``offline_<shop>``."""
    session_id = session_id or offline_session_id(shop)
    record = db.get(ShopSession, session_id)
    if record is None:
        record = ShopSession(id=session_id, shop=shop, access_token=access_token)

    record.shop = shop
    record.access_token = access_token
    record.state = state
    record.is_online = is_online
    record.scope = scope
    record.expires = expires
    record.user_id = user_id

    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def load_session(db: Session, session_id: str) -> ShopSession | None:
    return db.get(ShopSession, session_id)


def load_offline_session(db: Session, shop: str) -> ShopSession | None:
    return load_session(db, offline_session_id(shop))


def find_sessions_by_shop(db: Session, shop: str) -> Sequence[ShopSession]:
    stmt = select(ShopSession).where(ShopSession.shop == shop).order_by(ShopSession.id)
    return db.execute(stmt).scalars().all()


def delete_sessions_for_shop(db: Session, shop: str) -> int:
    result = db.execute(delete(ShopSession).where(ShopSession.shop == shop))
    db.commit()
    return result.rowcount or 0
