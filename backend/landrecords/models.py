from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import DateTime, Integer, String, UniqueConstraint, func, or_, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from .querygen import (
    build_distinct_sql,
    build_record_sql,
    build_search_sql,
    build_summary_source_sql,
    build_update_sql,
)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users_react"
    __table_args__ = (UniqueConstraint("username", name="uq_users_react_username"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String, nullable=False)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="user")  # free-form, 'admin' | 'user'
    reset_token: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    reset_expires: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


def init_db(engine: Engine) -> None:
    # Only the user table is owned here; all_data is bulk-loaded elsewhere
    Base.metadata.create_all(bind=engine)


# --- Users ---
def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def get_user_by_identifier(db: Session, identifier: str) -> Optional[User]:
    """Match a forgot-password identifier against username first, then e-mail."""
    ident = (identifier or "").strip()
    if not ident:
        return None
    return (
        db.query(User)
        .filter(or_(User.username == ident, func.lower(User.email) == ident.lower()))
        .order_by(User.id)
        .first()
    )


def has_admin(db: Session) -> bool:
    return db.query(User).filter(User.role == "admin").first() is not None


# --- Plot records ---
def list_distinct(db: Session, level: str, filters: Mapping[str, Any] | None = None) -> list[str]:
    q = build_distinct_sql(level, filters)
    return [row.value for row in db.execute(text(q.sql), q.params)]


def search_records(db: Session, filters: Mapping[str, Any]) -> list[dict]:
    q = build_search_sql(filters)
    return [dict(row) for row in db.execute(text(q.sql), q.params).mappings()]


def get_record(db: Session, record_id: int) -> Optional[dict]:
    q = build_record_sql(record_id)
    row = db.execute(text(q.sql), q.params).mappings().first()
    return dict(row) if row is not None else None


def update_record(db: Session, record_id: int, fields: Mapping[str, Any]) -> Optional[dict]:
    """Write ``fields`` to one record and return the stored row, or None when the id is unknown."""
    q = build_update_sql(record_id, fields)
    result = db.execute(text(q.sql), q.params)
    if result.rowcount == 0:
        db.rollback()
        return None
    db.commit()
    return get_record(db, record_id)


def fetch_summary_source(db: Session, group_column: Any, filters: Mapping[str, Any] | None = None) -> list[dict]:
    q = build_summary_source_sql(group_column, filters)
    return [dict(row) for row in db.execute(text(q.sql), q.params).mappings()]
