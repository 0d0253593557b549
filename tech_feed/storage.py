"""Persistent key/value store for per-user viewer state."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Set, Tuple

from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)

STARRED_KEY = "tech_feed_starred"
READ_KEY = "tech_feed_read"


class Base(DeclarativeBase):
    pass


class StoredValue(Base):
    """A single string value under a fixed key."""

    __tablename__ = "local_storage"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


def init_engine(connection_string: str) -> Engine:
    """Initialize the database engine and create the table."""
    logger.info("Initializing state storage: %s", connection_string)
    engine = create_engine(connection_string)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for the given engine."""
    return sessionmaker(bind=engine)


def get_value(session: Session, key: str) -> Optional[str]:
    stmt = select(StoredValue).where(StoredValue.key == key)
    result = session.execute(stmt).scalar_one_or_none()
    return result.value if result else None


def set_value(session: Session, key: str, value: str) -> None:
    """Insert or replace the value stored under key."""
    stmt = select(StoredValue).where(StoredValue.key == key)
    existing = session.execute(stmt).scalar_one_or_none()

    if existing:
        existing.value = value
        existing.updated_at = datetime.now(timezone.utc)
    else:
        session.add(
            StoredValue(key=key, value=value, updated_at=datetime.now(timezone.utc))
        )

    try:
        session.commit()
    except Exception:
        session.rollback()
        raise


class UserStateStore:
    """Starred and read link sets, each kept as a JSON array under its own key."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, connection_string: str) -> "UserStateStore":
        return cls(get_session_factory(init_engine(connection_string)))

    def _read_ids(self, key: str) -> Set[str]:
        try:
            with self._session_factory() as session:
                raw = get_value(session, key)
        except SQLAlchemyError as exc:
            logger.warning("Could not read %s from storage: %s", key, exc)
            return set()

        if raw is None:
            return set()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored value for %s is not valid JSON; ignoring", key)
            return set()
        if not isinstance(payload, list):
            logger.warning("Stored value for %s is not a list; ignoring", key)
            return set()
        return {value for value in payload if isinstance(value, str)}

    def _write_ids(self, key: str, ids: Iterable[str]) -> None:
        value = json.dumps(sorted(set(ids)))
        with self._session_factory() as session:
            set_value(session, key, value)
        logger.debug("Stored %s", key)

    def load(self) -> Tuple[Set[str], Set[str]]:
        """Return (starred_ids, read_ids); anything unreadable counts as empty."""
        return self._read_ids(STARRED_KEY), self._read_ids(READ_KEY)

    def save_starred(self, ids: Iterable[str]) -> None:
        self._write_ids(STARRED_KEY, ids)

    def save_read(self, ids: Iterable[str]) -> None:
        self._write_ids(READ_KEY, ids)
