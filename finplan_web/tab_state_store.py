"""Persistence layer for planner tab state.

Each planner tab (loan calculator, income growth, net possession, the two
comparison scenarios, ...) keeps a snapshot of the parameters it was last used
with, so the browser can restore the form on the next visit. Snapshots are
keyed by the visitor's user token and a tab identifier and overwritten on
every change.

It defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///finplan_tab_state.sqlite3"


class TabStateModel(Base):
    __tablename__ = "tab_states"

    user_token = Column(String(64), primary_key=True)
    tab_id = Column(String(64), primary_key=True)
    state_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class TabStateStore:
    """Database-backed key-value cache of tab parameter snapshots."""

    def __init__(self, url: str, *, max_tabs_per_user: int = 20) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_tabs_per_user = max_tabs_per_user

    def save(self, user_token: str, tab_id: str, state: Dict[str, Any]) -> None:
        if not user_token or not tab_id:
            return
        payload = json.dumps(state)
        with self._session_factory() as session:
            row = session.get(TabStateModel, (user_token, tab_id))
            if row is None:
                session.add(TabStateModel(user_token=user_token, tab_id=tab_id, state_json=payload))
            else:
                row.state_json = payload
                row.updated_at = datetime.utcnow()
            session.commit()
        self._trim_user(user_token)

    def load(self, user_token: str, tab_id: str) -> Optional[Dict[str, Any]]:
        if not user_token or not tab_id:
            return None
        with self._session_factory() as session:
            row = session.get(TabStateModel, (user_token, tab_id))
            if row is None:
                return None
            try:
                return json.loads(row.state_json)
            except ValueError:
                logger.error("Discarding unreadable state for tab %s", tab_id)
                session.delete(row)
                session.commit()
                return None

    def list_tabs(self, user_token: str) -> List[str]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(TabStateModel.tab_id)
                .where(TabStateModel.user_token == user_token)
                .order_by(TabStateModel.tab_id.asc())
            ).scalars()
            return list(rows)

    def clear(self, user_token: str, tab_id: str) -> None:
        if not user_token or not tab_id:
            return
        with self._session_factory() as session:
            row = session.get(TabStateModel, (user_token, tab_id))
            if row is not None:
                session.delete(row)
                session.commit()

    def _trim_user(self, user_token: str) -> None:
        if not self._max_tabs_per_user or self._max_tabs_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(TabStateModel)
                .where(TabStateModel.user_token == user_token)
                .order_by(TabStateModel.updated_at.desc())
            ).scalars().all()
            if len(rows) <= self._max_tabs_per_user:
                return
            for row in rows[self._max_tabs_per_user :]:
                session.delete(row)
            session.commit()


def create_store_from_env(url: str | None, max_tabs_per_user: str | None = None) -> TabStateStore:
    limit = int(max_tabs_per_user) if max_tabs_per_user else 20
    return TabStateStore(url or DEFAULT_DATABASE_URL, max_tabs_per_user=limit)
