"""SQLModel-backed paper store.

Implements the store interface the pipeline consumes: batched upsert keyed
on the paper id, the ``has_summary`` predicate, the most recent stored date,
flag updates and summary inserts. Every SQLAlchemy failure is re-raised as
:class:`~dailypapers.errors.PersistenceError`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .errors import PersistenceError
from .models import PAPER_MUTABLE_COLUMNS, Paper, Summary, utcnow

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}


class PaperStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("Store %s failed", action)
            raise PersistenceError(f"{action} failed: {exc}") from exc

    def upsert_papers(self, papers: Sequence[Paper]) -> int:
        """Insert papers, refreshing mutable columns of ids already stored."""
        if not papers:
            return 0
        columns = list(Paper.__table__.columns.keys())
        rows = [{name: getattr(paper, name) for name in columns} for paper in papers]
        with self._session("upsert_papers") as session:
            dialect = session.get_bind().dialect.name
            insert = _UPSERT_DIALECTS.get(dialect)
            if insert is not None:
                stmt = insert(Paper.__table__).values(rows)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["id"],
                    set_={name: stmt.excluded[name] for name in PAPER_MUTABLE_COLUMNS},
                )
                session.execute(stmt)
            else:
                for row in rows:
                    existing = session.get(Paper, row["id"])
                    if existing is None:
                        session.add(Paper(**row))
                        continue
                    for name in PAPER_MUTABLE_COLUMNS:
                        setattr(existing, name, row[name])
                    session.add(existing)
            session.commit()
        return len(rows)

    def select_without_summary(
        self, limit: Optional[int] = None, newest_first: bool = True
    ) -> List[Paper]:
        order = Paper.published_date.desc() if newest_first else Paper.published_date.asc()
        stmt = (
            select(Paper)
            .where(Paper.has_summary == False)  # noqa: E712
            .order_by(order, Paper.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session("select_without_summary") as session:
            return list(session.exec(stmt).all())

    def most_recent_date(self) -> Optional[date]:
        with self._session("most_recent_date") as session:
            return session.exec(select(func.max(Paper.published_date))).first()

    def update_flag(self, paper_id: str, has_summary: bool) -> bool:
        stmt = (
            update(Paper)
            .where(Paper.id == paper_id)
            .values(has_summary=has_summary, updated_at=utcnow())
        )
        with self._session("update_flag") as session:
            result = session.execute(stmt)
            session.commit()
            return bool(result.rowcount)

    def insert_summary(self, summary: Summary) -> Summary:
        with self._session("insert_summary") as session:
            session.add(summary)
            session.commit()
            session.refresh(summary)
            return summary

    def get_paper(self, paper_id: str) -> Optional[Paper]:
        with self._session("get_paper") as session:
            return session.get(Paper, paper_id)

    def latest_summary(self, paper_id: str) -> Optional[Summary]:
        stmt = (
            select(Summary)
            .where(Summary.paper_id == paper_id)
            .order_by(Summary.created_at.desc(), Summary.id.desc())
            .limit(1)
        )
        with self._session("latest_summary") as session:
            return session.exec(stmt).first()

    def list_papers(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        sort_by: str = "date",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Paper], int]:
        """Return one page of papers and the total matching the date filters."""
        conditions = []
        if start_date:
            conditions.append(Paper.published_date >= start_date)
        if end_date:
            conditions.append(Paper.published_date <= end_date)

        column = Paper.upvotes if sort_by == "upvotes" else Paper.published_date
        ordering = column.asc() if sort_order == "asc" else column.desc()
        offset = max(page - 1, 0) * limit

        stmt = select(Paper).where(*conditions).order_by(ordering, Paper.id)
        count_stmt = select(func.count()).select_from(Paper).where(*conditions)
        with self._session("list_papers") as session:
            total = session.exec(count_stmt).one()
            papers = list(session.exec(stmt.offset(offset).limit(limit)).all())
        return papers, int(total)

    def reset_summary_flags(self) -> int:
        """Mark every paper as lacking a summary; summary rows are kept."""
        stmt = (
            update(Paper)
            .where(Paper.has_summary == True)  # noqa: E712
            .values(has_summary=False, updated_at=utcnow())
        )
        with self._session("reset_summary_flags") as session:
            result = session.execute(stmt)
            session.commit()
            return int(result.rowcount or 0)
