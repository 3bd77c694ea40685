"""
Database abstraction for the shared content table and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

HOME_TABLE = "Home"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class DbClient(Protocol):
    """Interface for access to the shared content table."""

    def get_page(self, page_name: str) -> Optional["PageRecord"]:
        ...

    def insert_page(self, page_name: str, data: dict) -> "PageRecord":
        ...

    def update_page(self, row_id: int, data: dict) -> "PageRecord":
        ...

    def list_pages(self) -> list["PageRecord"]:
        ...


class PageNotFoundError(LookupError):
    """Raised when an update targets a row id that does not exist."""


class DuplicatePageError(LookupError):
    """Raised when more than one row carries the same page name."""

    def __init__(self, page_name: str):
        self.page_name = page_name
        super().__init__(f"More than one {HOME_TABLE} row for page {page_name!r}")


class PageExistsError(ValueError):
    """Raised when inserting a page that already has a row."""

    def __init__(self, page_name: str):
        self.page_name = page_name
        super().__init__(f"{HOME_TABLE} row for page {page_name!r} already exists")


@dataclass
class PageRecord:
    """One row of the content table: every section of a page in one JSON document."""

    id: int
    page_name: str
    data: dict
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "page_name": self.page_name,
            "data": self.data,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.rows: Dict[int, PageRecord] = {}
        self._next_id = 1
        # Sync routes run in FastAPI's thread pool.
        self._lock = threading.Lock()

    def _matches(self, page_name: str) -> list[PageRecord]:
        return [row for row in self.rows.values() if row.page_name == page_name]

    def get_page(self, page_name: str) -> Optional[PageRecord]:
        with self._lock:
            matches = self._matches(page_name)
            if len(matches) > 1:
                raise DuplicatePageError(page_name)
            return copy.deepcopy(matches[0]) if matches else None

    def insert_page(self, page_name: str, data: dict) -> PageRecord:
        with self._lock:
            if self._matches(page_name):
                raise PageExistsError(page_name)
            now = utc_now()
            record = PageRecord(
                id=self._next_id,
                page_name=page_name,
                data=copy.deepcopy(data),
                created_at=now,
                updated_at=now,
            )
            self.rows[record.id] = record
            self._next_id += 1
            return copy.deepcopy(record)

    def update_page(self, row_id: int, data: dict) -> PageRecord:
        with self._lock:
            record = self.rows.get(row_id)
            if not record:
                raise PageNotFoundError(row_id)
            record.data = copy.deepcopy(data)
            record.updated_at = utc_now()
            return copy.deepcopy(record)

    def list_pages(self) -> list[PageRecord]:
        with self._lock:
            return [copy.deepcopy(row) for row in self.rows.values()]


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_record(self, row: "HomeRow") -> PageRecord:
        return PageRecord(
            id=row.id,
            page_name=row.page_name,
            data=row.data,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def get_page(self, page_name: str) -> Optional[PageRecord]:
        with self.Session() as session:
            stmt = select(HomeRow).where(HomeRow.page_name == page_name).limit(2)
            rows = session.execute(stmt).scalars().all()
            if len(rows) > 1:
                raise DuplicatePageError(page_name)
            return self._to_record(rows[0]) if rows else None

    def insert_page(self, page_name: str, data: dict) -> PageRecord:
        now = utc_now()
        with self.Session() as session:
            row = HomeRow(
                page_name=page_name,
                data=data,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise PageExistsError(page_name) from exc
            session.refresh(row)
            return self._to_record(row)

    def update_page(self, row_id: int, data: dict) -> PageRecord:
        with self.Session() as session:
            row = session.get(HomeRow, row_id)
            if not row:
                raise PageNotFoundError(row_id)
            row.data = data
            row.updated_at = utc_now()
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def list_pages(self) -> list[PageRecord]:
        with self.Session() as session:
            rows = session.execute(select(HomeRow).order_by(HomeRow.id.asc())).scalars()
            return [self._to_record(row) for row in rows]


Base = declarative_base()


class HomeRow(Base):
    __tablename__ = HOME_TABLE

    id = Column(Integer, primary_key=True, autoincrement=True)
    page_name = Column(String, nullable=False, unique=True, index=True)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
