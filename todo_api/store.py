import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import event, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import Session, SQLModel, create_engine, func, select

from .models import Category, Recurrence, Task

logger = logging.getLogger(__name__)

SORT_DUE_DATE = "dueDate"
SORT_CREATED_AT = "createdAt"


class StoreError(Exception):
    """Raised when the underlying database call fails."""


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_conn, connection_record) -> None:
    # SQLite's built-in lower() only folds ASCII; ilike compiles to lower(...) LIKE lower(...).
    dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)


def _create_engine(database_url: str):
    if database_url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # In-memory SQLite lives on a single connection.
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=False, **kwargs)
        event.listen(engine, "connect", _register_sqlite_functions)
        return engine

    # Postgres and friends: disable pooling for serverless and enable pre-ping
    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
    )


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class TaskStore:
    """Task persistence on top of a SQLModel engine.

    One instance is built at process start and handed to the HTTP layer and
    the scheduler. Each method opens its own session.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self.engine = _create_engine(database_url)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session, translating driver failures into StoreError."""
        session = Session(self.engine)
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            session.close()

    def create_tables(self) -> None:
        try:
            SQLModel.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        logger.info("TaskStore ready url=%s", self.engine.url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        self.engine.dispose()

    def count_tasks(self) -> int:
        with self.session() as session:
            return int(session.exec(select(func.count()).select_from(Task)).one())

    def list_tasks(
        self,
        *,
        completed: Optional[bool] = None,
        category: Optional[Category] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> List[Task]:
        """Return one page of tasks matching every given filter."""
        query = select(Task)

        if completed is not None:
            query = query.where(Task.completed == completed)
        if category is not None:
            query = query.where(Task.category == category)
        if search:
            query = query.where(Task.title.ilike(f"%{_escape_like(search)}%", escape="\\"))

        if sort_by == SORT_DUE_DATE:
            query = query.order_by(Task.due_date.asc())
        elif sort_by == SORT_CREATED_AT:
            query = query.order_by(Task.created_at.desc())

        query = query.offset((page - 1) * limit).limit(limit)

        with self.session() as session:
            return list(session.exec(query).all())

    def get_task(self, task_id: str) -> Optional[Task]:
        with self.session() as session:
            return session.get(Task, task_id)

    def create_task(self, **fields: Any) -> Task:
        task = Task(**fields)
        with self.session() as session:
            session.add(task)
            session.commit()
            session.refresh(task)
        logger.debug("Task created id=%s recurring=%s due_date=%s", task.id, task.recurring.value, task.due_date)
        return task

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        """Write exactly the given fields; None when the id is unknown."""
        with self.session() as session:
            task = session.get(Task, task_id)
            if task is None:
                return None

            for field, value in fields.items():
                setattr(task, field, value)

            session.add(task)
            session.commit()
            session.refresh(task)
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(fields))
        return task

    def delete_task(self, task_id: str) -> bool:
        with self.session() as session:
            task = session.get(Task, task_id)
            if task is None:
                return False
            session.delete(task)
            session.commit()
        logger.debug("Task deleted id=%s", task_id)
        return True

    def complete_all(self) -> int:
        try:
            with self.engine.begin() as conn:
                matched = conn.execute(update(Task).values(completed=True)).rowcount
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        logger.debug("Tasks marked completed count=%s", matched)
        return matched

    def list_due_between(self, start: datetime, end: datetime) -> List[Task]:
        """Open tasks with start <= due_date < end."""
        query = select(Task).where(
            Task.completed == False,  # noqa: E712
            Task.due_date >= start,
            Task.due_date < end,
        )
        with self.session() as session:
            return list(session.exec(query).all())

    def list_recurring(self) -> List[Task]:
        query = select(Task).where(Task.recurring != Recurrence.NONE)
        with self.session() as session:
            return list(session.exec(query).all())
