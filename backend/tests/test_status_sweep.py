from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from usertasks.db.base import Base
from usertasks.db.models.task import Task, TaskStatus
from usertasks.db.models.user import User
from usertasks.repositories.orm import SqlAlchemyTaskRepository, SqlAlchemyUserRepository
from usertasks.services import task_service
from usertasks.services.errors import ConcurrentModificationError
from usertasks.services.task_service import TaskService, build_task_service, run_status_sweep

NOW = datetime(2026, 10, 18, 12, 0, 0)


class RecordingTaskRepository(SqlAlchemyTaskRepository):
    def __init__(self, db):
        super().__init__(db)
        self.batches = []

    def save_all(self, tasks):
        self.batches.append([task.id for task in tasks])
        return super().save_all(tasks)


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def _seed(db, *schedule: datetime) -> list[int]:
    user = User(username="ada")
    db.add(user)
    db.commit()
    tasks = [
        Task(user_id=user.id, name=f"t{i}", description="", date_time=when, status=TaskStatus.PENDING)
        for i, when in enumerate(schedule)
    ]
    db.add_all(tasks)
    db.commit()
    return [task.id for task in tasks]


def test_sweep_completes_only_overdue_tasks(db):
    past_id, future_id = _seed(db, datetime(2026, 10, 18, 11, 59, 59), datetime(2026, 10, 18, 12, 0, 1))

    stats = run_status_sweep(db, now=NOW)

    assert (stats.pending, stats.completed) == (2, 1)
    db.expire_all()
    assert db.get(Task, past_id).status == TaskStatus.DONE
    assert db.get(Task, future_id).status == TaskStatus.PENDING


def test_sweep_requires_strictly_past_schedule(db):
    (task_id,) = _seed(db, NOW)

    stats = run_status_sweep(db, now=NOW)

    assert stats.completed == 0
    db.expire_all()
    assert db.get(Task, task_id).status == TaskStatus.PENDING


def test_sweep_is_idempotent(db):
    past_id, future_id = _seed(db, datetime(2026, 10, 1, 8, 0, 0), datetime(2026, 11, 1, 8, 0, 0))
    repo = RecordingTaskRepository(db)
    service = TaskService(repo, SqlAlchemyUserRepository(db))

    service.complete_overdue_tasks(now=NOW)
    version_after_first = db.get(Task, past_id).version_id
    second = service.complete_overdue_tasks(now=NOW)

    assert repo.batches == [[past_id], []]
    assert (second.pending, second.completed) == (1, 0)
    db.expire_all()
    assert db.get(Task, past_id).status == TaskStatus.DONE
    assert db.get(Task, past_id).version_id == version_after_first
    assert db.get(Task, future_id).status == TaskStatus.PENDING


def test_sweep_with_no_pending_tasks_is_a_noop(db):
    repo = RecordingTaskRepository(db)
    stats = TaskService(repo, SqlAlchemyUserRepository(db)).complete_overdue_tasks(now=NOW)

    assert (stats.pending, stats.completed) == (0, 0)
    assert repo.batches == [[]]


def test_sweep_ignores_tasks_already_done(db):
    (task_id,) = _seed(db, datetime(2020, 1, 1))
    task = db.get(Task, task_id)
    task.status = TaskStatus.DONE
    db.commit()

    stats = run_status_sweep(db, now=NOW)
    assert stats.pending == 0


def test_sweep_defaults_to_wall_clock_in_scheduler_timezone(db, monkeypatch):
    _seed(db, datetime(2000, 1, 1), datetime(2999, 1, 1))
    monkeypatch.setattr(task_service.settings, "scheduler_timezone", "Pacific/Kiritimati")

    stats = run_status_sweep(db)
    assert stats.completed == 1


def test_sweep_logs_counts(db, caplog):
    _seed(db, datetime(2026, 10, 1), datetime(2026, 10, 2), datetime(2027, 1, 1))
    caplog.set_level("INFO")

    run_status_sweep(db, now=NOW)

    assert "3 pending tasks" in caplog.text
    assert "2 tasks completed" in caplog.text


@pytest.fixture()
def file_sessions(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'tasks.db'}", future=True)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield factory
    engine.dispose()


def test_user_update_after_sweep_is_rejected_not_lost(file_sessions):
    setup = file_sessions()
    (task_id,) = _seed(setup, datetime(2026, 10, 1))
    owner_id = setup.get(Task, task_id).user_id
    setup.close()

    user_session = file_sessions()
    user_service = build_task_service(user_session)
    # The user's view of the task is loaded before the sweep runs.
    assert user_service.get_task(owner_id, task_id).status == TaskStatus.PENDING

    sweep_session = file_sessions()
    assert run_status_sweep(sweep_session, now=NOW).completed == 1
    sweep_session.close()

    with pytest.raises(ConcurrentModificationError):
        user_service.update_task(owner_id, task_id, name="renamed")
    user_session.close()

    check = file_sessions()
    stored = check.get(Task, task_id)
    assert stored.status == TaskStatus.DONE
    assert stored.name == "t0"
    check.close()


def _sweep_with_interference(file_sessions, interfere):
    """Run a sweep whose pending set is read before ``interfere`` commits."""

    class InterleavedRepository(SqlAlchemyTaskRepository):
        def find_by_status(self, status):
            pending = super().find_by_status(status)
            other = file_sessions()
            try:
                interfere(other)
            finally:
                other.close()
            return pending

    sweep_session = file_sessions()
    try:
        service = TaskService(InterleavedRepository(sweep_session), SqlAlchemyUserRepository(sweep_session))
        return service.complete_overdue_tasks(now=NOW)
    finally:
        sweep_session.close()


def test_sweep_after_user_update_defers_only_that_task(file_sessions):
    setup = file_sessions()
    edited_id, untouched_id = _seed(setup, datetime(2026, 10, 1), datetime(2026, 10, 2))
    owner_id = setup.get(Task, edited_id).user_id
    setup.close()

    stats = _sweep_with_interference(
        file_sessions,
        lambda other: build_task_service(other).update_task(owner_id, edited_id, description="edited meanwhile"),
    )

    assert (stats.pending, stats.completed) == (2, 1)
    check = file_sessions()
    assert check.get(Task, untouched_id).status == TaskStatus.DONE
    edited = check.get(Task, edited_id)
    assert edited.status == TaskStatus.PENDING
    assert edited.description == "edited meanwhile"
    check.close()

    retry_session = file_sessions()
    assert run_status_sweep(retry_session, now=NOW).completed == 1
    retry_session.close()

    check = file_sessions()
    stored = check.get(Task, edited_id)
    assert stored.status == TaskStatus.DONE
    assert stored.description == "edited meanwhile"
    check.close()


def test_sweep_after_concurrent_delete_completes_the_rest(file_sessions):
    setup = file_sessions()
    deleted_id, untouched_id = _seed(setup, datetime(2026, 10, 1), datetime(2026, 10, 2))
    owner_id = setup.get(Task, deleted_id).user_id
    setup.close()

    stats = _sweep_with_interference(
        file_sessions,
        lambda other: build_task_service(other).delete_task(owner_id, deleted_id),
    )

    assert stats.completed == 1
    check = file_sessions()
    assert check.get(Task, deleted_id) is None
    assert check.get(Task, untouched_id).status == TaskStatus.DONE
    check.close()
