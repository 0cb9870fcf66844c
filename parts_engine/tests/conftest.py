# parts_engine/tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

import parts_engine.models  # noqa: F401  注册所有表
from parts_engine.db import session as session_module
from parts_engine.db.base import Base
from parts_engine.db.part_store import PartStore
from parts_engine.db.session import create_db_engine
from parts_engine.models.part import Part
from parts_engine.services.audit_log_service import AuditLogService
from parts_engine.services.part_service import PartService

ORG = "org-1"
OTHER_ORG = "org-2"
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def audit_log_service(db):
    return AuditLogService(db)


@pytest.fixture
def part_service(db, audit_log_service):
    return PartService(db, audit_log_service)


@pytest.fixture
def make_part(db):
    """直接写入一条 Part；seq 决定 created_at 的先后"""
    def _make(seq: int = 0, organization_id: str = ORG, **fields) -> Part:
        fields.setdefault("name", f"Part {seq}")
        fields.setdefault("stock_level", 0)
        fields.setdefault("reorder_point", 0)
        created = T0 + timedelta(minutes=seq)
        fields.update(organization_id=organization_id, created_at=created, updated_at=created)
        return PartStore(db).create(fields)

    return _make


@pytest.fixture
def app(engine, tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    # routes 通过全局 get_session() 取会话，指向测试 engine
    monkeypatch.setattr(session_module, "_engine", engine)
    monkeypatch.setattr(session_module, "_SessionLocal", None)

    from parts_engine.app_factory import create_app

    app = create_app({
        "TESTING": True,
        "SESSION_FILE_DIR": str(tmp_path / "sessions"),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
    })
    return app


@pytest.fixture
def client(app):
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["organization_id"] = ORG
        sess["user_id"] = "user-1"
    return client


class FailingCreateStore(PartStore):
    """新建指定名称的 Part 时模拟存储故障"""

    def __init__(self, db, failing_name: str):
        super().__init__(db)
        self.failing_name = failing_name

    def create(self, fields):
        if fields.get("name") == self.failing_name:
            raise OperationalError("INSERT INTO parts", {}, Exception("database is locked"))
        return super().create(fields)
