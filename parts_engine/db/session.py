# parts_engine/db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import os

_engine = None
_SessionLocal = None


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    pysqlite 默认自行管理事务，SAVEPOINT 会失效。
    关闭驱动的隐式事务，由 SQLAlchemy 显式发出 BEGIN。
    """
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(db_url: str) -> Engine:
    '''
    按 URL 创建 engine；SQLite 需要额外处理线程检查与 SAVEPOINT
    :param db_url: SQLAlchemy 数据库 URL
    :type db_url: str
    '''
    if not db_url.startswith("sqlite"):
        return create_engine(db_url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    # 内存库：所有连接共享同一个 connection，否则每个连接都是一个空库
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(db_url, **kwargs)
    _enable_sqlite_savepoints(engine)
    return engine


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            raise RuntimeError("DATABASE_URL not set")
        _engine = create_db_engine(db_url)
    return _engine


def get_session():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine()
        )
    return _SessionLocal()
