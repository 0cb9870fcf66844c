from parts_engine.db.session import get_engine
from parts_engine.db.base import Base


def init_db():
    # 确保所有模型已注册到 Base.metadata
    import parts_engine.models  # noqa: F401

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
