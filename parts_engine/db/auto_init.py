"""
数据库自动初始化检查模块
在应用启动时自动检查并创建缺失的表
"""
import logging

from sqlalchemy import inspect

from parts_engine.db.session import get_engine
from parts_engine.db.init_db import init_db

logger = logging.getLogger(__name__)

REQUIRED_TABLES = {"parts", "suppliers", "audit_logs"}


def check_tables_exist() -> bool:
    """检查数据库表是否存在"""
    inspector = inspect(get_engine())
    return REQUIRED_TABLES.issubset(set(inspector.get_table_names()))


def auto_init():
    """
    自动初始化检查
    如果数据库未初始化，自动创建所有表
    """
    logger.info("Checking database initialization state...")

    if check_tables_exist():
        logger.info("Database tables already exist")
        return

    logger.info("Database tables missing, creating...")
    try:
        init_db()
    except Exception:
        logger.exception("Failed to create database tables")
        raise
    logger.info("Database tables created")


if __name__ == "__main__":
    auto_init()
