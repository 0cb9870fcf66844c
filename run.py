# run.py
"""
run.py
标准 Flask 服务启动脚本（给开发者 / 运维 / CLI 用）
"""
import os

from dotenv import load_dotenv

from parts_engine.app_factory import create_app, BASE_DIR
from parts_engine.db.auto_init import auto_init
from parts_engine.logger import get_logger

logger = get_logger("parts_engine")


def configure_database():
    """
    未配置 DATABASE_URL 时，使用项目根目录下的 parts_engine.db
    """
    load_dotenv()
    db_path = os.path.join(BASE_DIR, "parts_engine.db")
    os.environ.setdefault("DATABASE_URL", f"sqlite:///{db_path}")
    logger.info("Using database: %s", os.environ["DATABASE_URL"])


def main():
    # 0️ 统一数据库路径
    configure_database()

    # 1️ 启动前初始化数据库
    auto_init()

    # 2️ 创建 Flask app
    app = create_app()

    # 3️ 启动参数
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    # 4️ 启动服务
    app.run(host=host, port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()
