'''
组装 Flask App 的工厂（不启动，不产生行为副作用）
负责注入配置、注册蓝图、初始化 session、注册 error handler；
不负责启动服务（不调用 app.run()），会被 run.py / gunicorn / 单元测试调用
'''
# parts_engine/app_factory.py
import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_session import Session

from parts_engine.logger import get_logger

# 加载环境变量
load_dotenv()

# 获取项目根目录（使用绝对路径）
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """应用工厂函数"""
    get_logger("parts_engine")

    app = Flask(__name__)

    # 基础配置
    secret_key = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    if isinstance(secret_key, bytes):
        secret_key = secret_key.decode('utf-8')
    app.config['SECRET_KEY'] = secret_key

    # 数据库配置：services 通过 DATABASE_URL 环境变量取 engine
    db_path = os.path.join(BASE_DIR, 'parts_engine.db')
    os.environ.setdefault('DATABASE_URL', f"sqlite:///{db_path}")
    app.config['DATABASE_URL'] = os.environ['DATABASE_URL']

    # 文件上传配置
    app.config['UPLOAD_FOLDER'] = os.getenv('UPLOAD_FOLDER', os.path.join(BASE_DIR, 'uploads'))
    app.config['MAX_CONTENT_LENGTH'] = int(os.getenv('MAX_UPLOAD_SIZE', 10485760))  # 10MB

    # Session 配置
    app.config['SESSION_TYPE'] = 'filesystem'
    app.config['SESSION_PERMANENT'] = False
    app.config['SESSION_USE_SIGNER'] = True
    app.config['SESSION_KEY_PREFIX'] = 'parts_engine:'
    app.config['SESSION_FILE_DIR'] = os.path.join(BASE_DIR, 'flask_session')

    if config_overrides:
        app.config.update(config_overrides)

    if app.config['SESSION_TYPE'] == 'filesystem':
        os.makedirs(app.config['SESSION_FILE_DIR'], exist_ok=True)

    # 初始化 Session
    Session(app)

    # 注册蓝图
    from parts_engine.routes.parts import parts_bp

    app.register_blueprint(parts_bp)

    # 注册错误处理
    register_error_handlers(app)

    return app


def register_error_handlers(app):
    """注册错误处理器：所有错误都以 JSON 返回"""
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({'error': 'Uploaded file is too large'}), 413

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error'}), 500
