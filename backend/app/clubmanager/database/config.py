"""ClubManager - Database Configuration

数据库连接配置
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from clubmanager.core.config import settings

# 创建 Base 类
Base = declarative_base()

DATABASE_URL = settings.DB_URL

# 创建引擎
engine = create_engine(
    DATABASE_URL,
    echo=False,
    # SQLite 特殊配置
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
)

# 创建 Session 工厂
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """获取数据库会话（依赖注入）"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """建表并写入默认设置"""
    from clubmanager.database import (  # noqa: F401 - 注册模型
        user_models,
        token_models,
        setting_models,
        schedule_models,
        import_log_models,
    )
    from clubmanager.services.setting_service import seed_default_settings

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_default_settings(db)
    finally:
        db.close()
