from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
import logging

from app.config.settings import settings

logger = logging.getLogger(__name__)


def _build_engine(database_url: str) -> Engine:
    """根据数据库URL创建引擎，SQLite需要额外的连接参数"""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=settings.DEBUG,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        echo=settings.DEBUG,  # 在DEBUG模式下输出SQL语句
        pool_pre_ping=True,
        pool_recycle=3600,
    )


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite默认不启用外键约束，级联删除依赖它"""
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# 创建数据库引擎
engine = _build_engine(settings.DATABASE_URL)

# 创建SessionLocal类
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"数据库会话错误: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def get_db_session() -> Session:
    """
    直接获取数据库会话
    在脚本或后台任务中使用
    """
    return SessionLocal()


def check_db_connection() -> bool:
    """检查数据库连接是否正常"""
    db = SessionLocal()
    try:
        # 执行简单的查询测试连接
        db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"数据库连接检查失败: {e}")
        return False
    finally:
        db.close()

def init_db(bind: Engine = None):
    """初始化数据库表"""
    try:
        from app.models.base import Base
        from app.models.lesson import Lesson
        from app.models.review_schedule import ReviewSchedule
        from app.models.waiting_lesson import WaitingLesson

        # 创建所有表
        Base.metadata.create_all(bind=bind or engine)
        logger.info("数据库表初始化完成")

    except Exception as e:
        logger.error(f"数据库初始化失败: {e}")
        raise
