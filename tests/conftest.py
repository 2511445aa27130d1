import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# 导入时注册 SQLite 外键开关
import app.utils.database  # noqa: F401
from app.models.base import Base
from app.models.lesson import Lesson  # noqa: F401
from app.models.review_schedule import ReviewSchedule  # noqa: F401
from app.models.waiting_lesson import WaitingLesson  # noqa: F401
from app.services.change_notifier import ChangeNotifier


@pytest.fixture(scope="function")
def engine():
    """每个测试使用独立的内存数据库"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    """创建测试数据库会话"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    """独立的变更通知实例，记录收到的事件"""
    change_notifier = ChangeNotifier()
    change_notifier.events = []
    change_notifier.subscribe(change_notifier.events.append)
    return change_notifier


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    from app.main import app
    from app.utils.database import get_db

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()
