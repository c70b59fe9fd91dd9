"""
Pytest 配置和共享 fixtures
"""
import os

# 应用启动（lifespan）时建表用内存库，不落盘
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from decimal import Decimal

from keycard.database import Base, get_db
from keycard.models import ontology
from keycard.models.ontology import User, UserRole, RoomType, Room, RoomStatus
from keycard.security.auth import get_password_hash, create_access_token
from keycard.services.event_handlers import EventHandlers, event_handlers
from keycard.main import app


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """创建数据库会话"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session, session_factory):
    """
    创建测试客户端

    事件处理器改为绑定测试库，清洁任务完成后的房态联动可以在接口层验证
    """
    def override_get_db():
        yield db_session

    test_handlers = EventHandlers(db_session_factory=session_factory)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        event_handlers.unregister_handlers()
        test_handlers.register_handlers()
        yield test_client
        test_handlers.unregister_handlers()
    app.dependency_overrides.clear()


# ============== 用户相关 Fixtures ==============

def _make_user(db, username, role, email=None, first_name="Test", last_name="User",
               password="123456", is_active=True):
    user = User(
        username=username,
        email=email or f"{username}@keycard.test",
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        full_name=f"{first_name} {last_name}",
        role=role,
        is_active=is_active
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return _make_user(db_session, "admin", UserRole.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
def front_desk_user(db_session):
    return _make_user(db_session, "front1", UserRole.FRONT_DESK, first_name="Frank", last_name="Desk")


@pytest.fixture
def housekeeping_user(db_session):
    return _make_user(db_session, "cleaner1", UserRole.HOUSEKEEPING, first_name="Hana", last_name="Keeping")


@pytest.fixture
def sample_guest(db_session):
    """创建测试客人（邮箱即用户名）"""
    return _make_user(db_session, "alice@example.com", UserRole.GUEST,
                      email="alice@example.com", first_name="Alice", last_name="Walker")


@pytest.fixture
def sample_guest_2(db_session):
    """创建第二个测试客人"""
    return _make_user(db_session, "bob@example.com", UserRole.GUEST,
                      email="bob@example.com", first_name="Bob", last_name="Stone")


# ============== 认证相关 Fixtures ==============

def _headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def front_desk_headers(front_desk_user):
    return _headers(front_desk_user)


@pytest.fixture
def housekeeping_headers(housekeeping_user):
    return _headers(housekeeping_user)


@pytest.fixture
def guest_headers(sample_guest):
    return _headers(sample_guest)


@pytest.fixture
def guest_2_headers(sample_guest_2):
    return _headers(sample_guest_2)


# ============== 实体相关 Fixtures ==============

@pytest.fixture
def sample_room_type(db_session):
    """创建测试房型（每晚 100）"""
    room_type = RoomType(
        name="Standard",
        description="Standard Room",
        base_rate=Decimal("100.00"),
        capacity=2,
        amenities='["WiFi", "TV"]'
    )
    db_session.add(room_type)
    db_session.commit()
    db_session.refresh(room_type)
    return room_type


@pytest.fixture
def suite_room_type(db_session):
    """创建套房房型"""
    room_type = RoomType(
        name="Suite",
        description="Family Suite",
        base_rate=Decimal("250.00"),
        capacity=4,
        amenities='["WiFi", "TV", "Kitchen"]'
    )
    db_session.add(room_type)
    db_session.commit()
    db_session.refresh(room_type)
    return room_type


def _make_room(db, room_type, number, floor=1, status=RoomStatus.VACANT):
    room = Room(room_number=number, floor=floor, room_type_id=room_type.id, status=status)
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture
def sample_room(db_session, sample_room_type):
    """创建测试房间"""
    return _make_room(db_session, sample_room_type, "101")


@pytest.fixture
def sample_room_102(db_session, sample_room_type):
    return _make_room(db_session, sample_room_type, "102")


@pytest.fixture
def suite_room(db_session, suite_room_type):
    return _make_room(db_session, suite_room_type, "301", floor=3)
