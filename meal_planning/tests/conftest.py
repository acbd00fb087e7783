"""
测试配置文件
提供测试所需的fixtures和配置
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from meal_planning.app import create_app
from meal_planning.config.settings import Settings
from meal_planning.core.database import DatabaseManager
from meal_planning.core.security import SecurityManager
from meal_planning.core.store import DuckDBRecordStore
from meal_planning.models.user import UserCreate, UserRole
from meal_planning.services.report_service import ReportService
from meal_planning.services.submission_service import SubmissionService
from meal_planning.services.user_service import UserService

from .utils.payloads import MEAL_TYPES, FixedClock


@pytest.fixture
def test_settings():
    """测试环境配置"""
    return Settings(
        database_url="duckdb://:memory:",
        jwt_secret_key="test-secret-key",
        api_title="Meal Planning API (Test)",
        api_version="1.0.0-test",
        timezone="UTC",
        meal_types=MEAL_TYPES,
        enforce_single_submission_per_date=True,
        seed_demo_users=False,
        bcrypt_rounds=4,
    )


@pytest.fixture
def clock():
    """默认当前时间：2024-01-10 12:00"""
    return FixedClock(datetime(2024, 1, 10, 12, 0, 0))


@pytest.fixture
def test_db(test_settings):
    """内存数据库"""
    db = DatabaseManager(test_settings.database_url)
    yield db
    db.close()


@pytest.fixture
def store(test_db):
    return DuckDBRecordStore(test_db)


@pytest.fixture
def security(test_settings):
    return SecurityManager(test_settings)


@pytest.fixture
def user_service(store, test_settings, security):
    return UserService(store, test_settings, security)


@pytest.fixture
def submission_service(store, test_settings, clock):
    return SubmissionService(store, test_settings, clock=clock)


@pytest.fixture
def report_service(submission_service):
    return ReportService(submission_service)


@pytest.fixture
def staff_user(user_service):
    """员工用户"""
    return user_service.create_user(UserCreate(
        username="staff", password="password", display_name="John Staff", role=UserRole.STAFF))


@pytest.fixture
def other_staff(user_service):
    """另一名员工"""
    return user_service.create_user(UserCreate(
        username="staff2", password="password", display_name="Jane Staff", role=UserRole.STAFF))


@pytest.fixture
def admin_user(user_service):
    """管理员用户"""
    return user_service.create_user(UserCreate(
        username="admin", password="password", display_name="Admin User", role=UserRole.ADMIN))


# ---- API 测试 ----

@pytest.fixture
def app_instance(test_settings, clock):
    """测试应用"""
    return create_app(settings=test_settings, clock=clock)


@pytest.fixture
def client(app_instance):
    """测试客户端"""
    with TestClient(app_instance) as c:
        yield c


def _create(app, username, role):
    return app.state.user_service.create_user(UserCreate(
        username=username, password="password", display_name=username.title(), role=role))


def _headers(app, user):
    token = app.state.security.create_jwt_token(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api_staff(app_instance):
    return _create(app_instance, "staff", UserRole.STAFF)


@pytest.fixture
def api_other_staff(app_instance):
    return _create(app_instance, "staff2", UserRole.STAFF)


@pytest.fixture
def api_admin(app_instance):
    return _create(app_instance, "admin", UserRole.ADMIN)


@pytest.fixture
def staff_headers(app_instance, api_staff):
    """员工认证请求头"""
    return _headers(app_instance, api_staff)


@pytest.fixture
def other_staff_headers(app_instance, api_other_staff):
    return _headers(app_instance, api_other_staff)


@pytest.fixture
def admin_headers(app_instance, api_admin):
    """管理员认证请求头"""
    return _headers(app_instance, api_admin)
